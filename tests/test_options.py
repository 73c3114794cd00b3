import tempfile
from datetime import timedelta

from kdeclare.object import Object, Unstructured
from kdeclare.options import (
    DEFAULT_SKIP_RECONCILE_LABEL,
    EVENT_RECORDER_DEFAULT,
    FIELD_OWNER_DEFAULT,
    FINALIZER_DEFAULT,
    NAMESPACE_DEFAULT,
    MemoryClientCache,
    Options,
    Result,
    default_options,
    skip_reconcile_on_default_label_present_and_true,
    with_custom_ready_check,
    with_custom_resource_labels,
    with_delete_crds,
    with_field_owner,
    with_finalizer,
    with_manager,
    with_manifest_cache,
    with_namespace,
    with_periodic_consistency_check,
    with_permanent_consistency_check,
    with_post_render_transform,
    with_post_run,
    with_pre_delete,
    with_remote_target_cluster,
    with_singleton_client_cache,
    with_skip_reconcile_on,
    with_spec_resolver,
)
from kdeclare.transforms import (
    disclaimer_transform,
    kyma_component_transform,
    managed_by_declarative_v2,
)


class _FakeManager:
    def __init__(self):
        self.recorder_names = []

    def get_event_recorder_for(self, name):
        self.recorder_names.append(name)
        return ("recorder", name)

    def get_config(self):
        return "config-object"

    def get_client(self):
        return "client-object"


def test_default_options():
    opts = default_options()
    assert opts.finalizer == FINALIZER_DEFAULT
    assert opts.field_owner == FIELD_OWNER_DEFAULT
    assert opts.namespace == NAMESPACE_DEFAULT
    assert opts.create_namespace is False
    assert opts.delete_prerequisites is False
    assert opts.post_render_transforms == [
        managed_by_declarative_v2,
        kyma_component_transform,
        disclaimer_transform,
    ]
    assert opts.ctrl_on_success == Result()
    assert opts.client_cache.get_client_from_cache("missing") is None
    assert opts.manifest_cache == tempfile.gettempdir()
    assert opts.should_skip is skip_reconcile_on_default_label_present_and_true


def test_default_options_are_independent():
    first = default_options()
    second = default_options()
    first.apply(with_post_run(lambda skr, kcp, obj: None))
    assert second.post_runs == []
    assert first.client_cache is not second.client_cache


def test_apply_returns_self_and_later_options_win():
    opts = Options()
    result = opts.apply(with_finalizer("first"), with_finalizer("second"))
    assert result is opts
    assert opts.finalizer == "second"


def test_simple_setters():
    check = object()
    resolver = object()
    cache = MemoryClientCache()
    opts = Options().apply(
        with_namespace("ns-a", True),
        with_field_owner("owner-a"),
        with_delete_crds(True),
        with_manifest_cache("/cache"),
        with_custom_ready_check(check),
        with_spec_resolver(resolver),
        with_singleton_client_cache(cache),
    )
    assert (opts.namespace, opts.create_namespace) == ("ns-a", True)
    assert opts.field_owner == "owner-a"
    assert opts.delete_prerequisites is True
    assert opts.manifest_cache == "/cache"
    assert opts.custom_ready_check is check
    assert opts.spec_resolver is resolver
    assert opts.client_cache is cache


def test_with_manager():
    manager = _FakeManager()
    opts = Options().apply(with_manager(manager))
    assert manager.recorder_names == [EVENT_RECORDER_DEFAULT]
    assert opts.event_recorder == ("recorder", EVENT_RECORDER_DEFAULT)
    assert opts.config == "config-object"
    assert opts.client == "client-object"


def test_custom_resource_labels_transform_merges_labels():
    opts = Options().apply(with_custom_resource_labels({"run": "abc"}))
    assert len(opts.post_render_transforms) == 1
    bare = Unstructured({})
    labelled = Unstructured({"metadata": {"labels": {"keep": "yes", "run": "old"}}})
    opts.post_render_transforms[0](Object(), [bare, labelled])
    assert bare.labels == {"run": "abc"}
    assert labelled.labels == {"keep": "yes", "run": "abc"}


def test_post_render_transform_appends():
    opts = default_options().apply(with_post_render_transform(disclaimer_transform))
    assert opts.post_render_transforms[-1] is disclaimer_transform
    assert len(opts.post_render_transforms) == 4


def test_hooks_append_in_order():
    def hook_a(skr, kcp, obj):
        return None

    def hook_b(skr, kcp, obj):
        return None

    opts = Options().apply(with_post_run(hook_a), with_post_run(hook_b), with_pre_delete(hook_b))
    assert opts.post_runs == [hook_a, hook_b]
    assert opts.pre_deletes == [hook_b]


def test_consistency_checks():
    opts = Options().apply(with_permanent_consistency_check(True))
    assert opts.ctrl_on_success == Result(requeue=True)
    opts.apply(with_permanent_consistency_check(False))
    assert opts.ctrl_on_success == Result()
    opts.apply(with_periodic_consistency_check(timedelta(seconds=2)))
    assert opts.ctrl_on_success.requeue_after == timedelta(seconds=2)
    assert opts.ctrl_on_success.requeue is False
    opts.apply(with_periodic_consistency_check(2))
    assert opts.ctrl_on_success.requeue_after == timedelta(seconds=2)


def test_remote_target_cluster_and_skip():
    def client_fn(obj):
        return "remote"

    def never(obj):
        return False

    opts = Options().apply(with_remote_target_cluster(client_fn), with_skip_reconcile_on(never))
    assert opts.target_client(Object()) == "remote"
    assert opts.should_skip is never


def test_skip_label():
    assert skip_reconcile_on_default_label_present_and_true(
        Object({"metadata": {"labels": {DEFAULT_SKIP_RECONCILE_LABEL: "true"}}})
    ) is True
    assert skip_reconcile_on_default_label_present_and_true(
        Object({"metadata": {"labels": {DEFAULT_SKIP_RECONCILE_LABEL: "false"}}})
    ) is False
    assert skip_reconcile_on_default_label_present_and_true(Object()) is False


def test_memory_client_cache():
    cache = MemoryClientCache()
    key = ("ns", "name")
    assert cache.get_client_from_cache(key) is None
    client = object()
    cache.set_client_in_cache(key, client)
    assert cache.get_client_from_cache(key) is client
    assert cache.get_client_from_cache(("ns", "other")) is None