"""Options of the declarative reconciler and the options that change them."""

from __future__ import annotations

import logging
import tempfile
import threading
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any, Callable, Hashable, Protocol

from kdeclare.object import Object, Unstructured
from kdeclare.transforms import (
    disclaimer_transform,
    kyma_component_transform,
    managed_by_declarative_v2,
)

_logger = logging.getLogger(__name__)

FINALIZER_DEFAULT = "declarative.kyma-project.io/finalizer"
FIELD_OWNER_DEFAULT = "declarative.kyma-project.io/applier"
EVENT_RECORDER_DEFAULT = "declarative.kyma-project.io/events"
DEFAULT_SKIP_RECONCILE_LABEL = "declarative.kyma-project.io/skip-reconciliation"
NAMESPACE_DEFAULT = "default"
NAMESPACE_NONE = ""
NO_MANIFEST_CACHE = "no-cache"

ObjectTransform = Callable[[Object, "list[Unstructured]"], None]
# Hooks receive (runtime client, control-plane client, object).
Hook = Callable[[Any, Any, Object], None]
ClientFn = Callable[[Object], Any]
SkipReconcile = Callable[[Object], bool]
Option = Callable[["Options"], None]


class Manager(Protocol):
    def get_event_recorder_for(self, name: str) -> Any: ...

    def get_config(self) -> Any: ...

    def get_client(self) -> Any: ...


@dataclass
class Result:
    """What the controller should do after a reconciliation."""

    requeue: bool = False
    requeue_after: timedelta = timedelta(0)


class MemoryClientCache:
    """Thread-safe in-memory cache of clients per cluster key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[Hashable, Any] = {}

    def get_client_from_cache(self, key: Hashable) -> Any:
        with self._lock:
            return self._cache.get(key)

    def set_client_in_cache(self, key: Hashable, client: Any) -> None:
        with self._lock:
            self._cache[key] = client


@dataclass
class Options:
    """All settings of the declarative reconciler."""

    event_recorder: Any = None
    config: Any = None
    client: Any = None
    target_client: ClientFn | None = None
    spec_resolver: Any = None
    client_cache: Any = None
    manifest_cache: str = ""
    custom_ready_check: Any = None
    namespace: str = ""
    create_namespace: bool = False
    finalizer: str = ""
    server_side_apply: bool = False
    field_owner: str = ""
    post_render_transforms: list[ObjectTransform] = field(default_factory=list)
    post_runs: list[Hook] = field(default_factory=list)
    pre_deletes: list[Hook] = field(default_factory=list)
    delete_prerequisites: bool = False
    should_skip: SkipReconcile | None = None
    ctrl_on_success: Result = field(default_factory=Result)

    def apply(self, *options: Option) -> Options:
        """Apply ``options`` in order and return these options."""
        for option in options:
            option(self)
        return self


def with_namespace(name: str, create_if_missing: bool) -> Option:
    def apply(options: Options) -> None:
        options.namespace = name
        options.create_namespace = create_if_missing
    return apply


def with_field_owner(owner: str) -> Option:
    def apply(options: Options) -> None:
        options.field_owner = owner
    return apply


def with_finalizer(finalizer: str) -> Option:
    def apply(options: Options) -> None:
        options.finalizer = finalizer
    return apply


def with_manager(manager: Manager) -> Option:
    """Take the event recorder, config and client from ``manager``."""
    def apply(options: Options) -> None:
        options.event_recorder = manager.get_event_recorder_for(EVENT_RECORDER_DEFAULT)
        options.config = manager.get_config()
        options.client = manager.get_client()
    return apply


def with_custom_resource_labels(labels: dict[str, str]) -> Option:
    """Add a transform that sets ``labels`` on every rendered resource."""
    fixed = dict(labels)

    def label_transform(obj: Object, resources: list[Unstructured]) -> None:
        for resource in resources:
            current = resource.labels
            current.update(fixed)
            resource.labels = current

    def apply(options: Options) -> None:
        options.post_render_transforms.append(label_transform)
    return apply


def with_spec_resolver(resolver: Any) -> Option:
    def apply(options: Options) -> None:
        options.spec_resolver = resolver
    return apply


def with_post_render_transform(*transforms: ObjectTransform) -> Option:
    def apply(options: Options) -> None:
        options.post_render_transforms.extend(transforms)
    return apply


def with_post_run(*hooks: Hook) -> Option:
    """Add hooks run after every successful render and sync."""
    def apply(options: Options) -> None:
        options.post_runs.extend(hooks)
    return apply


def with_pre_delete(*hooks: Hook) -> Option:
    """Add hooks run before resources are deleted."""
    def apply(options: Options) -> None:
        options.pre_deletes.extend(hooks)
    return apply


def with_periodic_consistency_check(interval: timedelta | float) -> Option:
    """Requeue successful reconciliations after ``interval`` (seconds or timedelta)."""
    delay = interval if isinstance(interval, timedelta) else timedelta(seconds=interval)

    def apply(options: Options) -> None:
        options.ctrl_on_success = replace(options.ctrl_on_success, requeue_after=delay)
    return apply


def with_permanent_consistency_check(enabled: bool) -> Option:
    def apply(options: Options) -> None:
        options.ctrl_on_success = Result(requeue=True) if enabled else Result()
    return apply


def with_singleton_client_cache(cache: Any) -> Option:
    def apply(options: Options) -> None:
        options.client_cache = cache
    return apply


def with_delete_crds(enabled: bool) -> Option:
    def apply(options: Options) -> None:
        options.delete_prerequisites = bool(enabled)
    return apply


def with_manifest_cache(path: str) -> Option:
    """Cache rendered manifests below ``path``; ``NO_MANIFEST_CACHE`` disables caching."""
    def apply(options: Options) -> None:
        options.manifest_cache = str(path)
    return apply


def with_custom_ready_check(check: Any) -> Option:
    def apply(options: Options) -> None:
        options.custom_ready_check = check
    return apply


def with_remote_target_cluster(client_fn: ClientFn) -> Option:
    """Use ``client_fn`` to obtain the client of the cluster resources go to."""
    def apply(options: Options) -> None:
        options.target_client = client_fn
    return apply


def with_skip_reconcile_on(skip: SkipReconcile) -> Option:
    def apply(options: Options) -> None:
        options.should_skip = skip
    return apply


def skip_reconcile_on_default_label_present_and_true(obj: Object) -> bool:
    """Skip when the default skip label of ``obj`` is ``"true"``."""
    _logger.debug("resource gets skipped because of label %s", DEFAULT_SKIP_RECONCILE_LABEL)
    return obj.labels.get(DEFAULT_SKIP_RECONCILE_LABEL) == "true"


def default_options() -> Options:
    """Options with the defaults of the declarative reconciler."""
    return Options().apply(
        with_delete_crds(False),
        with_namespace(NAMESPACE_DEFAULT, False),
        with_finalizer(FINALIZER_DEFAULT),
        with_field_owner(FIELD_OWNER_DEFAULT),
        with_post_render_transform(
            managed_by_declarative_v2,
            kyma_component_transform,
            disclaimer_transform,
        ),
        with_permanent_consistency_check(False),
        with_singleton_client_cache(MemoryClientCache()),
        with_manifest_cache(tempfile.gettempdir()),
        with_skip_reconcile_on(skip_reconcile_on_default_label_present_and_true),
    )