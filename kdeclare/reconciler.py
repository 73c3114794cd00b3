"""The declarative reconciler: renders manifests and keeps a cluster in sync with them."""

from __future__ import annotations

import copy
import enum
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable

import yaml

from kdeclare import labels
from kdeclare.cleanup import ConcurrentCleanup, DeletionNotFinished
from kdeclare.object import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    Condition,
    NotFoundError,
    Object,
    State,
    Unstructured,
    is_status_condition_true,
    resources_diff,
    set_status_condition,
)
from kdeclare.options import (
    NAMESPACE_DEFAULT,
    NAMESPACE_NONE,
    Option,
    Options,
    Result,
    default_options,
    with_manager,
)
from kdeclare.ready_check import ConcurrentReadyCheck, ResourcesNotReady
from kdeclare.renderer import Renderer, new_raw_renderer
from kdeclare.renderer_cache import wrap_with_renderer_cache
from kdeclare.resource_converter import (
    ResourceInfo,
    ResourceToInfoConverter,
    infos_to_resources,
)
from kdeclare.spec import RenderMode, Spec

_logger = logging.getLogger(__name__)

RendererFactory = Callable[[Spec, Any, Options], Renderer]


class ConditionType(str, enum.Enum):
    RESOURCES = "Resources"
    INSTALLATION = "Installation"

    def __str__(self) -> str:
        return self.value


class ConditionReason(str, enum.Enum):
    RESOURCES_ARE_AVAILABLE = "ResourcesAvailable"
    READY = "Ready"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Request:
    """Identifies the object to reconcile."""

    namespace: str
    name: str


class ResourceSyncStateDiff(Exception):
    def __init__(self, message: str = "resource syncTarget state diff detected") -> None:
        super().__init__(message)


class InstallationConditionRequiresUpdate(Exception):
    def __init__(self, message: str = "installation condition needs an update") -> None:
        super().__init__(message)


class DeletionTimestampSetButNotInDeletingState(Exception):
    def __init__(self, message: str = "resource is not set to deleting yet") -> None:
        super().__init__(message)


class ObjectHasEmptyState(Exception):
    def __init__(self, message: str = "object has an empty state") -> None:
        super().__init__(message)


def _installation_condition(obj: Object) -> Condition:
    return Condition(
        type=ConditionType.INSTALLATION.value,
        reason=ConditionReason.READY.value,
        status=CONDITION_FALSE,
        message="installation is ready and resources can be used",
        observed_generation=obj.generation,
    )


def _resources_condition(obj: Object) -> Condition:
    return Condition(
        type=ConditionType.RESOURCES.value,
        reason=ConditionReason.RESOURCES_ARE_AVAILABLE.value,
        status=CONDITION_FALSE,
        message="resources are parsed and ready for use",
        observed_generation=obj.generation,
    )


def _is_deleting(obj: Object) -> bool:
    return bool(obj.deletion_timestamp)


def _add_finalizer(obj: Object, finalizer: str) -> bool:
    finalizers = obj.finalizers
    if finalizer in finalizers:
        return False
    obj.finalizers = [*finalizers, finalizer]
    return True


def _remove_finalizer(obj: Object, finalizer: str) -> bool:
    finalizers = obj.finalizers
    if finalizer not in finalizers:
        return False
    obj.finalizers = [f for f in finalizers if f != finalizer]
    return True


def _parse_manifest(manifest: bytes | str) -> list[Unstructured]:
    text = manifest.decode() if isinstance(manifest, bytes) else manifest
    objects: list[Unstructured] = []
    for document in yaml.safe_load_all(text):
        if document is None:
            continue
        if not isinstance(document, dict):
            raise ValueError(f"manifest document is not an object: {document!r}")
        objects.append(Unstructured(document))
    return objects


def _info_identity(info: ResourceInfo) -> tuple[str, str, str, str]:
    group, _version, kind = info.group_version_kind()
    return info.name, info.namespace, group, kind


def _difference(current: list[ResourceInfo], target: list[ResourceInfo]) -> list[ResourceInfo]:
    wanted = {_info_identity(info) for info in target}
    return [info for info in current if _info_identity(info) not in wanted]


def cache_key_from_object(obj: Unstructured | None) -> tuple[str, str]:
    """Return the ``(namespace, name)`` key under which the object's client is cached.

    The cache-key label, when present, replaces the object's name.
    """
    if obj is None:
        return "", ""
    label = obj.labels.get(labels.CACHE_KEY)
    if label is None:
        _logger.debug(
            "%s missing on resource %s/%s, it will be cached based on resource name and namespace",
            labels.CACHE_KEY, obj.namespace, obj.name,
        )
        return obj.namespace, obj.name
    _logger.debug(
        "resource %s/%s will be cached based on %s=%s",
        obj.namespace, obj.name, labels.CACHE_KEY, label,
    )
    return obj.namespace, label


class Reconciler:
    """Reconciles objects like ``prototype`` according to ``options``.

    The control-plane client (``options.client``) must offer ``get(key, obj)``,
    ``update(obj)``, ``patch(obj, field_owner, force)`` and
    ``patch_status(obj, field_owner, force)``. The target-cluster client must
    offer ``resource_info``, ``patch``, ``delete`` and ``is_ready(info)``.
    ``renderer_factories`` maps render modes to renderer constructors; renderers
    for modes other than raw are wrapped with the manifest cache.
    """

    def __init__(self, prototype: Object, options: Options) -> None:
        self.prototype = prototype
        self.options = options
        self.renderer_factories: dict[RenderMode, RendererFactory] = {
            RenderMode.RAW: lambda spec, _clnt, opts: new_raw_renderer(spec, opts),
        }

    def _event(self, obj: Object, event_type: str, reason: str, message: str) -> None:
        if self.options.event_recorder is not None:
            self.options.event_recorder.event(obj, event_type, reason, message)

    def reconcile(self, request: Request) -> Result:
        """Reconcile the object named by ``request`` and say how to requeue."""
        obj = copy.deepcopy(self.prototype)
        try:
            self.options.client.get((request.namespace, request.name), obj)
        except NotFoundError:
            _logger.info("%s/%s got deleted!", request.namespace, request.name)
            return Result()

        if self.options.should_skip is not None and self.options.should_skip(obj):
            return Result()

        try:
            self._initialize(obj)
        except Exception:  # noqa: BLE001 - recorded in the status
            return self._ssa_status(obj)

        if _add_finalizer(obj, self.options.finalizer):
            return self._ssa(obj)

        try:
            spec = self.spec(obj)
        except Exception:  # noqa: BLE001 - recorded in the status
            return self._ssa_status(obj)

        try:
            clnt = self._get_target_client(obj, spec)
        except Exception as err:  # noqa: BLE001 - recorded in the status
            self._event(obj, "Warning", "ClientInitialization", str(err))
            obj.status = obj.status.with_state(State.ERROR).with_err(err)
            return self._ssa_status(obj)

        converter = ResourceToInfoConverter(clnt, self.options.namespace)

        try:
            renderer = self._initialize_renderer(obj, spec, clnt)
            target, current = self._render_resources(obj, renderer, converter)
        except Exception:  # noqa: BLE001 - recorded in the status
            return self._ssa_status(obj)

        diff = _difference(current, target)
        try:
            self._prune_diff(clnt, obj, renderer, diff)
        except DeletionNotFinished:
            return Result(requeue=True)
        except Exception:  # noqa: BLE001 - recorded in the status
            return self._ssa_status(obj)

        if _is_deleting(obj):
            if _remove_finalizer(obj, self.options.finalizer):
                # no server-side apply, as it does not remove finalizers
                self.options.client.update(obj)
                return Result()
            msg = "waiting as other finalizers are present"
            self._event(obj, "Normal", "FinalizerRemoval", msg)
            obj.status = obj.status.with_state(State.DELETING).with_operation(msg)
            return self._ssa_status(obj)

        try:
            self._sync_resources(clnt, obj, target)
        except Exception:  # noqa: BLE001 - recorded in the status
            return self._ssa_status(obj)

        return replace(self.options.ctrl_on_success)

    def _initialize(self, obj: Object) -> None:
        status = copy.deepcopy(obj.status)

        if _is_deleting(obj) and obj.status.state != State.DELETING:
            err = DeletionTimestampSetButNotInDeletingState()
            obj.status = status.with_state(State.DELETING).with_err(err)
            raise err

        for condition in (_resources_condition(obj), _installation_condition(obj)):
            set_status_condition(status.conditions, condition)

        if status.synced is None:
            status.synced = []

        if status.state == State.EMPTY:
            err = ObjectHasEmptyState()
            obj.status = status.with_state(State.PROCESSING).with_err(err)
            raise err

        obj.status = status

    def spec(self, obj: Object) -> Spec:
        """Resolve the specification of ``obj``, recording a failure in its status."""
        try:
            return self.options.spec_resolver.spec(obj)
        except Exception as err:
            self._event(obj, "Warning", "Spec", str(err))
            obj.status = obj.status.with_state(State.ERROR).with_err(err)
            raise

    def _render_resources(
        self, obj: Object, renderer: Renderer, converter: ResourceToInfoConverter
    ) -> tuple[list[ResourceInfo], list[ResourceInfo]]:
        resource_condition = _resources_condition(obj)
        status = copy.deepcopy(obj.status)

        target = self._render_target_resources(renderer, converter, obj)

        try:
            current = converter.resources_to_infos(status.synced or [])
        except Exception as err:
            self._event(obj, "Warning", "CurrentResourceParsing", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise

        if not is_status_condition_true(status.conditions, resource_condition.type):
            self._event(obj, "Normal", resource_condition.reason, resource_condition.message)
            resource_condition.status = CONDITION_TRUE
            set_status_condition(status.conditions, resource_condition)
            obj.status = status.with_operation(resource_condition.message)

        return target, current

    def _render_target_resources(
        self, renderer: Renderer, converter: ResourceToInfoConverter, obj: Object
    ) -> list[ResourceInfo]:
        if _is_deleting(obj):
            # When deleting, nothing is wanted, so everything synced becomes the diff.
            return []

        status = copy.deepcopy(obj.status)
        manifest = renderer.render(obj)

        try:
            resources = _parse_manifest(manifest)
        except (yaml.YAMLError, ValueError, UnicodeDecodeError) as err:
            self._event(obj, "Warning", "ManifestParsing", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise

        for transform in self.options.post_render_transforms:
            try:
                transform(obj, resources)
            except Exception as err:
                self._event(obj, "Warning", "PostRenderTransform", str(err))
                obj.status = status.with_state(State.ERROR).with_err(err)
                raise

        try:
            return converter.unstructured_to_infos(resources)
        except Exception as err:
            self._event(obj, "Warning", "TargetResourceParsing", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise

    def _sync_resources(self, clnt: Any, obj: Object, target: list[ResourceInfo]) -> None:
        # Imported here to keep the module importable where ssa depends on this one.
        from kdeclare.ssa import ConcurrentSSA

        status = copy.deepcopy(obj.status)

        try:
            ConcurrentSSA(clnt, self.options.field_owner).run(target)
        except Exception as err:
            self._event(obj, "Warning", "ServerSideApply", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise

        old_synced = status.synced or []
        new_synced = infos_to_resources(target)
        status.synced = new_synced

        if resources_diff(old_synced, new_synced):
            err = ResourceSyncStateDiff()
            obj.status = status.with_state(State.PROCESSING).with_operation(str(err))
            raise err

        for hook in self.options.post_runs:
            try:
                hook(clnt, self.options.client, obj)
            except Exception as err:
                self._event(obj, "Warning", "PostRun", str(err))
                obj.status = status.with_state(State.ERROR).with_err(err)
                raise

        self._check_target_readiness(clnt, obj, target)

    def _check_target_readiness(self, clnt: Any, obj: Object, target: list[ResourceInfo]) -> None:
        status = copy.deepcopy(obj.status)

        check = self.options.custom_ready_check
        if check is None:
            check = ConcurrentReadyCheck(clnt.is_ready)

        try:
            check.run(target)
        except ResourcesNotReady:
            waiting_msg = "waiting for resources to become ready"
            self._event(obj, "Normal", "ResourceReadyCheck", waiting_msg)
            obj.status = status.with_state(State.PROCESSING).with_operation(waiting_msg)
            raise
        except Exception as err:
            self._event(obj, "Warning", "ReadyCheck", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise

        condition = _installation_condition(obj)
        if (
            not is_status_condition_true(status.conditions, condition.type)
            or status.state != State.READY
        ):
            self._event(obj, "Normal", condition.reason, condition.message)
            condition.status = CONDITION_TRUE
            set_status_condition(status.conditions, condition)
            obj.status = status.with_state(State.READY).with_operation(condition.message)
            raise InstallationConditionRequiresUpdate()

    def _delete_resources(self, clnt: Any, obj: Object, diff: list[ResourceInfo]) -> None:
        status = copy.deepcopy(obj.status)

        if _is_deleting(obj):
            for hook in self.options.pre_deletes:
                try:
                    hook(clnt, self.options.client, obj)
                except Exception as err:
                    # No status here: it is deleting as the timestamp is set.
                    self._event(obj, "Warning", "PreDelete", str(err))
                    raise

        try:
            ConcurrentCleanup(clnt).run(diff)
        except DeletionNotFinished as err:
            self._event(obj, "Normal", "Deletion", str(err))
            raise
        except Exception as err:
            self._event(obj, "Warning", "Deletion", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise

    def _initialize_renderer(self, obj: Object, spec: Spec, clnt: Any) -> Renderer:
        mode = RenderMode(spec.mode) if spec.mode is not None else None
        factory = self.renderer_factories.get(mode) if mode is not None else None
        if factory is None:
            raise ValueError(f"render mode {spec.mode} is not supported")
        renderer = factory(spec, clnt, self.options)
        if mode != RenderMode.RAW:
            renderer = wrap_with_renderer_cache(renderer, spec, self.options)

        renderer.initialize(obj)
        renderer.ensure_prerequisites(obj)
        return renderer

    def _prune_diff(
        self, clnt: Any, obj: Object, renderer: Renderer, diff: list[ResourceInfo]
    ) -> None:
        self._delete_resources(clnt, obj, diff)
        if not _is_deleting(obj) or not self.options.delete_prerequisites:
            return
        renderer.remove_prerequisites(obj)

    def _get_target_client(self, obj: Object, spec: Spec) -> Any:
        key = cache_key_from_object(obj)
        cache = self.options.client_cache
        clnt = cache.get_client_from_cache(key) if cache is not None else None

        if clnt is None:
            clnt = self.options.client
            if self.options.target_client is not None:
                clnt = self.options.target_client(obj)
            if cache is not None:
                cache.set_client_in_cache(key, clnt)

        namespace = self.options.namespace
        if (
            namespace not in (NAMESPACE_NONE, NAMESPACE_DEFAULT)
            and self.options.create_namespace
        ):
            ns = Unstructured({"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": namespace}})
            clnt.patch(ns, field_owner=self.options.field_owner, force=True)

        return clnt

    def _ssa_status(self, obj: Object) -> Result:
        obj.managed_fields = None
        obj.resource_version = ""
        self.options.client.patch_status(obj, field_owner=self.options.field_owner, force=True)
        return Result(requeue=True)

    def _ssa(self, obj: Object) -> Result:
        obj.managed_fields = None
        obj.resource_version = ""
        self.options.client.patch(obj, field_owner=self.options.field_owner, force=True)
        return Result(requeue=True)


def new_from_manager(manager: Any, prototype: Object, *options: Option) -> Reconciler:
    """Create a reconciler with default options, the manager's clients and ``options``."""
    opts = default_options().apply(with_manager(manager)).apply(*options)
    return Reconciler(prototype, opts)