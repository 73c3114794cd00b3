# kdeclare

kdeclare reconciles a custom object against a cluster in a declarative way.
One reconcile step renders a manifest for the object, parses it into
resources, runs post-render transforms over them, applies them with forced
field ownership, prunes whatever was synced before but is no longer rendered,
and records everything in the object's status: its state, its conditions, the
list of synced resources and the last operation.

The package talks to a cluster only through client objects you pass in; see
"What you provide" below.

## Installation

```
pip install kdeclare
```

For running the tests:

```
pip install "kdeclare[test]"
pytest
```

## Modules

- `kdeclare.object`: `Status` (with `with_state`, `with_err`, `with_operation`,
  each returning a changed copy), `State` (`Ready`, `Processing`, `Error`,
  `Deleting`, or empty), `Condition`, `LastOperation`, `Resource` (with `id()`
  and `to_unstructured()`), `Unstructured` (a dictionary-backed resource with
  properties for name, namespace, labels, annotations, finalizers and more),
  `Object` (an `Unstructured` with a typed `status`; its `component_name` is the
  lower-cased kind), the errors `NotFoundError`, `AlreadyExistsError` and
  `MultiError`, and the helpers `resources_diff`, `find_status_condition`,
  `set_status_condition` and `is_status_condition_true`.
- `kdeclare.spec`: `Spec`, `RenderMode` (`helm`, `kustomize`, `raw`),
  `CustomSpecFns` and `default_spec(path, values, mode)`, which resolves the
  same path, values and mode for every object and uses its component name as
  the manifest name.
- `kdeclare.renderer`: the `Renderer` interface, `EventRecorder`,
  `FakeRecorder` (keeps events as `"<type> <reason> <message>"` strings),
  `RawRenderer` and `new_raw_renderer`. `RawRenderer.render` returns the bytes
  of the file at the spec's path; on a read error it records a
  `ReadRawManifest` warning, sets the object to `Error` and re-raises.
- `kdeclare.renderer_cache`: `wrap_with_renderer_cache`, `RendererWithCache`
  and `ManifestCache`. Rendered manifests are stored under
  `<cache dir>/manifest/<spec path>/<manifest name>-<mode>-<values hash>.yaml`;
  other files in that directory are removed on each render. A cached file is
  reused when it can be read and parses as YAML. Passing
  `kdeclare.options.NO_MANIFEST_CACHE` (`"no-cache"`) disables the cache.
- `kdeclare.transforms`: the default post-render transforms
  `managed_by_declarative_v2`, `kyma_component_transform` and
  `disclaimer_transform`, which add the managed-by label, the
  `app.kubernetes.io/component` and `app.kubernetes.io/part-of` labels, and a
  do-not-edit annotation.
- `kdeclare.options`: `Options`, `Result`, `MemoryClientCache`,
  `default_options()` and the option builders `with_namespace`,
  `with_field_owner`, `with_finalizer`, `with_manager`,
  `with_custom_resource_labels`, `with_spec_resolver`,
  `with_post_render_transform`, `with_post_run`, `with_pre_delete`,
  `with_periodic_consistency_check`, `with_permanent_consistency_check`,
  `with_singleton_client_cache`, `with_delete_crds`, `with_manifest_cache`,
  `with_custom_ready_check`, `with_remote_target_cluster` and
  `with_skip_reconcile_on`. By default objects labelled
  `declarative.kyma-project.io/skip-reconciliation: "true"` are skipped and
  manifests are cached in the system temporary directory.
- `kdeclare.cleanup`: `ConcurrentCleanup`, which deletes resources in
  parallel and raises `DeletionNotFinished` until every one of them reports
  `NotFoundError`.
- `kdeclare.ready_check`: `ConcurrentReadyCheck` (asks a callable about each
  resource, raising `ResourcesNotReady` if any is not ready) and
  `ExistsReadyCheck` (only reads each resource).
- `kdeclare.ssa`: `ConcurrentSSA`, which patches all resources in parallel
  and raises `ServerSideApplyError` with the collected failures.
- `kdeclare.resource_converter`: `ResourceInfo`, `NoMatchError`,
  `ResourceToInfoConverter` and `infos_to_resources`. Rendered objects of
  unknown kind are kept without a mapping; namespaces are filled in or cleared
  according to whether the kind is namespaced.
- `kdeclare.reconciler`: `Reconciler`, `Request`, `new_from_manager`,
  `cache_key_from_object`, `ConditionType`, `ConditionReason` and the errors
  `ResourceSyncStateDiff`, `InstallationConditionRequiresUpdate`,
  `DeletionTimestampSetButNotInDeletingState` and `ObjectHasEmptyState`.
- `kdeclare.resolver`: `DefaultManifestResolver`, whose `get(obj)` reads
  `chartPath` (required; `ResolveError` if missing), `releaseName` and
  `chartFlags` from the object's `spec` into an `InstallationSpec`.
- `kdeclare.manifest_options`: `ManifestOptions` and functional options
  (`with_custom_resource_labels`, `with_post_render_transform`,
  `with_manifest_resolver`, `with_default_resolver`, `with_resources_ready`,
  `with_finalizer`, `with_post_run`, `with_all`), combined by
  `build_options`, which requires a manifest resolver.
- `kdeclare.logsetup`: `config_logger(stream=None)`, a logger that writes one
  JSON object per line (level, date, caller, message, extra context, and a
  stack trace for errors) to the stream, standard output by default.

## What you provide

- A manager with `get_event_recorder_for(name)`, `get_config()` and
  `get_client()`, used by `new_from_manager`.
- A control-plane client with `get((namespace, name), obj)`, `update(obj)`,
  `patch(obj, field_owner, force)` and `patch_status(obj, field_owner, force)`.
- A target-cluster client (the control-plane client, or the one returned by
  the function given to `with_remote_target_cluster`) with
  `resource_info(obj, retry_on_no_match)`, `patch(obj, field_owner, force)`,
  `delete(obj, propagation_policy)` and `is_ready(info)`; `is_ready` is not
  needed when a custom ready check is set.

## Example

```python
from kdeclare.options import with_spec_resolver
from kdeclare.reconciler import Request, new_from_manager
from kdeclare.spec import RenderMode, default_spec

resolver = default_spec("manifests/app.yaml", {}, RenderMode.RAW)
reconciler = new_from_manager(
    manager,            # provides a client, a config and an event recorder
    MyObject(),         # prototype Object of the reconciled type
    with_spec_resolver(resolver),
)

result = reconciler.reconcile(Request(namespace="kyma-system", name="sample"))
```

Each call to `reconcile` moves the object one step further: it registers the
`Resources` and `Installation` conditions, adds the finalizer, renders and
applies resources, and finally sets the state to `Ready` once all resources
are ready. The returned `Result` says whether and when to requeue. When the
object carries a deletion timestamp, the synced resources are deleted, the
pre-delete hooks run, and the finalizer is removed once nothing is left.

## What the package does not do

- It renders only raw manifests out of the box. `Reconciler.renderer_factories`
  maps `RenderMode.RAW` to `new_raw_renderer`; for `helm` or `kustomize` you
  must add a factory `(spec, client, options) -> Renderer` yourself. Such
  renderers are wrapped with the manifest cache automatically.
- It contains no cluster client, no controller loop and no command-line
  program: it does not watch objects or call `reconcile` for you.