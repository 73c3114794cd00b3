"""Functional options configuring the first-generation manifest reconciler."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable

from kdeclare.resolver import DefaultManifestResolver

ReconcilerOption = Callable[["ManifestOptions"], "ManifestOptions"]


@dataclass
class ManifestOptions:
    """Settings of a manifest reconciler."""

    force: bool = False
    verify: bool = False
    resource_labels: dict[str, str] = field(default_factory=dict)
    object_transforms: list[Callable[..., Any]] = field(default_factory=list)
    post_runs: list[Callable[..., Any]] = field(default_factory=list)
    manifest_resolver: Any = None
    finalizer: str = ""

    def is_finalizer_set(self) -> bool:
        return self.finalizer != ""


def with_custom_resource_labels(labels: dict[str, str]) -> ReconcilerOption:
    """Add labels to be set on the reconciled resource."""
    def apply(options: ManifestOptions) -> ManifestOptions:
        return dataclasses.replace(options, resource_labels={**options.resource_labels, **labels})
    return apply


def with_post_render_transform(*transforms: Callable[..., Any]) -> ReconcilerOption:
    """Append transforms applied to rendered manifest resources."""
    def apply(options: ManifestOptions) -> ManifestOptions:
        return dataclasses.replace(
            options, object_transforms=[*options.object_transforms, *transforms]
        )
    return apply


def with_manifest_resolver(resolver: Any) -> ReconcilerOption:
    """Use ``resolver`` to obtain installation information."""
    def apply(options: ManifestOptions) -> ManifestOptions:
        return dataclasses.replace(options, manifest_resolver=resolver)
    return apply


def with_default_resolver() -> ReconcilerOption:
    """Resolve installation information from the object's spec."""
    return with_manifest_resolver(DefaultManifestResolver())


def with_resources_ready(verify: bool) -> ReconcilerOption:
    """Verify that installed resources reach their ready state."""
    def apply(options: ManifestOptions) -> ManifestOptions:
        return dataclasses.replace(options, verify=verify)
    return apply


def with_finalizer(finalizer: str) -> ReconcilerOption:
    """Add ``finalizer`` to the reconciled resource."""
    def apply(options: ManifestOptions) -> ManifestOptions:
        return dataclasses.replace(options, finalizer=finalizer)
    return apply


def with_post_run(*runs: Callable[..., Any]) -> ReconcilerOption:
    """Append hooks run after installation, uninstallation or consistency checks."""
    def apply(options: ManifestOptions) -> ManifestOptions:
        return dataclasses.replace(options, post_runs=[*options.post_runs, *runs])
    return apply


def with_all(*options: ReconcilerOption) -> ReconcilerOption:
    """Combine several options into one, applied in order."""
    def apply(current: ManifestOptions) -> ManifestOptions:
        for option in options:
            current = option(current)
        return current
    return apply


def build_options(*options: ReconcilerOption) -> ManifestOptions:
    """Apply ``options`` to the defaults; a manifest resolver is required."""
    result = with_all(*options)(ManifestOptions())
    if result.manifest_resolver is None:
        raise ValueError("no manifest resolver set, reconciliation cannot proceed")
    return result