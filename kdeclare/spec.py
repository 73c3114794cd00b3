"""Specifications describing what to render for a reconciled object."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from kdeclare.object import Object


class RenderMode(str, enum.Enum):
    """How a manifest is produced."""

    HELM = "helm"
    KUSTOMIZE = "kustomize"
    RAW = "raw"

    def __str__(self) -> str:
        return self.value


@dataclass
class Spec:
    """What to render: name, source path, values and mode."""

    manifest_name: str = ""
    path: str = ""
    values: Any = None
    mode: RenderMode | None = None


class SpecResolver(Protocol):
    def spec(self, obj: Object) -> Spec:
        """Return the specification for ``obj``."""


@dataclass
class CustomSpecFns:
    """A resolver built from one function per specification field."""

    manifest_name_fn: Callable[[Object], str]
    path_fn: Callable[[Object], str]
    values_fn: Callable[[Object], Any]
    mode_fn: Callable[[Object], RenderMode]

    def spec(self, obj: Object) -> Spec:
        return Spec(
            manifest_name=self.manifest_name_fn(obj),
            path=self.path_fn(obj),
            values=self.values_fn(obj),
            mode=self.mode_fn(obj),
        )


def default_spec(path: str, values: Any, mode: RenderMode) -> CustomSpecFns:
    """A static resolver using the object's component name and fixed path, values and mode."""
    return CustomSpecFns(
        manifest_name_fn=lambda obj: obj.component_name,
        path_fn=lambda _obj: path,
        values_fn=lambda _obj: values,
        mode_fn=lambda _obj: mode,
    )