"""Resolution of installation information from a custom resource's spec."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from kdeclare.object import Unstructured

_logger = logging.getLogger(__name__)

SPEC_KEY = "spec"
CHART_PATH_KEY = "chartPath"
RELEASE_NAME_KEY = "releaseName"
CHART_FLAGS_KEY = "chartFlags"

ERR_MSG_SPEC = "`spec` does not exist in `{}`"
ERR_MSG_MANDATORY = "invalid type conversion for `%s` or does not exist in spec "
INFO_MSG_OPTIONAL = "invalid type conversion for `{}` or optional field is not given in spec"


@dataclass
class InstallationSpec:
    """Chart information needed to install a component."""

    chart_path: str = ""
    release_name: str = ""
    chart_flags: dict[str, Any] = field(default_factory=dict)


class ResolveError(Exception):
    """A mandatory field could not be resolved from an object."""

    def __init__(self, object_name: str, err: BaseException | str) -> None:
        self.object_name = object_name
        self.err = str(err)
        super().__init__(f"Error resolving object `{object_name}`: err {self.err}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolveError):
            return NotImplemented
        return (self.object_name, self.err) == (other.object_name, other.err)

    def __hash__(self) -> int:
        return hash((self.object_name, self.err))


def _object_key(obj: Unstructured) -> str:
    return f"{obj.namespace}/{obj.name}" if obj.namespace else obj.name


class DefaultManifestResolver:
    """Reads chart information from the ``spec`` of an object."""

    def get(self, obj: Unstructured) -> InstallationSpec:
        if not isinstance(obj, Unstructured):
            raise TypeError(f"no matching type for `{obj!r}`")
        object_name = _object_key(obj)

        spec = obj.object.get(SPEC_KEY)
        if not isinstance(spec, dict):
            raise ValueError(ERR_MSG_SPEC.format(object_name))

        chart_path = spec.get(CHART_PATH_KEY)
        if not isinstance(chart_path, str) or not chart_path:
            raise ResolveError(object_name, ERR_MSG_MANDATORY)

        release_name = spec.get(RELEASE_NAME_KEY)
        if not isinstance(release_name, str):
            _logger.debug(INFO_MSG_OPTIONAL.format(RELEASE_NAME_KEY))
            release_name = ""

        chart_flags = spec.get(CHART_FLAGS_KEY)
        if not isinstance(chart_flags, dict):
            _logger.debug(INFO_MSG_OPTIONAL.format(CHART_FLAGS_KEY))
            chart_flags = {}

        return InstallationSpec(
            chart_path=chart_path,
            release_name=release_name,
            chart_flags=dict(chart_flags),
        )