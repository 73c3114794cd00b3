"""Conversion between synced resource identities and resource infos."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from kdeclare.object import MultiError, Resource, Unstructured


class NoMatchError(LookupError):
    """The kind of an object is not known to the cluster."""


@dataclass
class ResourceInfo:
    """An object together with how the cluster maps its kind.

    ``mapping`` is the ``(group, version, kind)`` the cluster resolved for the
    object, or None when no mapping is known. ``namespace_scoped`` tells whether
    the mapped kind lives in a namespace; it only counts when a mapping is set.
    """

    object: Unstructured
    name: str = ""
    namespace: str = ""
    resource_version: str = ""
    mapping: tuple[str, str, str] | None = None
    namespace_scoped: bool = True

    def namespaced(self) -> bool:
        if self.mapping is not None:
            return self.namespace_scoped
        return bool(self.namespace)

    def group_version_kind(self) -> tuple[str, str, str]:
        if self.mapping is not None:
            return self.mapping
        return self.object.group, self.object.version, self.object.kind

    def object_name(self) -> str:
        """A readable ``kind[.group]/name`` identifier of the object."""
        group, _version, kind = self.group_version_kind()
        prefix = f"{kind.lower()}.{group}" if group else kind.lower()
        return f"{prefix}/{self.name}"


class ResourceInfoConverter(Protocol):
    def resource_info(self, obj: Unstructured, retry_on_no_match: bool) -> ResourceInfo:
        """Return the info of ``obj``; raise NoMatchError for unknown kinds."""


def infos_to_resources(infos: list[ResourceInfo]) -> list[Resource]:
    """Return the identities of ``infos``, preferring the mapped kind of each."""
    resources = []
    for info in infos:
        group, version, kind = info.group_version_kind()
        resources.append(
            Resource(name=info.name, namespace=info.namespace, group=group, version=version, kind=kind)
        )
    return resources


class ResourceToInfoConverter:
    """Builds resource infos through a converter that knows the cluster's kinds."""

    def __init__(self, converter: ResourceInfoConverter, default_namespace: str) -> None:
        self.converter = converter
        self.default_namespace = default_namespace

    def resources_to_infos(self, resources: list[Resource]) -> list[ResourceInfo]:
        """Return infos of the synced ``resources``; raise MultiError if any fail."""
        current: list[ResourceInfo] = []
        errors: list[BaseException] = []
        for res in resources:
            try:
                current.append(self.converter.resource_info(res.to_unstructured(), True))
            except Exception as err:  # noqa: BLE001 - collected and reported together
                errors.append(err)
        if errors:
            raise MultiError(errors)
        return current

    def unstructured_to_infos(self, resources: list[Unstructured]) -> list[ResourceInfo]:
        """Return infos of rendered ``resources`` with normalised namespaces.

        Objects of unknown kind are kept without a mapping so that applying them
        can fall back to the unstructured form.
        """
        target: list[ResourceInfo] = []
        errors: list[BaseException] = []
        for obj in resources:
            try:
                info = self.converter.resource_info(obj, True)
            except NoMatchError:
                target.append(
                    ResourceInfo(
                        object=obj,
                        name=obj.name,
                        namespace=obj.namespace,
                        resource_version=obj.resource_version,
                    )
                )
                continue
            except Exception as err:  # noqa: BLE001 - collected and reported together
                errors.append(err)
                continue
            target.append(info)
        if errors:
            raise MultiError(errors)
        self._normalise_namespaces(target)
        return target

    def _normalise_namespaces(self, infos: list[ResourceInfo]) -> None:
        # Works around malformed resources from bad charts or wrong type configs.
        for info in infos:
            obj = info.object
            if not isinstance(obj, Unstructured):
                continue
            if info.namespaced():
                if not info.namespace or not obj.namespace:
                    info.namespace = self.default_namespace
                    obj.namespace = self.default_namespace
            elif info.namespace or obj.namespace:
                info.namespace = ""
                obj.namespace = ""