"""Object model for reconciled resources: status, conditions and unstructured objects."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"


class State(str, enum.Enum):
    """Lifecycle state of a reconciled object."""

    EMPTY = ""
    READY = "Ready"
    PROCESSING = "Processing"
    ERROR = "Error"
    DELETING = "Deleting"

    def __str__(self) -> str:
        return self.value


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Condition:
    """A single status condition."""

    type: str
    status: str = CONDITION_UNKNOWN
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime | None = None


@dataclass
class LastOperation:
    """The last operation performed by the control loop."""

    operation: str = ""
    last_update_time: datetime | None = None


@dataclass(frozen=True)
class Resource:
    """Identity of a resource that is synced into a cluster."""

    name: str
    namespace: str = ""
    group: str = ""
    version: str = ""
    kind: str = ""

    def to_unstructured(self) -> Unstructured:
        obj = Unstructured()
        obj.api_version = f"{self.group}/{self.version}" if self.group else self.version
        obj.kind = self.kind
        obj.name = self.name
        obj.namespace = self.namespace
        return obj

    def id(self) -> str:
        return "/".join([self.namespace, self.name, self.group, self.version, self.kind])


@dataclass
class Status:
    """Observed state of a reconciled object."""

    state: State = State.EMPTY
    conditions: list[Condition] = field(default_factory=list)
    synced: list[Resource] | None = None
    last_operation: LastOperation = field(default_factory=LastOperation)

    def with_state(self, state: State) -> Status:
        new = copy.deepcopy(self)
        new.state = State(state)
        return new

    def with_err(self, err: BaseException | str) -> Status:
        return self.with_operation(str(err))

    def with_operation(self, operation: str) -> Status:
        new = copy.deepcopy(self)
        new.last_operation = LastOperation(operation=operation, last_update_time=_now())
        return new


def resources_diff(resources_a: list[Resource], resources_b: list[Resource]) -> list[Resource]:
    """Return the resources of the longer list whose id is missing from the shorter one."""
    if len(resources_a) < len(resources_b):
        return resources_diff(resources_b, resources_a)
    known = {res.id() for res in resources_b}
    return [res for res in resources_a if res.id() not in known]


def find_status_condition(conditions: Iterable[Condition], condition_type: str) -> Condition | None:
    return next((c for c in conditions if c.type == condition_type), None)


def set_status_condition(conditions: list[Condition], condition: Condition) -> None:
    """Insert or update ``condition`` in ``conditions`` in place."""
    existing = find_status_condition(conditions, condition.type)
    if existing is None:
        new = copy.copy(condition)
        if new.last_transition_time is None:
            new.last_transition_time = _now()
        conditions.append(new)
        return
    if existing.status != condition.status:
        existing.status = condition.status
        existing.last_transition_time = condition.last_transition_time or _now()
    existing.reason = condition.reason
    existing.message = condition.message
    existing.observed_generation = condition.observed_generation


def is_status_condition_true(conditions: Iterable[Condition], condition_type: str) -> bool:
    found = find_status_condition(conditions, condition_type)
    return found is not None and found.status == CONDITION_TRUE


class Unstructured:
    """A resource held as a plain nested dictionary."""

    def __init__(self, obj: dict[str, Any] | None = None) -> None:
        self.object: dict[str, Any] = obj if obj is not None else {}

    def _meta_get(self, key: str, default: Any = None) -> Any:
        metadata = self.object.get("metadata")
        if not isinstance(metadata, dict):
            return default
        return metadata.get(key, default)

    def _meta_set(self, key: str, value: Any) -> None:
        if value in (None, "", {}, []):
            metadata = self.object.get("metadata")
            if isinstance(metadata, dict):
                metadata.pop(key, None)
            return
        self.object.setdefault("metadata", {})[key] = value

    @property
    def api_version(self) -> str:
        return self.object.get("apiVersion", "")

    @api_version.setter
    def api_version(self, value: str) -> None:
        if value:
            self.object["apiVersion"] = value
        else:
            self.object.pop("apiVersion", None)

    @property
    def kind(self) -> str:
        return self.object.get("kind", "")

    @kind.setter
    def kind(self, value: str) -> None:
        if value:
            self.object["kind"] = value
        else:
            self.object.pop("kind", None)

    @property
    def group(self) -> str:
        group, sep, _ = self.api_version.rpartition("/")
        return group if sep else ""

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    @property
    def name(self) -> str:
        return self._meta_get("name", "")

    @name.setter
    def name(self, value: str) -> None:
        self._meta_set("name", value)

    @property
    def namespace(self) -> str:
        return self._meta_get("namespace", "")

    @namespace.setter
    def namespace(self, value: str) -> None:
        self._meta_set("namespace", value)

    @property
    def labels(self) -> dict[str, str]:
        return dict(self._meta_get("labels") or {})

    @labels.setter
    def labels(self, value: dict[str, str] | None) -> None:
        self._meta_set("labels", dict(value) if value else None)

    @property
    def annotations(self) -> dict[str, str]:
        return dict(self._meta_get("annotations") or {})

    @annotations.setter
    def annotations(self, value: dict[str, str] | None) -> None:
        self._meta_set("annotations", dict(value) if value else None)

    @property
    def finalizers(self) -> list[str]:
        return list(self._meta_get("finalizers") or [])

    @finalizers.setter
    def finalizers(self, value: list[str] | None) -> None:
        self._meta_set("finalizers", list(value) if value else None)

    @property
    def resource_version(self) -> str:
        return self._meta_get("resourceVersion", "")

    @resource_version.setter
    def resource_version(self, value: str) -> None:
        self._meta_set("resourceVersion", value)

    @property
    def generation(self) -> int:
        return int(self._meta_get("generation", 0) or 0)

    @generation.setter
    def generation(self, value: int) -> None:
        self._meta_set("generation", value or None)

    @property
    def deletion_timestamp(self) -> str | None:
        return self._meta_get("deletionTimestamp")

    @deletion_timestamp.setter
    def deletion_timestamp(self, value: str | None) -> None:
        self._meta_set("deletionTimestamp", value)

    @property
    def managed_fields(self) -> list[Any]:
        return list(self._meta_get("managedFields") or [])

    @managed_fields.setter
    def managed_fields(self, value: list[Any] | None) -> None:
        self._meta_set("managedFields", list(value) if value else None)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self.object)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.object == other.object

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.object!r})"


class Object(Unstructured):
    """A reconciled custom resource with a typed status."""

    def __init__(self, obj: dict[str, Any] | None = None, status: Status | None = None) -> None:
        super().__init__(obj)
        self.status = status if status is not None else Status()

    @property
    def component_name(self) -> str:
        return self.kind.lower()

    def __eq__(self, other: object) -> bool:
        result = super().__eq__(other)
        if result is NotImplemented or not result:
            return result
        return self.status == other.status  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.object!r}, status={self.status!r})"


class NotFoundError(LookupError):
    """The requested resource does not exist."""


class AlreadyExistsError(Exception):
    """The resource to be created already exists."""


class MultiError(Exception):
    """Several errors collected from concurrent operations."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(str(err) for err in self.errors))