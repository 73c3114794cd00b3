"""Renderer interface, event recorders and the raw manifest renderer."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kdeclare.object import Object, State

if TYPE_CHECKING:
    from kdeclare.options import Options
    from kdeclare.spec import Spec


class ConditionsNotYetRegistered(Exception):
    """The status conditions have not been registered yet."""

    def __init__(self, message: str = "conditions have not yet been registered in status") -> None:
        super().__init__(message)


class PrerequisitesNotFulfilled(Exception):
    """The prerequisites for an installation are not met."""

    def __init__(self, message: str = "prerequisites for installation are not fulfilled") -> None:
        super().__init__(message)


class EventRecorder(abc.ABC):
    """Records events about reconciled objects."""

    @abc.abstractmethod
    def event(self, obj: Any, event_type: str, reason: str, message: str) -> None:
        """Record one event of ``event_type`` with ``reason`` and ``message`` for ``obj``."""


class FakeRecorder(EventRecorder):
    """Keeps recorded events as strings of the form ``"<type> <reason> <message>"``."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def event(self, obj: Any, event_type: str, reason: str, message: str) -> None:
        self.events.append(f"{event_type} {reason} {message}")


class Renderer(abc.ABC):
    """Turns a specification into a manifest and manages its prerequisites."""

    @abc.abstractmethod
    def initialize(self, obj: Object) -> None:
        """Prepare the renderer for ``obj``."""

    @abc.abstractmethod
    def ensure_prerequisites(self, obj: Object) -> None:
        """Make sure everything the manifest needs is installed."""

    @abc.abstractmethod
    def render(self, obj: Object) -> bytes:
        """Return the rendered manifest."""

    @abc.abstractmethod
    def remove_prerequisites(self, obj: Object) -> None:
        """Remove what ``ensure_prerequisites`` installed."""


@dataclass
class RawRenderer(Renderer):
    """Renders a manifest by reading it from a file as is."""

    recorder: EventRecorder | None
    path: str

    def initialize(self, obj: Object) -> None:
        return None

    def ensure_prerequisites(self, obj: Object) -> None:
        return None

    def render(self, obj: Object) -> bytes:
        status = obj.status
        try:
            return Path(self.path).read_bytes()
        except OSError as err:
            if self.recorder is not None:
                self.recorder.event(obj, "Warning", "ReadRawManifest", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise

    def remove_prerequisites(self, obj: Object) -> None:
        return None


def new_raw_renderer(spec: Spec, options: Options) -> RawRenderer:
    """Create a raw renderer reading the manifest at ``spec.path``."""
    return RawRenderer(recorder=options.event_recorder, path=spec.path)