"""Concurrent server-side apply of resources."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Protocol

from kdeclare.object import MultiError, Unstructured
from kdeclare.resource_converter import ResourceInfo

_logger = logging.getLogger(__name__)

Converter = Callable[[Any, "tuple[str, str, str] | None"], Any]


class ServerSideApplyError(Exception):
    """Applying one or more resources failed."""

    def __init__(self, message: str, errors: list[BaseException]) -> None:
        super().__init__(message)
        self.errors = list(errors)


class _Patcher(Protocol):
    def patch(self, obj: Any, field_owner: str, force: bool) -> None: ...


class ConcurrentSSA:
    """Applies all resources at once with forced ownership for ``owner``.

    ``converter``, when given, may turn each object into a typed form using the
    mapping of its info; if it fails the object is applied unchanged.
    """

    def __init__(self, client: _Patcher, owner: str, converter: Converter | None = None) -> None:
        self.client = client
        self.owner = owner
        self.converter = converter

    def _convert(self, info: ResourceInfo) -> None:
        if self.converter is None:
            return
        try:
            info.object = self.converter(info.object, info.mapping)
        except Exception:  # noqa: BLE001 - fall back to the unconverted object
            return

    def _apply(self, info: ResourceInfo) -> BaseException | None:
        started = time.monotonic()
        self._convert(info)
        name = info.object_name()
        _logger.debug("apply %s", name)
        obj = info.object
        if not isinstance(obj, Unstructured):
            return TypeError(
                f"client object conversion for {name} failed, "
                "object is not a valid client object"
            )
        try:
            self.client.patch(obj, field_owner=self.owner, force=True)
        except Exception as err:  # noqa: BLE001 - returned to the caller
            return RuntimeError(f"patch for {name} failed: {err}")
        _logger.debug("apply %s finished in %.3fs", name, time.monotonic() - started)
        return None

    def run(self, resources: list[ResourceInfo]) -> None:
        started = time.monotonic()
        _logger.debug("ServerSideApply of %d resources by %s", len(resources), self.owner)
        outcomes: list[BaseException | None] = []
        if resources:
            with ThreadPoolExecutor(max_workers=len(resources)) as pool:
                outcomes = list(pool.map(self._apply, resources))
        elapsed = time.monotonic() - started
        errors = [err for err in outcomes if err is not None]
        if errors:
            raise ServerSideApplyError(
                f"ServerSideApply failed (after {elapsed:.3f}s): {MultiError(errors)}", errors
            )
        _logger.debug("ServerSideApply finished in %.3fs", elapsed)