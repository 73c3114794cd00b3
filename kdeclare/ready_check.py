"""Checks whether resources in a cluster are ready for use."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Protocol

from kdeclare.object import MultiError, NotFoundError, Unstructured
from kdeclare.resource_converter import ResourceInfo

_logger = logging.getLogger(__name__)


class ResourcesNotReady(Exception):
    """At least one resource is not ready yet."""

    def __init__(self, message: str = "resources are not ready") -> None:
        super().__init__(message)


class ConcurrentReadyCheck:
    """Asks ``is_ready`` about every resource at once.

    A resource reported as not ready takes precedence over any error; errors
    raised by ``is_ready`` are collected into a MultiError.
    """

    def __init__(self, is_ready: Callable[[ResourceInfo], bool]) -> None:
        self.is_ready = is_ready

    def _check(self, info: ResourceInfo) -> BaseException | None:
        try:
            ready = self.is_ready(info)
        except Exception as err:  # noqa: BLE001 - returned to the caller
            return err
        return None if ready else ResourcesNotReady()

    def run(self, resources: list[ResourceInfo]) -> None:
        started = time.monotonic()
        _logger.debug("ReadyCheck of %d resources", len(resources))
        if not resources:
            return
        with ThreadPoolExecutor(max_workers=len(resources)) as pool:
            outcomes = list(pool.map(self._check, resources))
        for err in outcomes:
            if isinstance(err, ResourcesNotReady):
                raise err
        errors = [err for err in outcomes if err is not None]
        if errors:
            raise MultiError(errors)
        _logger.debug(
            "ReadyCheck finished for %d resources in %.3fs",
            len(resources), time.monotonic() - started,
        )


class _Reader(Protocol):
    def get(self, key: tuple[str, str], obj: Any) -> None: ...


class ExistsReadyCheck:
    """Considers resources ready when reading them raises nothing but NotFoundError.

    The reader is called as ``reader.get((namespace, name), obj)``.
    """

    def __init__(self, reader: _Reader) -> None:
        self.reader = reader

    def run(self, resources: list[ResourceInfo]) -> None:
        for info in resources:
            obj = info.object
            if not isinstance(obj, Unstructured):
                raise TypeError("object in resource info is not a valid client object")
            try:
                self.reader.get((obj.namespace, obj.name), obj)
            except NotFoundError:
                continue