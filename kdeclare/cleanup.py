"""Concurrent deletion of resources from a cluster."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Protocol

from kdeclare.object import MultiError, NotFoundError
from kdeclare.resource_converter import ResourceInfo

PROPAGATION_BACKGROUND = "Background"


class DeletionNotFinished(Exception):
    """Some resources still exist after deletion was requested."""

    def __init__(self, message: str = "deletion is not yet finished") -> None:
        super().__init__(message)


class _Deleter(Protocol):
    def delete(self, obj: Any, propagation_policy: str) -> None: ...


def _outcomes(func: Callable[[ResourceInfo], BaseException | None],
              infos: list[ResourceInfo]) -> list[BaseException | None]:
    if not infos:
        return []
    with ThreadPoolExecutor(max_workers=len(infos)) as pool:
        return list(pool.map(func, infos))


class ConcurrentCleanup:
    """Deletes all given resources at once and reports whether they are gone."""

    def __init__(self, client: _Deleter, policy: str = PROPAGATION_BACKGROUND) -> None:
        self.client = client
        self.policy = policy

    def _delete(self, info: ResourceInfo) -> BaseException | None:
        try:
            self.client.delete(info.object, propagation_policy=self.policy)
        except Exception as err:  # noqa: BLE001 - returned to the caller
            return err
        return None

    def run(self, infos: list[ResourceInfo]) -> None:
        """Delete ``infos``.

        Returns only when every resource was already absent. Raises MultiError
        on deletion failures and DeletionNotFinished while resources remain.
        """
        present = len(infos)
        errors: list[BaseException] = []
        for err in _outcomes(self._delete, infos):
            if isinstance(err, NotFoundError):
                present -= 1
            elif err is not None:
                errors.append(err)
        if errors:
            raise MultiError(errors)
        if present > 0:
            raise DeletionNotFinished()