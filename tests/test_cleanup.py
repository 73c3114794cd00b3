import threading

import pytest

from kdeclare.cleanup import ConcurrentCleanup, DeletionNotFinished
from kdeclare.object import MultiError, NotFoundError, Unstructured
from kdeclare.resource_converter import ResourceInfo


class FakeClient:
    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.deleted = []
        self._lock = threading.Lock()

    def delete(self, obj, propagation_policy):
        with self._lock:
            self.deleted.append((obj.name, propagation_policy))
        outcome = self.outcomes.get(obj.name)
        if outcome is not None:
            raise outcome


def info(name):
    obj = Unstructured()
    obj.kind = "ConfigMap"
    obj.api_version = "v1"
    obj.name = name
    return ResourceInfo(object=obj, name=name)


def test_nothing_to_delete():
    client = FakeClient({})
    assert ConcurrentCleanup(client).run([]) is None
    assert client.deleted == []


def test_all_gone_finishes():
    client = FakeClient({"a": NotFoundError("a"), "b": NotFoundError("b")})
    assert ConcurrentCleanup(client).run([info("a"), info("b")]) is None
    assert sorted(name for name, _ in client.deleted) == ["a", "b"]


def test_still_present_not_finished():
    client = FakeClient({"a": NotFoundError("a")})
    with pytest.raises(DeletionNotFinished, match="deletion is not yet finished"):
        ConcurrentCleanup(client).run([info("a"), info("b")])


def test_errors_are_collected():
    client = FakeClient({"a": RuntimeError("boom"), "b": RuntimeError("bang"), "c": NotFoundError("c")})
    with pytest.raises(MultiError) as excinfo:
        ConcurrentCleanup(client).run([info("a"), info("b"), info("c")])
    assert sorted(str(err) for err in excinfo.value.errors) == ["bang", "boom"]


def test_background_policy_by_default():
    client = FakeClient({"a": NotFoundError("a")})
    ConcurrentCleanup(client).run([info("a")])
    assert client.deleted == [("a", "Background")]


def test_custom_policy_is_passed():
    client = FakeClient({"a": NotFoundError("a")})
    ConcurrentCleanup(client, policy="Foreground").run([info("a")])
    assert client.deleted == [("a", "Foreground")]