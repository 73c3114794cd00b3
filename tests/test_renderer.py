import pytest

from kdeclare.object import Object, State, Status
from kdeclare.options import Options
from kdeclare.renderer import (
    ConditionsNotYetRegistered,
    FakeRecorder,
    PrerequisitesNotFulfilled,
    RawRenderer,
    new_raw_renderer,
)
from kdeclare.spec import Spec


def test_new_raw_renderer():
    recorder = FakeRecorder()
    got = new_raw_renderer(Spec(path="test-Path"), Options(event_recorder=recorder))
    assert got == RawRenderer(recorder=recorder, path="test-Path")
    assert got.recorder is recorder


@pytest.mark.parametrize("remove", [False, True])
def test_prerequisites_are_noop(remove):
    recorder = FakeRecorder()
    renderer = RawRenderer(recorder=recorder, path="test-Path")
    if remove:
        result = renderer.remove_prerequisites(None)
    else:
        result = renderer.ensure_prerequisites(None)
    assert result is None
    assert renderer == RawRenderer(recorder=recorder, path="test-Path")
    assert recorder.events == []


def test_initialize_is_noop():
    recorder = FakeRecorder()
    renderer = RawRenderer(recorder=recorder, path="test-Path")
    assert renderer.initialize(None) is None
    assert recorder.events == []


def test_render_fails_on_missing_file(tmp_path):
    recorder = FakeRecorder()
    obj = Object(status=Status())
    renderer = RawRenderer(recorder=recorder, path=str(tmp_path / "test-Path-does-not-exist"))
    with pytest.raises(FileNotFoundError) as info:
        renderer.render(obj)
    assert len(recorder.events) == 1
    assert "ReadRawManifest" in recorder.events[0]
    assert obj.status.state == State.ERROR
    assert obj.status.last_operation.operation == str(info.value)


def test_render_succeeds(tmp_path):
    path = tmp_path / "test-raw-render"
    path.write_bytes(b"test: true")
    recorder = FakeRecorder()
    obj = Object(status=Status())
    renderer = RawRenderer(recorder=recorder, path=str(path))
    assert renderer.render(obj) == b"test: true"
    assert recorder.events == []
    assert obj.status.state == State.EMPTY


def test_fake_recorder_formats_events():
    recorder = FakeRecorder()
    recorder.event(None, "Normal", "Reason", "some message")
    assert recorder.events == ["Normal Reason some message"]


def test_error_messages():
    assert str(ConditionsNotYetRegistered()) == "conditions have not yet been registered in status"
    assert str(PrerequisitesNotFulfilled()) == "prerequisites for installation are not fulfilled"