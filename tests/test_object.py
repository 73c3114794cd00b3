import pytest

from kdeclare.object import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    AlreadyExistsError,
    Condition,
    MultiError,
    NotFoundError,
    Object,
    Resource,
    State,
    Status,
    Unstructured,
    find_status_condition,
    is_status_condition_true,
    resources_diff,
    set_status_condition,
)


@pytest.mark.parametrize("value", ["Ready", "Processing", "Error", "Deleting"])
def test_status_accepts_source_state_values(value):
    status = Status().with_state(State(value))
    assert status.state.value == value


def test_resource_id_joins_fields():
    res = Resource(name="n", namespace="ns", group="g", version="v", kind="K")
    assert res.id() == "/".join(["ns", "n", "g", "v", "K"])


def test_resource_to_unstructured_round_trip():
    res = Resource(name="web", namespace="prod", group="apps", version="v1", kind="Deployment")
    obj = res.to_unstructured()
    assert obj.name == "web"
    assert obj.namespace == "prod"
    assert obj.group == "apps"
    assert obj.version == "v1"
    assert obj.kind == "Deployment"


def test_core_group_resource_has_plain_version():
    obj = Resource(name="cm", version="v1", kind="ConfigMap").to_unstructured()
    assert obj.api_version == "v1"
    assert obj.group == ""
    assert "namespace" not in obj.object["metadata"]


def test_resources_diff_is_symmetric_in_argument_order():
    a = Resource("a", kind="K")
    b = Resource("b", kind="K")
    c = Resource("c", kind="K")
    assert resources_diff([a, b, c], [a]) == [b, c]
    assert resources_diff([a], [a, b, c]) == [b, c]
    assert resources_diff([a, b], [a, b]) == []


def test_with_state_does_not_mutate_original():
    status = Status()
    ready = status.with_state(State.READY)
    assert ready.state is State.READY
    assert status.state is State.EMPTY


def test_with_err_records_message_and_time():
    status = Status().with_state(State.ERROR).with_err(ValueError("broken"))
    assert status.last_operation.operation == "broken"
    assert status.last_operation.last_update_time is not None
    assert status.state is State.ERROR


def test_with_operation_sets_operation():
    status = Status().with_operation("working")
    assert status.last_operation.operation == "working"


def test_set_status_condition_appends_and_updates():
    conditions = []
    set_status_condition(conditions, Condition(type="Resources", status=CONDITION_FALSE, reason="r"))
    assert len(conditions) == 1
    first_time = conditions[0].last_transition_time
    assert first_time is not None
    assert not is_status_condition_true(conditions, "Resources")

    set_status_condition(conditions, Condition(type="Resources", status=CONDITION_FALSE, message="m2"))
    assert conditions[0].last_transition_time == first_time
    assert conditions[0].message == "m2"

    set_status_condition(conditions, Condition(type="Resources", status=CONDITION_TRUE))
    assert len(conditions) == 1
    assert is_status_condition_true(conditions, "Resources")
    assert conditions[0].last_transition_time >= first_time


def test_find_status_condition_missing():
    assert find_status_condition([Condition(type="A")], "B") is None


def test_unstructured_labels_round_trip_and_removal():
    obj = Unstructured()
    assert obj.labels == {}
    obj.labels = {"a": "b"}
    assert obj.labels == {"a": "b"}
    obj.labels = {}
    assert "labels" not in obj.object.get("metadata", {})


def test_to_dict_is_a_copy():
    obj = Unstructured({"metadata": {"name": "x"}})
    data = obj.to_dict()
    data["metadata"]["name"] = "y"
    assert obj.name == "x"


def test_object_component_name_and_status_equality():
    first = Object({"kind": "Sample"})
    second = Object({"kind": "Sample"})
    assert first.component_name == "sample"
    assert first == second
    second.status = second.status.with_state(State.READY)
    assert first != second


def test_multi_error_collects_messages():
    err = MultiError([NotFoundError("one"), AlreadyExistsError("two")])
    assert len(err.errors) == 2
    assert "one" in str(err) and "two" in str(err)
    with pytest.raises(MultiError):
        raise err