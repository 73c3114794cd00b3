import pytest

from kdeclare.object import Object
from kdeclare.resolver import (
    ERR_MSG_MANDATORY,
    DefaultManifestResolver,
    InstallationSpec,
    ResolveError,
)


def _crd(name, namespace, spec):
    obj = Object({"spec": spec})
    obj.name = name
    obj.namespace = namespace
    return obj


def test_resolve_object_with_valid_values():
    obj = _crd(
        "testCR",
        "default",
        {"chartPath": "path/to/chart", "releaseName": "test-release", "chartFlags": {}},
    )
    assert DefaultManifestResolver().get(obj) == InstallationSpec(
        chart_path="path/to/chart", release_name="test-release", chart_flags={}
    )


def test_chart_path_not_given():
    obj = _crd("testCR", "default", {"chartPath": "", "releaseName": "", "chartFlags": {}})
    with pytest.raises(ResolveError) as info:
        DefaultManifestResolver().get(obj)
    assert info.value == ResolveError("default/testCR", ERR_MSG_MANDATORY)
    assert info.value.object_name == "default/testCR"
    assert str(info.value) == f"Error resolving object `default/testCR`: err {ERR_MSG_MANDATORY}"


def test_resolve_object_with_minimal_valid_input():
    obj = _crd("testCR", "default", {"chartPath": "path/to/chart"})
    assert DefaultManifestResolver().get(obj) == InstallationSpec(
        chart_path="path/to/chart", release_name=""
    )


def test_missing_spec_is_an_error():
    obj = Object()
    obj.name = "testCR"
    obj.namespace = "default"
    with pytest.raises(ValueError, match="default/testCR"):
        DefaultManifestResolver().get(obj)


def test_non_object_is_rejected():
    with pytest.raises(TypeError):
        DefaultManifestResolver().get({"spec": {}})