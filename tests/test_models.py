import pytest
from pydantic import ValidationError

from vibe_ops.models import EdgeDescriptor, ErrorKind, Operation, OperationResult


def test_operation_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        Operation(path="character.name", operation="upsert", value="x")


def test_operation_rejects_blank_path():
    with pytest.raises(ValidationError):
        Operation(path="   ", operation="set")


def test_operation_result_helpers():
    failed = OperationResult.fail("nope", ErrorKind.PERSISTENCE_FAILURE)

    assert OperationResult.ok({"a": 1}).success is True
    assert failed.success is False
    assert failed.error_kind == ErrorKind.PERSISTENCE_FAILURE


def test_edge_descriptor_wire_shape_uses_camel_case():
    edge = EdgeDescriptor(id="e1", source="a", target="b", sourceHandle="true", label="True")

    assert edge.to_wire() == {
        "id": "e1",
        "source": "a",
        "target": "b",
        "sourceHandle": "true",
        "label": "True",
        "type": "default",
    }
