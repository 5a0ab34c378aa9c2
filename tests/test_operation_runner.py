import pytest

from tests.shared_stubs import build_services
from vibe_ops.logic.operation_runner import OperationRunner
from vibe_ops.logic.registry import ProcessorRegistry
from vibe_ops.models import ErrorKind, Operation, OperationResult, ServiceResult
from vibe_ops.processors import build_default_registry


def _runner() -> OperationRunner:
    return OperationRunner(build_default_registry())


@pytest.mark.asyncio
async def test_scenario_append_fills_defaults():
    result = await _runner().apply(
        {"plot": {"scenarios": []}},
        [{"path": "plot.scenarios.append", "operation": "put", "value": {"name": "Intro"}}],
    )

    assert result.result == {"plot": {"scenarios": [{"name": "Intro", "description": ""}]}}
    assert result.success_count == 1
    assert result.errors == []


@pytest.mark.asyncio
async def test_legacy_first_message_path_is_renamed():
    result = await _runner().apply(
        {}, [{"path": "character.first_mes", "operation": "set", "value": "Hi"}]
    )

    assert result.result == {"character": {"example_dialogue": "Hi"}}
    assert result.errors == []


@pytest.mark.asyncio
async def test_personality_is_folded_into_existing_description():
    result = await _runner().apply(
        {"character": {"description": "A knight."}},
        [{"path": "character.personality", "operation": "set", "value": "Brave"}],
    )

    assert result.result["character"]["description"] == (
        "A knight.\n\n**Personality:**\nBrave"
    )
    assert "personality" not in result.result["character"]


@pytest.mark.asyncio
async def test_personality_without_description_has_no_processor():
    result = await _runner().apply(
        {"character": {}},
        [{"path": "character.personality", "operation": "set", "value": "Brave"}],
    )

    assert result.success_count == 0
    assert [error.kind for error in result.errors] == [ErrorKind.NO_PROCESSOR_FOUND]


@pytest.mark.asyncio
async def test_field_set_beyond_length_extends_with_defaults():
    result = await _runner().apply(
        {"character": {"lorebook": {"entries": []}}},
        [{"path": "character.lorebook.entries[2].content", "operation": "set", "value": "Lore"}],
    )

    entries = result.result["character"]["lorebook"]["entries"]
    assert result.errors == []
    assert len(entries) == 3
    assert entries[0]["name"] == "New Entry"
    assert entries[2]["content"] == "Lore"


@pytest.mark.asyncio
async def test_append_replay_adds_twice_but_indexed_set_is_idempotent():
    append = Operation(path="plot.scenarios.append", operation="put", value={"name": "A"})
    indexed = Operation(path="plot.scenarios[0]", operation="set", value={"name": "B"})

    appended = await _runner().apply({}, [append, append])
    replaced = await _runner().apply({}, [indexed, indexed])

    assert len(appended.result["plot"]["scenarios"]) == 2
    assert replaced.result["plot"]["scenarios"] == [{"name": "B", "description": ""}]


@pytest.mark.asyncio
async def test_json_like_values_are_parsed_and_invalid_json_is_kept():
    result = await _runner().apply(
        {},
        [
            {"path": "character.lorebook.entries[0].keys", "operation": "set", "value": '["sword", "king"]'},
            {"path": "character.lorebook.entries[0].content", "operation": "set", "value": "[not json}"},
        ],
    )

    entry = result.result["character"]["lorebook"]["entries"][0]
    assert entry["keys"] == ["sword", "king"]
    assert entry["content"] == "[not json}"
    assert result.errors == []


@pytest.mark.asyncio
async def test_one_bad_path_does_not_abort_batch():
    operations = [
        {"path": "character.name", "operation": "set", "value": "Aria"},
        {"path": "plot.scenarios.append", "operation": "put", "value": {"name": "Intro"}},
        {"path": "character.nonexistent_thing", "operation": "set", "value": 1},
        {"path": "common.title", "operation": "set", "value": "Saga"},
        {"path": "plot.description", "operation": "set", "value": "A quest"},
    ]

    result = await _runner().apply({}, operations)

    assert result.success_count == 4
    assert len(result.errors) == 1
    assert result.errors[0].kind == ErrorKind.NO_PROCESSOR_FOUND
    assert result.errors[0].context["index"] == 2
    assert result.result["character"]["name"] == "Aria"
    assert result.result["common"]["title"] == "Saga"
    assert result.result["plot"]["description"] == "A quest"
    assert result.summary == "Applied 4 of 5 operations, 1 failed"


@pytest.mark.asyncio
async def test_input_resource_is_not_mutated():
    original = {"plot": {"scenarios": []}}

    await _runner().apply(
        original, [{"path": "plot.scenarios.append", "operation": "put", "value": {}}]
    )

    assert original == {"plot": {"scenarios": []}}


@pytest.mark.asyncio
async def test_raising_handler_is_recorded_as_unexpected_error():
    def explode(context, match):
        raise RuntimeError("boom")

    registry = ProcessorRegistry()
    registry.register_processor("common.title", explode, "explodes")
    registry.register_processor("common.subtitle", lambda ctx, m: OperationResult.ok(ctx.resource))

    result = await OperationRunner(registry).apply(
        {},
        [
            {"path": "common.title", "operation": "set", "value": "x"},
            {"path": "common.subtitle", "operation": "set", "value": "y"},
        ],
    )

    assert result.success_count == 1
    error = result.errors[0]
    assert error.kind == ErrorKind.UNEXPECTED_ERROR
    assert error.error == "boom"
    assert error.context["index"] == 0
    assert "RuntimeError" in error.context["stack"]


@pytest.mark.asyncio
async def test_unsupported_operation_is_handler_failure():
    result = await _runner().apply(
        {}, [{"path": "plot.scenarios.append", "operation": "set", "value": {}}]
    )

    assert result.errors[0].kind == ErrorKind.HANDLER_FAILURE


@pytest.mark.asyncio
async def test_invalid_wire_operation_is_recorded():
    result = await _runner().apply(
        {}, [{"path": "common.title", "operation": "upsert", "value": "x"}]
    )

    assert result.success_count == 0
    assert result.errors[0].kind == ErrorKind.HANDLER_FAILURE
    assert result.errors[0].operation["operation"] == "upsert"


@pytest.mark.asyncio
async def test_async_handler_is_awaited(mocker):
    handler = mocker.AsyncMock(return_value=OperationResult.ok({"done": True}))
    registry = ProcessorRegistry()
    registry.register_processor("common.title", handler, "async")

    result = await OperationRunner(registry).apply(
        {}, [{"path": "common.title", "operation": "set", "value": "x"}]
    )

    handler.assert_awaited_once()
    assert result.result == {"done": True}


@pytest.mark.asyncio
async def test_failed_operations_leave_no_partial_containers(mocker):
    services = build_services()
    services.data_store_nodes.update_name = mocker.AsyncMock(
        return_value=ServiceResult.fail("locked")
    )

    result = await OperationRunner(build_default_registry(), services).apply(
        {},
        [
            {"path": "plot.scenarios.append", "operation": "set", "value": {}},
            {"path": "dataStoreNodes.n1.name", "operation": "set", "value": "X"},
        ],
        flow_id="flow-1",
    )

    assert [error.kind for error in result.errors] == [
        ErrorKind.HANDLER_FAILURE,
        ErrorKind.SERVICE_CALL_FAILURE,
    ]
    assert result.success_count == 0
    assert result.result == {}


@pytest.mark.asyncio
async def test_raising_handler_changes_are_discarded():
    def scribble_then_explode(context, match):
        context.resource.setdefault("common", {})["title"] = "half-written"
        raise RuntimeError("boom")

    registry = ProcessorRegistry()
    registry.register_processor("common.title", scribble_then_explode, "explodes")

    result = await OperationRunner(registry).apply(
        {"common": {"title": "Saga"}},
        [{"path": "common.title", "operation": "set", "value": "x"}],
    )

    assert result.errors[0].kind == ErrorKind.UNEXPECTED_ERROR
    assert result.result == {"common": {"title": "Saga"}}
