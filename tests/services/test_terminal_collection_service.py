"""Tests for the terminal collection service."""

import pytest

from codestate.core.result import ErrorKind
from codestate.models.script import ExecutionMode, LifecycleEvent


@pytest.fixture
def two_scripts(script_service):
    first = script_service.create_script("api", "/proj", script="make api").value
    second = script_service.create_script("web", "/proj", script="make web").value
    return first, second


class TestTerminalCollectionService:
    """Test cases for TerminalCollectionService."""

    def test_create_keeps_reference_order(self, collection_service, two_scripts):
        api, web = two_scripts

        collection = collection_service.create_collection(
            "stack", "/proj", [web.id, api.id], lifecycle=[LifecycleEvent.OPEN],
            execution_mode=ExecutionMode.SAME_TERMINAL,
        ).value

        assert [r.id for r in collection.script_references] == [web.id, api.id]
        assert collection.script_references[0].root_path == "/proj"
        assert collection.execution_mode == ExecutionMode.SAME_TERMINAL

    def test_create_requires_existing_scripts(self, collection_service, two_scripts):
        api, _ = two_scripts

        result = collection_service.create_collection("stack", "/proj", [api.id, "ghost"])

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.error.meta["missing"] == ["ghost"]

    def test_create_requires_a_script(self, collection_service):
        assert collection_service.create_collection("empty", "/proj", []).kind == ErrorKind.INVALID_INPUT

    def test_resolve_reports_missing_references(self, collection_service, script_service, two_scripts):
        api, web = two_scripts
        collection = collection_service.create_collection("stack", "/proj", [api.id, web.id]).value
        script_service.delete_script(api.id)

        resolved = collection_service.get_collection_with_scripts("stack")

        assert resolved.ok
        assert [s.name for s in resolved.value.scripts] == ["web"]
        assert [r.id for r in resolved.value.missing_references] == [api.id]
        assert len(resolved.warnings) == 1
        assert collection_service.get_collection(collection.id).ok

    def test_list_by_lifecycle(self, collection_service, two_scripts):
        api, web = two_scripts
        collection_service.create_collection("on-open", "/proj", [api.id], lifecycle=[LifecycleEvent.OPEN])
        collection_service.create_collection("manual", "/proj", [web.id])

        names = [c.name for c in collection_service.list_collections("/proj", LifecycleEvent.OPEN).value]
        assert names == ["on-open"]

    def test_update_replaces_references(self, collection_service, two_scripts):
        api, web = two_scripts
        collection = collection_service.create_collection("stack", "/proj", [api.id]).value

        updated = collection_service.update_collection(collection.id, {"script_ids": [web.id], "name": "web-only"})

        assert updated.ok
        assert [r.id for r in updated.value.script_references] == [web.id]
        assert updated.value.name == "web-only"

    def test_update_with_missing_script(self, collection_service, two_scripts):
        api, _ = two_scripts
        collection = collection_service.create_collection("stack", "/proj", [api.id]).value

        assert collection_service.update_collection(collection.id, {"script_ids": ["ghost"]}).kind == ErrorKind.NOT_FOUND

    def test_delete_keeps_scripts(self, collection_service, script_service, two_scripts):
        api, _ = two_scripts
        collection = collection_service.create_collection("stack", "/proj", [api.id]).value

        assert collection_service.delete_collection(collection.id).ok
        assert collection_service.get_collection(collection.id).kind == ErrorKind.NOT_FOUND
        assert script_service.get_script(api.id).ok
