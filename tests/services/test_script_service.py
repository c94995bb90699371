"""Tests for the script service."""

import os

from codestate.core.result import ErrorKind
from codestate.models.script import ExecutionMode


class TestScriptService:
    """Test cases for ScriptService."""

    def test_create_normalizes_root(self, script_service, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        script = script_service.create_script("build", ".", script="make").value

        assert script.root_path == os.path.abspath(str(tmp_path))
        assert script.execution_mode == ExecutionMode.NEW_TERMINALS

    def test_create_rejects_both_forms(self, script_service):
        result = script_service.create_script("x", "/proj", script="a", commands=[{"command": "b"}])

        assert result.kind == ErrorKind.INVALID_INPUT

    def test_create_rejects_duplicate_priorities(self, script_service):
        result = script_service.create_script("x", "/proj", commands=[
            {"command": "a", "priority": 1},
            {"command": "b", "priority": 1},
        ])

        assert result.kind == ErrorKind.INVALID_INPUT
        assert "priorities" in result.error.message

    def test_bulk_create_continues_past_failures(self, script_service):
        result = script_service.create_scripts([
            {"name": "one", "root_path": "/proj", "script": "echo 1"},
            {"name": "two", "root_path": "/proj"},
            {"name": "one", "root_path": "/proj", "script": "echo dup"},
            {"name": "three", "root_path": "/proj", "script": "echo 3"},
        ]).value

        assert [s.name for s in result.created] == ["one", "three"]
        assert [f["name"] for f in result.failed] == ["two", "one"]
        assert result.failed[1]["error"].kind == ErrorKind.ALREADY_EXISTS
        assert result.total == 4

    def test_switching_to_commands_clears_script(self, script_service):
        script = script_service.create_script("build", "/proj", script="make").value

        updated = script_service.update_script(script.id, {"commands": [
            {"command": "make deps", "priority": 1},
            {"command": "make", "priority": 2},
        ]}).value

        assert updated.script is None
        assert [c.command for c in updated.ordered_commands()] == ["make deps", "make"]

    def test_switching_to_script_clears_commands(self, script_service):
        script = script_service.create_script("build", "/proj", commands=[{"command": "make"}]).value

        updated = script_service.update_script(script.id, {"script": "ninja"}).value

        assert updated.commands is None
        assert updated.script == "ninja"

    def test_update_rejects_duplicate_priorities(self, script_service):
        script = script_service.create_script("build", "/proj", script="make").value

        result = script_service.update_script(script.id, {"commands": [
            {"command": "a", "priority": 2},
            {"command": "b", "priority": 2},
        ]})

        assert result.kind == ErrorKind.INVALID_INPUT
        assert script_service.get_script(script.id).value.script == "make"

    def test_get_by_name_within_root(self, script_service):
        script_service.create_script("build", "/proj", script="make")
        other = script_service.create_script("build", "/other", script="ninja").value

        assert script_service.get_script("build", "/other").value.id == other.id
        assert script_service.get_script("build").kind == ErrorKind.INVALID_INPUT

    def test_delete_warns_about_referencing_collections(self, script_service, collection_service):
        script = script_service.create_script("build", "/proj", script="make").value
        collection_service.create_collection("dev", "/proj", [script.id])

        result = script_service.delete_script(script.id)

        assert result.ok
        assert result.warnings == (f"Terminal collection 'dev' references deleted script {script.id}",)

    def test_delete_unknown(self, script_service):
        assert script_service.delete_script("missing").kind == ErrorKind.NOT_FOUND

    def test_delete_by_root_path(self, script_service):
        script_service.create_script("a", "/proj", script="a")
        script_service.create_script("b", "/proj", script="b")
        script_service.create_script("c", "/other", script="c")

        assert len(script_service.delete_scripts_by_root_path("/proj").value.deleted) == 2
        assert [s.name for s in script_service.get_scripts().value] == ["c"]
