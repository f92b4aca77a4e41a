"""CLI command tests for kindstore."""

import json
import os
import tempfile
from collections.abc import Generator

import pytest
from typer.testing import CliRunner

from kindstore.cli.main import app
from kindstore.cli.parsing import build_params, parse_json_object, read_records_file

runner = CliRunner()


@pytest.fixture
def temp_db() -> Generator[str, None, None]:
    """Create a temporary SQLite database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    if os.path.exists(db_path):
        os.remove(db_path)


def _invoke(temp_db: str, *args: str):
    return runner.invoke(app, ["-d", temp_db, "--json", "record", *args])


class TestVersionCommand:
    def test_version_output(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "kindstore v" in result.stdout


class TestRecordCommands:
    def test_create_and_get(self, temp_db: str) -> None:
        result = _invoke(temp_db, "create", "Person", '{"id": "Bob", "age": 44}')
        assert result.exit_code == 0, f"Failed with: {result.stdout}"
        data = json.loads(result.stdout)
        assert data["success"] is True
        assert data["id"] == "Bob"

        result = _invoke(temp_db, "get", "Person", "Bob")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"id": "Bob", "age": 44}

    def test_get_missing(self, temp_db: str) -> None:
        result = _invoke(temp_db, "get", "Person", "Nobody")
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["error"] == "RecordNotFoundError"
        assert data["code"] == 404

    def test_find_with_query_and_select(self, temp_db: str) -> None:
        _invoke(temp_db, "create", "Person", '{"id": "Bob", "age": 44, "children": 2}')
        _invoke(temp_db, "create", "Person", '{"id": "Ann", "age": 30, "children": 6}')

        result = _invoke(
            temp_db, "find", "Person", "-q", '{"children": {"$lte": 4}}', "-s", "age"
        )
        assert result.exit_code == 0, f"Failed with: {result.stdout}"
        assert json.loads(result.stdout) == [{"id": "Bob", "age": 44}]

    def test_find_unsupported_operator(self, temp_db: str) -> None:
        result = _invoke(temp_db, "find", "Person", "-q", '{"age": {"$ne": 1}}')
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "UnsupportedFilterError"

    def test_create_from_jsonl_file(self, temp_db: str, tmp_path) -> None:
        path = tmp_path / "people.jsonl"
        path.write_text('{"id": 1, "name": "a"}\n\n{"id": 2, "name": "b"}\n')

        result = _invoke(temp_db, "create", "Person", "--from-file", str(path))
        assert result.exit_code == 0, f"Failed with: {result.stdout}"
        assert json.loads(result.stdout)["count"] == 2

        result = _invoke(temp_db, "find", "Person")
        assert [r["id"] for r in json.loads(result.stdout)] == [1, 2]

    def test_create_requires_data(self, temp_db: str) -> None:
        result = _invoke(temp_db, "create", "Person")
        assert result.exit_code == 1

    def test_update_and_upsert(self, temp_db: str) -> None:
        result = _invoke(temp_db, "update", "Person", "Ann", '{"age": 31}')
        assert result.exit_code == 1
        assert json.loads(result.stdout)["code"] == 404

        result = _invoke(temp_db, "update", "Person", "Ann", '{"age": 31}', "--create")
        assert result.exit_code == 0, f"Failed with: {result.stdout}"
        assert json.loads(result.stdout)["id"] == "Ann"

    def test_patch_by_id(self, temp_db: str) -> None:
        _invoke(temp_db, "create", "Person", '{"id": "Bob", "age": 44, "children": 2}')
        result = _invoke(temp_db, "patch", "Person", '{"children": 3}', "--id", "Bob")
        assert result.exit_code == 0, f"Failed with: {result.stdout}"
        assert json.loads(result.stdout) == {"id": "Bob", "age": 44, "children": 3}

    def test_remove_by_query(self, temp_db: str) -> None:
        _invoke(temp_db, "create", "Person", '{"id": 1, "n": 1}')
        _invoke(temp_db, "create", "Person", '{"id": 2, "n": 2}')

        result = _invoke(temp_db, "remove", "Person", "-q", '{"n": {"$gte": 2}}')
        assert result.exit_code == 0, f"Failed with: {result.stdout}"
        assert json.loads(result.stdout) == [{"id": 2, "n": 2}]

    def test_remove_by_id(self, temp_db: str) -> None:
        _invoke(temp_db, "create", "Person", '{"id": "Bob"}')
        result = _invoke(temp_db, "remove", "Person", "Bob")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"id": "Bob"}

    def test_remove_confirmation_cancel(self, temp_db: str) -> None:
        result = runner.invoke(
            app, ["-d", temp_db, "record", "remove", "Person", "-q", "{}"], input="n\n"
        )
        assert result.exit_code == 0
        assert "Cancelled" in result.stdout

    def test_namespace_option(self, temp_db: str) -> None:
        runner.invoke(
            app, ["-d", temp_db, "-n", "a", "--json", "record", "create", "Person", '{"id": 1}']
        )
        result = _invoke(temp_db, "find", "Person")
        assert json.loads(result.stdout) == []


class TestParsing:
    def test_parse_json_object(self) -> None:
        assert parse_json_object('{"a": 1}') == {"a": 1}
        with pytest.raises(ValueError):
            parse_json_object("[1]")
        with pytest.raises(ValueError):
            parse_json_object("{nope")

    def test_read_json_file(self, tmp_path) -> None:
        path = tmp_path / "one.json"
        path.write_text('{"id": 1}')
        assert read_records_file(str(path)) == [{"id": 1}]

    def test_read_missing_file(self) -> None:
        with pytest.raises(FileNotFoundError):
            read_records_file("/does/not/exist.json")

    def test_build_params(self) -> None:
        params = build_params(
            '{"age": 4}', select=["age"], ancestor="Bob", dont_index=["bio"], create=True
        )
        assert params == {
            "query": {
                "age": 4,
                "$select": ["age"],
                "ancestor": "Bob",
                "dontIndex": ["bio"],
                "create": True,
            }
        }
