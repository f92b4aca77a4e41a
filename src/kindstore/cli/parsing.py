"""Input parsing utilities for CLI commands."""

import json
from pathlib import Path
from typing import Any


def parse_json_object(text: str, what: str = "data") -> dict[str, Any]:
    """Parse a JSON object given on the command line.

    Raises:
        ValueError: If the text is not valid JSON or not an object
    """
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON for {what}: {e.msg}") from e
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object for {what}, got {type(value).__name__}")
    return value


def read_records_file(path: str) -> list[dict[str, Any]]:
    """Read records from a JSON file (object or array) or a JSONL file.

    Args:
        path: Path to the file; ``.jsonl`` files hold one object per line

    Returns:
        List of records

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If the file contains invalid JSON
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if file_path.suffix == ".jsonl":
        records = []
        with file_path.open("r") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError as e:
                    raise json.JSONDecodeError(
                        f"Invalid JSON on line {line_num}: {e.msg}",
                        e.doc,
                        e.pos,
                    ) from e
        return records

    with file_path.open("r") as f:
        data = json.load(f)
    return data if isinstance(data, list) else [data]


def build_params(
    query_json: str | None = None,
    select: list[str] | None = None,
    ancestor: str | None = None,
    dont_index: list[str] | None = None,
    auto_index: bool | None = None,
    create: bool = False,
) -> dict[str, Any]:
    """Assemble service call params from CLI options.

    Options given as flags override the same keys in ``--query``.
    """
    query = parse_json_object(query_json, "query") if query_json else {}
    if select:
        query["$select"] = select
    if ancestor is not None:
        query["ancestor"] = ancestor
    if dont_index:
        query["dontIndex"] = dont_index
    if auto_index is not None:
        query["autoIndex"] = auto_index
    if create:
        query["create"] = True
    return {"query": query}
