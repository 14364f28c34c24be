import json

from typer.testing import CliRunner

from scribe.cli import app
from scribe.core.config import get_settings


def test_sync_command_reports_column_mappings(tmp_path, monkeypatch) -> None:
    schema_file = tmp_path / "schema.json"
    schema_file.write_text(
        json.dumps({"properties": {"data": {"type": "object"}, "title": {"type": "string"}}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("SCRIBE_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    get_settings.cache_clear()

    try:
        result = CliRunner().invoke(app, ["sync", "articles", "--schema", str(schema_file)])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0, result.output
    assert "articles synchronized" in result.output
    assert "title: string" in result.output
    assert "data: json" in result.output


def test_sync_command_rejects_invalid_schema(tmp_path) -> None:
    schema_file = tmp_path / "schema.json"
    schema_file.write_text(json.dumps({"properties": {"title": {}}}), encoding="utf-8")

    result = CliRunner().invoke(app, ["sync", "articles", "--schema", str(schema_file)])

    assert result.exit_code == 1
    assert "Unable to load schema" in result.output
