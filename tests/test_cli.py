"""CLI tests — click commands via CliRunner."""

from click.testing import CliRunner
from sqlalchemy import create_engine, inspect

from taskboard.cli.main import cli, engine_label


def test_init_db_creates_tables(tmp_path):
    db_file = tmp_path / "cli.db"
    runner = CliRunner()
    result = runner.invoke(
        cli, ["init-db", "--database-url", f"sqlite+aiosqlite:///{db_file}"]
    )
    assert result.exit_code == 0, result.output
    assert "Tables ready" in result.output

    tables = set(inspect(create_engine(f"sqlite:///{db_file}")).get_table_names())
    assert {"users", "tasks", "task_users"} <= tables


def test_check_config_prints_summary():
    result = CliRunner().invoke(cli, ["check-config"])
    assert result.exit_code == 0, result.output
    assert "access token TTL" in result.output
    assert "cookie path:      /" in result.output


def test_engine_label_hides_credentials():
    label = engine_label("postgresql+asyncpg://user:secret@db:5432/taskboard")
    assert label == "postgresql+asyncpg://db:5432/taskboard"
    assert "secret" not in label
