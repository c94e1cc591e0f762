from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from postbuild.cli import cli, parse_axes, parse_env
from postbuild.local import BuildStore
from postbuild.model import Result


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def db(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'builds.db'}"


def _common(tmp_path, db):
    return ["--db", db, "--root", str(tmp_path / "jobs")]


def test_parse_env_and_axes():
    assert parse_env(("A=1", "B=x=y")) == {"A": "1", "B": "x=y"}
    assert parse_axes(("axis1=value1, value2", "os=linux")) == {"axis1": ["value1", "value2"], "os": ["linux"]}


def test_run_adds_badge_from_log(runner, tmp_path, db):
    log = tmp_path / "console.log"
    log.write_text("compiling\nBUILD OK\n", encoding="utf-8")
    script = "if manager.log_contains('BUILD OK'):\n    manager.add_info_badge('green')\n"

    result = runner.invoke(cli, ["run", "--script", script, "--log", str(log), "--job", "app", *_common(tmp_path, db)])

    assert result.exit_code == 0, result.output
    assert "BADGE [/static/images/16x16/info.gif] green" in result.output
    assert "app #1: SUCCESS" in result.output
    assert [b.text for b in BuildStore(db).load("app", 1).badges] == ["green"]


def test_run_with_script_file_and_env(runner, tmp_path, db):
    script_file = tmp_path / "post.py"
    script_file.write_text("manager.add_short_text(manager.get_env_variable('TARGET'))\n", encoding="utf-8")

    result = runner.invoke(
        cli,
        ["run", "--script-file", str(script_file), "--env", "TARGET=arm64", *_common(tmp_path, db)],
    )

    assert result.exit_code == 0, result.output
    assert "BADGE [text] arm64" in result.output


def test_run_failing_script_exits_non_zero(runner, tmp_path, db):
    result = runner.invoke(cli, ["run", "--script", "raise RuntimeError('bad')", *_common(tmp_path, db)])

    assert result.exit_code == 1
    assert "Failed to evaluate jython script." in result.output
    assert "BADGE [text] Jython" in result.output
    assert BuildStore(db).load("local", 1).result is Result.FAILURE


def test_run_failing_script_with_unstable_behavior(runner, tmp_path, db):
    result = runner.invoke(
        cli,
        ["run", "--script", "raise RuntimeError('bad')", "--behavior", "unstable", *_common(tmp_path, db)],
    )
    assert result.exit_code == 0, result.output
    assert "local #1: UNSTABLE" in result.output


def test_run_reads_config_file(runner, tmp_path, db):
    config = tmp_path / "job.json"
    config.write_text(json.dumps({"script": "manager.build_unstable()", "behavior": 2}), encoding="utf-8")

    result = runner.invoke(cli, ["run", "--config", str(config), *_common(tmp_path, db)])

    assert result.exit_code == 0, result.output
    assert "Result: UNSTABLE" in result.output


def test_run_requires_a_script(runner, tmp_path, db):
    result = runner.invoke(cli, ["run", *_common(tmp_path, db)])
    assert result.exit_code == 2
    assert "No script given" in result.output


def test_run_missing_script_file(runner, tmp_path, db):
    result = runner.invoke(cli, ["run", "--script-file", str(tmp_path / "nope.py"), *_common(tmp_path, db)])
    assert result.exit_code == 2
    assert "Script file not found" in result.output


def test_run_unexpected_error_is_reported_not_raised(runner, tmp_path):
    result = runner.invoke(
        cli,
        ["run", "--script", "pass", "--db", "notadialect://nowhere", "--root", str(tmp_path / "jobs")],
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Error:" in result.output
    assert "Could not load script" not in result.output


def test_matrix_unexpected_error_is_reported_not_raised(runner, tmp_path):
    result = runner.invoke(
        cli,
        ["matrix", "--script", "pass", "--axis", "a=1", "--db", "notadialect://nowhere", "--root", str(tmp_path / "jobs")],
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Error:" in result.output


def test_run_config_with_null_behavior_is_invalid(runner, tmp_path, db):
    config = tmp_path / "job.json"
    config.write_text(json.dumps({"script": "pass", "behavior": None}), encoding="utf-8")

    result = runner.invoke(cli, ["run", "--config", str(config), *_common(tmp_path, db)])

    assert result.exit_code == 2
    assert "Invalid configuration" in result.output


def test_second_run_can_annotate_an_earlier_build(runner, tmp_path, db):
    first = runner.invoke(cli, ["run", "--script", "manager.build_unstable()", "--job", "app", *_common(tmp_path, db)])
    assert first.exit_code == 0, first.output

    script = "assert manager.set_build_number(1)\nmanager.add_short_text('back')\n"
    second = runner.invoke(cli, ["run", "--script", script, "--job", "app", *_common(tmp_path, db)])

    assert second.exit_code == 0, second.output
    assert "app #2: SUCCESS" in second.output
    stored = BuildStore(db).load("app", 1)
    assert stored.result is Result.UNSTABLE
    assert [b.text for b in stored.badges] == ["back"]


def test_matrix_with_parent(runner, tmp_path, db):
    script = "\n".join([
        "from postbuild.matrix import MatrixBuild",
        "if manager.build_is_a(MatrixBuild):",
        "    manager.add_short_text('parent')",
        "else:",
        "    manager.add_short_text(manager.get_env_variable('axis1'))",
    ])

    result = runner.invoke(
        cli,
        ["matrix", "--script", script, "--axis", "axis1=value1,value2", "--parent", "--job", "m", *_common(tmp_path, db)],
    )

    assert result.exit_code == 0, result.output
    store = BuildStore(db)
    assert [b.text for b in store.load("m", 1).badges] == ["parent"]
    assert [b.text for b in store.load("m/axis1=value1", 1).badges] == ["value1"]
    assert "m/axis1=value2: SUCCESS" in result.output


def test_matrix_without_parent(runner, tmp_path, db):
    script = "manager.add_short_text('seen')"
    result = runner.invoke(
        cli,
        ["matrix", "--script", script, "--axis", "axis1=value1,value2", "--no-parent", "--job", "m", *_common(tmp_path, db)],
    )

    assert result.exit_code == 0, result.output
    assert BuildStore(db).load("m", 1) is None


def test_show_prints_stored_build(runner, tmp_path, db):
    runner.invoke(cli, ["run", "--script", "manager.add_warning_badge('careful')", "--job", "app", *_common(tmp_path, db)])

    result = runner.invoke(cli, ["show", "app", "--db", db])

    assert result.exit_code == 0, result.output
    assert "app #1" in result.output
    assert "careful" in result.output


def test_show_unknown_build(runner, db):
    result = runner.invoke(cli, ["show", "ghost", "3", "--db", db])
    assert result.exit_code == 1
