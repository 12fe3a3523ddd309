"""
Test the command line entry points without a database.
"""

from typer.testing import CliRunner

from stakeflow import cli


runner = CliRunner()


def test_unknown_period_is_rejected():
    result = runner.invoke(cli.app, ["run-stats", "yearly"])

    assert result.exit_code == 2
    assert "Unknown period: yearly" in result.output


def test_successful_job_prints_result(monkeypatch):
    monkeypatch.setattr(cli, "_run_job", lambda job: {"success": True, "processed": 4, "errors": []})

    result = runner.invoke(cli.app, ["run-stats", "weekly"])

    assert result.exit_code == 0
    assert "Weekly statistics" in result.output
    assert "processed" in result.output


def test_failed_job_exits_non_zero(monkeypatch):
    monkeypatch.setattr(cli, "_run_job", lambda job: {"success": False, "deleted": 0, "error": "locked"})

    result = runner.invoke(cli.app, ["cleanup-snapshots"])

    assert result.exit_code == 1
