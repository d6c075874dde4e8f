"""Tests for the command line interface."""

from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from easy_education import __version__
from easy_education.cli import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_promote_admin_known_user():
    with patch("easy_education.cli._promote", AsyncMock(return_value=True)) as promote:
        result = runner.invoke(app, ["promote-admin", "student-uid-1"])

    assert result.exit_code == 0
    assert "student-uid-1 is now an admin" in result.stdout
    promote.assert_awaited_once_with("student-uid-1")


def test_promote_admin_unknown_user_exits_nonzero():
    with patch("easy_education.cli._promote", AsyncMock(return_value=False)):
        result = runner.invoke(app, ["promote-admin", "nobody"])

    assert result.exit_code == 1
