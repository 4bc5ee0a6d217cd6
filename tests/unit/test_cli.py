"""Unit tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from portcullis.cli.main import build_gate, cli


@pytest.fixture
def runner():
    return CliRunner()


class TestCheck:
    """Tests for `portcullis check`."""

    def test_admit_declared_length(self, runner):
        result = runner.invoke(
            cli,
            [
                "check",
                "--url", "https://google.com",
                "--content-length", "5",
                "--max-body-bytes", "5",
                "--max-url-length", "256",
            ],
        )

        assert result.exit_code == 0
        assert result.output.strip() == "ADMIT"

    def test_reject_declared_length(self, runner):
        result = runner.invoke(
            cli,
            [
                "check",
                "--url", "https://google.com",
                "--content-length", "2",
                "--max-body-bytes", "1",
                "--max-url-length", "256",
            ],
        )

        assert result.exit_code == 1
        assert "REJECT 413 body_too_large" in result.output

    def test_reject_long_url(self, runner):
        result = runner.invoke(
            cli,
            ["check", "--url", "https://google.com", "--max-url-length", "5"],
        )

        assert result.exit_code == 1
        assert "url_too_long" in result.output
        assert "Request URL too long." in result.output

    def test_body_file_counted(self, runner, tmp_path):
        """Test a 10 byte file against a 5 byte limit is rejected."""
        body = tmp_path / "body.bin"
        body.write_bytes(b"0123456789")

        result = runner.invoke(
            cli,
            [
                "check",
                "--url", "https://google.com",
                "--body-file", str(body),
                "--max-body-bytes", "5",
                "--max-url-length", "256",
            ],
        )

        assert result.exit_code == 1
        assert "body_too_large" in result.output

    def test_json_output(self, runner):
        result = runner.invoke(
            cli,
            [
                "check",
                "--url", "https://google.com",
                "--content-length", "2",
                "--max-body-bytes", "1",
                "--max-url-length", "256",
                "--json",
            ],
        )

        payload = json.loads(result.output)
        assert result.exit_code == 1
        assert payload["admitted"] is False
        assert payload["kind"] == "body_too_large"
        assert payload["status_code"] == 413
        assert payload["message"] == "Request body too large."
        assert payload["max_body_bytes"] == 1

    def test_json_output_admitted(self, runner):
        result = runner.invoke(
            cli,
            ["check", "--url", "https://google.com", "--content-length", "0", "--json"],
        )

        payload = json.loads(result.output)
        assert result.exit_code == 0
        assert payload["admitted"] is True
        assert payload["kind"] is None

    def test_body_limit_above_u64_is_usage_error(self, runner):
        """Test an out of range limit exits 2, not the reject code 1."""
        result = runner.invoke(
            cli,
            [
                "check",
                "--url", "https://google.com",
                "--max-body-bytes", str(2**64),
                "--max-url-length", "256",
            ],
        )

        assert result.exit_code == 2
        assert "REJECT" not in result.output

    def test_body_limit_at_u64_max_accepted(self, runner):
        result = runner.invoke(
            cli,
            [
                "check",
                "--url", "https://google.com",
                "--content-length", "5",
                "--max-body-bytes", str(2**64 - 1),
                "--max-url-length", "256",
            ],
        )

        assert result.exit_code == 0

    def test_negative_content_length_rejected_by_cli(self, runner):
        result = runner.invoke(
            cli, ["check", "--url", "https://google.com", "--content-length", "-1"]
        )

        assert result.exit_code == 2


class TestBuildGate:
    """Tests for build_gate."""

    def test_both_limits(self):
        gate = build_gate(10, 20)

        assert (gate.max_body_bytes, gate.max_url_length) == (10, 20)

    def test_body_only_uses_default_url(self):
        gate = build_gate(10, None)

        assert (gate.max_body_bytes, gate.max_url_length) == (10, 256)

    def test_non_positive_body_substituted(self):
        assert build_gate(0, None).max_body_bytes == 5_000_000
        assert build_gate(-3, 20).max_body_bytes == 5_000_000

    def test_url_only_uses_default_body(self):
        gate = build_gate(None, 20)

        assert (gate.max_body_bytes, gate.max_url_length) == (5_000_000, 20)

    def test_neither_uses_settings(self):
        with patch("portcullis.cli.main.settings") as mock_settings:
            mock_settings.max_body_bytes = 123
            mock_settings.max_url_length = 45

            gate = build_gate(None, None)

        assert (gate.max_body_bytes, gate.max_url_length) == (123, 45)


class TestServe:
    """Tests for `portcullis serve`."""

    def test_serve_runs_uvicorn(self, runner):
        """Test uvicorn gets an import string so --reload can re-import the app."""
        with patch("portcullis.cli.main.uvicorn") as mock_uvicorn:
            result = runner.invoke(
                cli, ["serve", "--host", "127.0.0.1", "--port", "9000", "--reload"]
            )

        assert result.exit_code == 0
        mock_uvicorn.run.assert_called_once()
        args, kwargs = mock_uvicorn.run.call_args
        assert args[0] == "portcullis.api.app:create_app"
        assert kwargs["factory"] is True
        assert kwargs["reload"] is True
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9000
