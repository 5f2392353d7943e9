"""CLI integration tests for fetchlock."""

import json
import os
import re
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from fetchlock.cli import app
from fetchlock.core.lock_manager import lock_path_for, try_create_lock
from fetchlock.errors import DownloadError, LockTimeoutError
from fetchlock.models import DownloadResult, LockRecord, now_ms

URL = "https://example.com/file.tgz"


class TestVersionCommand:
    """Tests for --version flag."""

    def test_version_shows_version(self, runner: CliRunner) -> None:
        """--version should display version string."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "fetchlock" in result.stdout
        assert "0.1.0" in result.stdout

    def test_version_short_flag(self, runner: CliRunner) -> None:
        """-V should also display version."""
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert "fetchlock" in result.stdout


class TestHelpCommand:
    """Tests for --help flag."""

    def test_help_shows_commands(self, runner: CliRunner) -> None:
        """--help should list all available commands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "get" in result.stdout
        assert "locks" in result.stdout
        assert "config" in result.stdout

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        """Running with no args should show help (exit code 2 for no_args_is_help)."""
        result = runner.invoke(app, [])
        assert result.exit_code == 2
        assert "Usage:" in result.stdout


class TestGetCommand:
    """Tests for fetchlock get."""

    def test_existing_destination(self, runner: CliRunner, tmp_path: Path) -> None:
        """An existing destination is reported without a network call."""
        dest = tmp_path / "file.tgz"
        dest.write_bytes(b"cached")
        result = runner.invoke(app, ["get", URL, str(dest)])
        assert result.exit_code == 0
        assert "Already present" in result.stdout
        assert "6 bytes" in result.stdout

    def test_json_output(self, runner: CliRunner, tmp_path: Path) -> None:
        """--json prints the result as JSON."""
        dest = tmp_path / "file.tgz"
        dest.write_bytes(b"cached")
        result = runner.invoke(app, ["-q", "--json", "get", URL, str(dest)])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "path": str(dest),
            "size": 6,
            "downloaded": False,
        }

    def test_download_passes_options(self, runner: CliRunner, tmp_path: Path) -> None:
        """Flags are forwarded as download options."""
        dest = tmp_path / "file.tgz"
        fake = DownloadResult(path=dest, size=5, downloaded=True)
        with patch("fetchlock.commands.get.download_with_lock", return_value=fake) as download:
            result = runner.invoke(
                app,
                [
                    "get",
                    URL,
                    str(dest),
                    "--lock-timeout",
                    "7",
                    "--locks-dir",
                    str(tmp_path / "locks"),
                    "-H",
                    "Authorization: Bearer t",
                ],
            )
        assert result.exit_code == 0
        assert "Downloaded" in result.stdout
        options = download.call_args.args[2]
        assert options.lock_timeout == 7
        assert options.locks_dir == tmp_path / "locks"
        assert options.headers == {"Authorization": "Bearer t"}

    def test_config_file_supplies_defaults(self, runner: CliRunner, tmp_path: Path) -> None:
        """--config values are used when flags are absent."""
        config = tmp_path / "fetchlock.toml"
        config.write_text("[lock]\ntimeout = 3\n\n[http]\nretries = 4\n")
        fake = DownloadResult(path=tmp_path / "f", size=1, downloaded=True)
        with patch("fetchlock.commands.get.download_with_lock", return_value=fake) as download:
            result = runner.invoke(app, ["--config", str(config), "get", URL, str(tmp_path / "f")])
        assert result.exit_code == 0
        options = download.call_args.args[2]
        assert options.lock_timeout == 3
        assert options.retries == 4

    def test_invalid_config_exits_2(self, runner: CliRunner, tmp_path: Path) -> None:
        """A broken config file is reported before running the command."""
        config = tmp_path / "fetchlock.toml"
        config.write_text("[lock\n")
        result = runner.invoke(app, ["--config", str(config), "get", URL, str(tmp_path / "f")])
        assert result.exit_code == 2

    def test_invalid_url_exits_2(self, runner: CliRunner, tmp_path: Path) -> None:
        """Malformed URLs exit with code 2."""
        result = runner.invoke(app, ["get", "not-a-url", str(tmp_path / "f")])
        assert result.exit_code == 2
        assert "Error" in result.stdout

    def test_bad_header_rejected(self, runner: CliRunner, tmp_path: Path) -> None:
        """Headers without a colon are a usage error."""
        result = runner.invoke(app, ["get", URL, str(tmp_path / "f"), "-H", "nocolon"])
        assert result.exit_code == 2

    def test_download_error_exits_1(self, runner: CliRunner, tmp_path: Path) -> None:
        """Download failures exit with code 1."""
        error = DownloadError("Download failed: HTTP 500", url=URL, status_code=500)
        with patch("fetchlock.commands.get.download_with_lock", side_effect=error):
            result = runner.invoke(app, ["--json", "get", URL, str(tmp_path / "f")])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["status_code"] == 500

    def test_lock_timeout_exits_3(self, runner: CliRunner, tmp_path: Path) -> None:
        """Lock timeouts exit with code 3."""
        dest = tmp_path / "f"
        locks_dir = tmp_path / "locks"
        locks_dir.mkdir()
        try_create_lock(lock_path_for(dest, locks_dir), LockRecord.for_current_process(URL))
        result = runner.invoke(
            app,
            [
                "get",
                URL,
                str(dest),
                "--locks-dir",
                str(locks_dir),
                "--lock-timeout",
                "0",
            ],
        )
        assert result.exit_code == 3
        assert "timed out" in result.stdout

    def test_lock_timeout_json_has_holder(self, runner: CliRunner, tmp_path: Path) -> None:
        """JSON lock timeout errors include the holder PID."""
        error = LockTimeoutError(tmp_path / "x.lock", 1.0, holder_pid=4242)
        with patch("fetchlock.commands.get.download_with_lock", side_effect=error):
            result = runner.invoke(app, ["--json", "get", URL, str(tmp_path / "f")])
        assert result.exit_code == 3
        assert json.loads(result.stdout)["holder_pid"] == 4242

    def test_io_error_exits_4(self, runner: CliRunner, tmp_path: Path) -> None:
        """Local filesystem failures exit with code 4 and a readable message."""
        error = PermissionError(13, "Permission denied", str(tmp_path / "f"))
        with patch("fetchlock.commands.get.download_with_lock", side_effect=error):
            result = runner.invoke(app, ["get", URL, str(tmp_path / "f")])
        assert result.exit_code == 4
        assert "I/O error" in result.stdout
        assert "Traceback" not in result.stdout


class TestLocksCommands:
    """Tests for fetchlock locks list/clean."""

    def test_list_empty(self, runner: CliRunner, tmp_path: Path) -> None:
        """Listing an empty directory says so."""
        result = runner.invoke(app, ["locks", "list", str(tmp_path)])
        assert result.exit_code == 0
        assert "No locks" in result.stdout

    def test_list_json(self, runner: CliRunner, tmp_path: Path) -> None:
        """Locks are listed with owner and staleness."""
        lock_path = lock_path_for(tmp_path / "f", tmp_path)
        try_create_lock(lock_path, LockRecord.for_current_process(URL))
        result = runner.invoke(app, ["--json", "locks", "list", str(tmp_path)])
        assert result.exit_code == 0
        rows = json.loads(result.stdout)
        assert len(rows) == 1
        assert rows[0]["lock"] == lock_path.name
        assert rows[0]["pid"] == str(os.getpid())
        assert rows[0]["url"] == URL
        assert rows[0]["stale"] == "False"

    def test_list_unreadable_lock_has_start_time(self, runner: CliRunner, tmp_path: Path) -> None:
        """Unreadable locks report their file time in the started column."""
        (tmp_path / "corrupt.lock").write_text("garbage")
        result = runner.invoke(app, ["--json", "locks", "list", str(tmp_path)])
        assert result.exit_code == 0
        rows = json.loads(result.stdout)
        assert rows[0]["pid"] == "?"
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", rows[0]["started"])
        assert rows[0]["stale"] == "False"


    def test_clean_removes_stale(self, runner: CliRunner, tmp_path: Path) -> None:
        """clean removes stale locks and keeps live ones."""
        stale = lock_path_for(tmp_path / "old", tmp_path)
        live = lock_path_for(tmp_path / "new", tmp_path)
        try_create_lock(stale, LockRecord(pid=os.getpid(), start_time=now_ms() - 10_000, url=URL))
        try_create_lock(live, LockRecord.for_current_process(URL))

        result = runner.invoke(app, ["locks", "clean", str(tmp_path), "--stale-timeout", "5"])

        assert result.exit_code == 0
        assert "Removed 1" in result.stdout
        assert not stale.exists()
        assert live.exists()


class TestConfigInit:
    """Tests for fetchlock config init."""

    def test_writes_template(self, runner: CliRunner, tmp_path: Path) -> None:
        """config init writes a TOML template."""
        path = tmp_path / "fetchlock.toml"
        result = runner.invoke(app, ["config", "init", str(path)])
        assert result.exit_code == 0
        assert path.exists()
        assert "[lock]" in path.read_text()

    def test_refuses_to_overwrite(self, runner: CliRunner, tmp_path: Path) -> None:
        """Existing files are kept unless --force is given."""
        path = tmp_path / "fetchlock.toml"
        path.write_text("# mine\n")
        result = runner.invoke(app, ["config", "init", str(path)])
        assert result.exit_code == 1
        assert path.read_text() == "# mine\n"

        result = runner.invoke(app, ["config", "init", str(path), "--force"])
        assert result.exit_code == 0
        assert "[lock]" in path.read_text()
