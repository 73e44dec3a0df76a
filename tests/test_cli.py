"""
Tests for the command-line interface.

Requires Python 3.11+.
"""

import os
import shutil
import signal
import threading

import pytest

from onchange import cli
from onchange.supervisor.process import ProcessSupervisor


@pytest.fixture
def no_watching(monkeypatch):
    """Fail loudly if the CLI gets as far as registering watches."""

    class Forbidden:
        def __init__(self, *args, **kwargs):
            raise AssertionError("watch registration must not happen")

    monkeypatch.setattr(cli, "ChangeSource", Forbidden)


class TestArgumentParsing:
    """Test cases for flag parsing."""

    def test_short_flags(self):
        args = cli.build_parser().parse_args(
            ["-d", "/tmp/proj", "-c", "echo hi", "-e", "node_modules", "-i", "50ms", "-v"]
        )

        assert args.watch_dir == "/tmp/proj"
        assert args.command == "echo hi"
        assert args.exclude == "node_modules"
        assert args.interval == "50ms"
        assert args.verbose_log

    def test_long_flags_build_config(self):
        args = cli.build_parser().parse_args(
            ["--watch-dir", "/tmp/proj", "--command", "echo hi", "--interval", "50ms"]
        )
        config = cli.load_config(args)

        assert config.argv == ["echo", "hi"]
        assert config.exclude_patterns[0] == ".git"


class TestValidation:
    """Test cases for startup validation."""

    def test_bad_interval_fails_before_watching(self, no_watching, capsys):
        code = cli.main(["-d", "/tmp/proj", "-c", "echo hi", "-i", "500xx"])

        assert code == 1
        assert "unknown interval: 500xx" in capsys.readouterr().err

    def test_missing_watch_dir(self, no_watching, capsys):
        assert cli.main(["-c", "echo hi"]) == 1
        assert "watch-dir is required" in capsys.readouterr().err

    def test_missing_command(self, no_watching, capsys):
        assert cli.main(["-d", "/tmp/proj"]) == 1
        assert "command is required" in capsys.readouterr().err

    def test_missing_directory_is_fatal(self, tmp_path):
        code = cli.main(["-d", str(tmp_path / "nope"), "-c", "true", "-i", "10ms"])
        assert code == 1


class RecordingSupervisor(ProcessSupervisor):
    """Remembers every process it kills."""

    instances: list["RecordingSupervisor"] = []

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.killed = []
        RecordingSupervisor.instances.append(self)

    async def kill_current(self):
        process = self.current
        await super().kill_current()
        if process is not None:
            self.killed.append(process)


@pytest.mark.skipif(shutil.which("sleep") is None, reason="needs POSIX sleep")
class TestSignalShutdown:
    """Test cases for a clean stop."""

    def test_sigterm_exits_zero_and_kills_child(self, tmp_path, monkeypatch):
        RecordingSupervisor.instances = []
        monkeypatch.setattr(cli, "ProcessSupervisor", RecordingSupervisor)
        timer = threading.Timer(0.5, os.kill, args=(os.getpid(), signal.SIGTERM))

        timer.start()
        try:
            code = cli.main(["-d", str(tmp_path), "-c", "sleep 30", "-i", "10ms"])
        finally:
            timer.cancel()

        assert code == 0
        (supervisor,) = RecordingSupervisor.instances
        assert len(supervisor.killed) == 1
        assert supervisor.killed[0].pid > 0
        assert supervisor.current is None
