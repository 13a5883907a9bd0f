"""Tests for the minutecron command line."""

from pathlib import Path

import pytest

from cli.main import main


@pytest.fixture(autouse=True)
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "home"
    monkeypatch.setenv("MINUTECRON_HOME", str(path))
    return path


class TestCheck:
    """Test `minutecron check`."""

    def test_explains_fields(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["check", "*/15 9-17 * * MON"]) == 0
        out = capsys.readouterr().out

        assert "Expression: */15 9-17 * * MON" in out
        assert "0, 15, 30, 45" in out
        assert "9-17" in out
        assert "every value (0-31)" in out

    def test_match(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["check", "* * 15 * 2", "--at", "2016-02-16 10:30"]) == 0
        out = capsys.readouterr().out
        assert "either one may match" in out
        assert "Matches 2016-02-16 10:30" in out

    def test_no_match(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["check", "30 10 * * *", "--at", "2015-02-01 10:31"]) == 1
        assert "Does not match" in capsys.readouterr().out

    def test_invalid_expression(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["check", "60 * * * *"]) == 1
        assert "Invalid expression" in capsys.readouterr().out

    def test_invalid_time(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["check", "* * * * *", "--at", "yesterday"]) == 1
        assert "Invalid time" in capsys.readouterr().out


class TestJobs:
    """Test `minutecron jobs`."""

    def test_no_jobs(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["jobs"]) == 0
        assert "No jobs configured" in capsys.readouterr().out

    def test_lists_jobs(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = tmp_path / "config.yaml"
        config.write_text(
            "jobs:\n"
            "  - id: backup\n"
            "    schedule: '0 3 * * *'\n"
            "    command: ./backup.sh\n"
            "    description: Nightly backup\n"
            "  - id: off\n"
            "    schedule: '* * * * *'\n"
            "    command: 'true'\n"
            "    enabled: false\n"
        )

        assert main(["--config", str(config), "jobs"]) == 0
        out = capsys.readouterr().out
        assert "backup" in out
        assert "[enabled] ./backup.sh" in out
        assert "Nightly backup" in out
        assert "[disabled] true" in out

    def test_home_option(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        other = tmp_path / "other"
        other.mkdir()
        (other / "config.yaml").write_text(
            "jobs:\n  - {id: from_home, schedule: '* * * * *', command: 'true'}\n"
        )

        assert main(["--home", str(other), "jobs"]) == 0
        assert "from_home" in capsys.readouterr().out

    @pytest.mark.parametrize(
        "jobs",
        [
            "  - {id: bad, schedule: '60 * * * *', command: 'true'}\n",
            "  - {id: twice, schedule: '* * * * *', command: 'true'}\n" * 2,
        ],
    )
    def test_invalid_config(
        self, tmp_path: Path, jobs: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("jobs:\n" + jobs)

        assert main(["--config", str(config), "jobs"]) == 1
        assert "Invalid configuration" in capsys.readouterr().out


class TestStart:
    """Test `minutecron start`."""

    def test_invalid_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("scheduler:\n  max_workers: 0\n")

        assert main(["--config", str(config), "start"]) == 1
        assert "Invalid configuration" in capsys.readouterr().out


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 0
    assert "usage: minutecron" in capsys.readouterr().out
