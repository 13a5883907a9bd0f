"""Tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config import AppConfig, load_config
from core.models.jobs import JobConfig


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point MINUTECRON_HOME at a temp directory."""
    path = tmp_path / "home"
    monkeypatch.setenv("MINUTECRON_HOME", str(path))
    return path


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestLoadConfig:
    """Test load_config."""

    def test_defaults_without_file(self, home: Path) -> None:
        config = load_config()

        assert config.jobs == []
        assert config.scheduler.max_workers is None
        assert config.logging.level == "INFO"
        assert config.home_path == home
        assert home.is_dir()

    def test_jobs_from_yaml(self, home: Path) -> None:
        _write(
            home / "config.yaml",
            """
scheduler:
  max_workers: 4
logging:
  level: DEBUG
jobs:
  - id: backup
    schedule: "0 3 * * *"
    command: ./backup.sh
  - id: report
    schedule: "30 8 1 * MON"
    command: ./report.sh
    description: Monthly report
    enabled: false
""",
        )

        config = load_config()

        assert config.scheduler.max_workers == 4
        assert config.logging.level == "DEBUG"
        assert [j.id for j in config.jobs] == ["backup", "report"]
        assert config.jobs[1].description == "Monthly report"
        assert [j.id for j in config.enabled_jobs] == ["backup"]

    def test_explicit_paths(self, home: Path, tmp_path: Path) -> None:
        config_path = _write(
            tmp_path / "elsewhere.yaml",
            "jobs:\n  - {id: a, schedule: '* * * * *', command: 'true'}\n",
        )
        config = load_config(config_path=config_path, env_path=tmp_path / "missing.env")
        assert [j.id for j in config.jobs] == ["a"]

    def test_env_references_resolved_from_dotenv(
        self, home: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # registers the variable with monkeypatch so teardown removes it
        monkeypatch.setenv("MC_TEST_BACKUP_CMD", "placeholder")
        monkeypatch.delenv("MC_TEST_BACKUP_CMD")

        _write(home / ".env", "MC_TEST_BACKUP_CMD=rsync -a /src /dst\n")
        _write(
            home / "config.yaml",
            "jobs:\n  - id: backup\n    schedule: '0 3 * * *'\n    command: '${MC_TEST_BACKUP_CMD}'\n",
        )

        config = load_config()
        assert config.jobs[0].command == "rsync -a /src /dst"

    def test_unset_env_reference_left_as_is(
        self, home: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("MC_TEST_UNSET", raising=False)
        _write(
            home / "config.yaml",
            "jobs:\n  - id: a\n    schedule: '* * * * *'\n    command: 'echo ${MC_TEST_UNSET}'\n",
        )
        config = load_config()
        assert config.jobs[0].command == "echo ${MC_TEST_UNSET}"

    def test_invalid_schedule_fails(self, home: Path) -> None:
        _write(
            home / "config.yaml",
            "jobs:\n  - id: a\n    schedule: '60 * * * *'\n    command: 'true'\n",
        )
        with pytest.raises(ValidationError, match="minute field"):
            load_config()

    def test_empty_file(self, home: Path) -> None:
        _write(home / "config.yaml", "")
        assert load_config().jobs == []

    def test_home_env_overrides_file(self, home: Path, tmp_path: Path) -> None:
        _write(home / "config.yaml", f"home_dir: {tmp_path / 'elsewhere'}\n")

        config = load_config()

        assert config.home_path == home
        assert not (tmp_path / "elsewhere").exists()


class TestModels:
    """Test config model validation."""

    def test_duplicate_job_ids_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate job id"):
            AppConfig(
                jobs=[
                    {"id": "a", "schedule": "* * * * *", "command": "true"},
                    {"id": "a", "schedule": "0 * * * *", "command": "true"},
                ]
            )

    def test_max_workers_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(scheduler={"max_workers": 0})

    def test_schedule_is_trimmed(self) -> None:
        job = JobConfig(id="a", schedule="  * * * * *  ", command="true")
        assert job.schedule == "* * * * *"
        assert job.enabled is True

    @pytest.mark.parametrize("schedule", ["* * * *", "* * * * MON,TUE", "*/0 * * * *"])
    def test_bad_schedules(self, schedule: str) -> None:
        with pytest.raises(ValidationError):
            JobConfig(id="a", schedule=schedule, command="true")

    def test_empty_command_rejected(self) -> None:
        with pytest.raises(ValidationError):
            JobConfig(id="a", schedule="* * * * *", command="")
