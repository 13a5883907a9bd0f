"""Shell command jobs -- callbacks that run a configured command line."""

from __future__ import annotations

import logging
import subprocess
from typing import Callable

logger = logging.getLogger(__name__)


class CommandFailed(RuntimeError):
    """A job's shell command exited with a non-zero status."""

    def __init__(self, job_id: str, command: str, returncode: int) -> None:
        super().__init__(f"Job {job_id!r} command exited with status {returncode}: {command}")
        self.job_id = job_id
        self.command = command
        self.returncode = returncode


def command_callback(
    job_id: str,
    command: str,
    shell: str | None = None,
) -> Callable[[], None]:
    """Build a zero-argument callback that runs `command` through the shell.

    The callback blocks until the command exits, so the scheduler runs it on
    a worker thread. A non-zero exit raises CommandFailed.
    """

    def run() -> None:
        logger.info("Running job %s: %s", job_id, command)
        result = subprocess.run(
            command,
            shell=True,
            executable=shell,
            capture_output=True,
            text=True,
        )
        if result.stdout:
            logger.debug("Job %s stdout: %s", job_id, result.stdout.strip())
        if result.returncode != 0:
            if result.stderr:
                logger.warning("Job %s stderr: %s", job_id, result.stderr.strip())
            raise CommandFailed(job_id, command, result.returncode)
        logger.info("Job %s finished", job_id)

    run.__name__ = f"command_{job_id}"
    return run
