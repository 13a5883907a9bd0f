"""minutecron entrypoint -- loads config, registers jobs and runs the scheduler.

Usage:
    python main.py
    python main.py --config /path/to/config.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from core.config import AppConfig, load_config
from scheduler.commands import command_callback
from scheduler.runner import Scheduler


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="minutecron job scheduler")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.minutecron/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.minutecron/.env)",
    )
    return parser.parse_args()


def build_scheduler(config: AppConfig) -> Scheduler:
    """Create a scheduler with every enabled job from the config registered."""
    logger = logging.getLogger("minutecron")
    scheduler = Scheduler(max_workers=config.scheduler.max_workers)

    for job in config.jobs:
        if not job.enabled:
            logger.info("Skipping disabled job: %s", job.id)
            continue
        scheduler.register(
            job.id,
            job.schedule,
            command_callback(job.id, job.command, shell=config.scheduler.shell),
        )

    return scheduler


async def run(config_path: str | None = None, env_path: str | None = None) -> None:
    """Load configuration and run the scheduler until interrupted."""
    config = load_config(config_path=config_path, env_path=env_path)
    logging.getLogger().setLevel(getattr(logging, config.logging.level.upper(), logging.INFO))
    logger = logging.getLogger("minutecron")
    logger.info("Configuration loaded from %s", config.home_path)

    scheduler = build_scheduler(config)
    if not len(scheduler):
        logger.warning("No enabled jobs configured")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    try:
        await scheduler.start()
    finally:
        logger.info("Shutdown complete")


def main() -> None:
    args = parse_args()
    setup_logging("INFO")
    try:
        asyncio.run(run(config_path=args.config, env_path=args.env))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
