import sys
from pathlib import Path
from typing import Any

from loguru import logger

from cutflow.config_manager import ConfigManager

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logger(
    log_dir: str = "logs",
    rotation: str = "10 MB",
    retention: str = "10 days",
    level: str = "INFO",
) -> Any:
    """
    Configures loguru sinks for a compile run.

    Args:
        log_dir (str): Directory for the log files, created if missing.
        rotation (str): Size or age at which a file rotates (e.g. "10 MB").
        retention (str): How long rotated files are kept (e.g. "10 days").
        level (str): Minimum level for the console sink.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level)

    # Every emitted filter clause is logged at DEBUG; keep them on disk
    logger.add(log_path / "cutflow.log", rotation=rotation, retention=retention, level="DEBUG", compression="zip")
    logger.add(log_path / "cutflow.json.log", rotation=rotation, retention=retention, level="INFO", serialize=True)
    logger.add(log_path / "error.log", rotation=rotation, retention=retention, level="ERROR", backtrace=True)

    logger.debug(f"Logging to {log_path.absolute()} (console level {level})")
    return logger


def setup_logger_from_config(config_manager: ConfigManager) -> Any:
    log_cfg = config_manager.logging
    return setup_logger(
        log_dir=config_manager.paths.log_dir,
        rotation=log_cfg.rotation,
        retention=log_cfg.retention,
        level=log_cfg.level,
    )
