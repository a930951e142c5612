"""
Common configuration settings used throughout the application.

This module holds the logging format, job markers, directory defaults and the
loading of user-specific overrides from an optional ``config.user.yaml`` file
at the project root.
"""
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict

import yaml
from loguru import logger

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"


def load_user_config(config_path: Path = USER_CONFIG_PATH) -> Dict[str, Any]:
    """
    Reads the user configuration file and returns its contents as a dict.

    A missing file is not an error. A file that cannot be parsed, or whose top
    level is not a mapping, is reported as a warning and treated as empty so the
    built-in defaults stay in effect.

    Args:
        config_path: Location of the YAML file.

    Returns:
        The parsed mapping, or an empty dict.
    """
    if not config_path.is_file():
        logger.debug(f"User config '{config_path}' not found. Using built-in defaults.")
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{config_path}': {e}")
        return {}
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        logger.warning(f"Ignoring '{config_path}': expected a mapping at the top level.")
        return {}
    return loaded


_user_config = load_user_config()
_paths_config = _user_config.get("paths") or {}
_encoding_config = _user_config.get("encoding") or {}


# --- External Tools ---

# Directory holding the ffmpeg and ffprobe executables. None means both are
# looked up on the system PATH.
MODULE_PATH: Path | None = (
    Path(_paths_config["ffmpeg_dir"]) if _paths_config.get("ffmpeg_dir") else None
)


# --- Logging Configuration ---

LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)

# Rotation size for the optional ``--log-file`` sink.
LOG_FILE_ROTATION = "10 MB"


# --- Directory and File Management ---

# Default root for encoded output when the caller does not pass one.
# None means "next to the source file".
OUTPUT_DIR: Path | None = (
    Path(_paths_config["output_dir"]).resolve() if _paths_config.get("output_dir") else None
)

# Where ErrorLog writes the details of failed encoder commands.
BASE_ERROR_DIR = Path(_paths_config.get("error_dir") or "encode_error").resolve()

# Default filename for the YAML session report.
SESSION_REPORT_FILE_NAME = "conversion_report.yaml"


# --- Job Progress and Status ---

# Progress value marking a job as fully complete.
PROGRESS_COMPLETE = Decimal(100)

# Progress value every job is reset to when an attempt starts.
PROGRESS_STARTED = Decimal(0)

# Number of decimal places progress is quantized to.
PROGRESS_QUANTUM = Decimal("0.01")

# Error message recorded on a job that was stopped by a termination request.
CANCELED_MESSAGE = "canceled"

JOB_STATUS_PENDING = "pending"
JOB_STATUS_IN_PROGRESS = "in_progress"
JOB_STATUS_COMPLETE = "complete"
JOB_STATUS_FAILED = "failed"
JOB_STATUS_CANCELED = "canceled"


# --- Cancellation ---

# Seconds an ffmpeg based strategy waits after asking the process to terminate
# before it kills it outright.
TERMINATE_GRACE_SECONDS: float = float(_encoding_config.get("terminate_grace_seconds", 5.0))
