"""
File-based logs, kept separate from the real-time console logging.

`ErrorLog` appends human-readable details of failed encoder commands to a text
file. `SessionLog` writes a machine-readable YAML report of the outcome of
every job handled during one conversion session.
"""

from pathlib import Path
from typing import Dict, List, Union

import yaml
from loguru import logger


class Log:
    """
    Base class for file logs: resolves the log directory and creates it.

    Args:
        log_dir: The directory the log file lives in. Subclasses choose the
                 file name.
    """

    linesep_marker: str = "=" * 50

    def __init__(self, log_dir: Path):
        self.log_file_path: Path
        self.log_dir: Path = log_dir.resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, log_content: Union[dict, list, str]):
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """
    Appends error reports to a plain text file, one block per failure.
    """

    DEFAULT_ERROR_FILENAME = "error.txt"

    def __init__(self, error_log_dir: Path, filename: str = DEFAULT_ERROR_FILENAME):
        super().__init__(error_log_dir)
        self.log_file_path = self.log_dir / filename

    def write(self, *error_messages: str):
        """
        Appends the given messages, one per line, followed by a separator.

        If the file cannot be written the messages go to the console logger
        instead so they are not lost.
        """
        if not error_messages:
            return

        content_to_write = "\n".join(error_messages) + "\n" + self.linesep_marker + "\n"

        try:
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content_to_write)
        except OSError as e:
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            logger.error("Original error messages attempted to log:")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class SessionLog(Log):
    """
    Writes the YAML report of one conversion session.

    The report is a mapping with the session start and end times and a
    ``jobs`` list holding one entry per attempted job, in the order they were
    attempted. Each entry is re-indexed from 1.

    Args:
        report_path: The YAML file to write, with or without a suffix. An
                     existing report is replaced.
    """

    def __init__(self, report_path: Path):
        super().__init__(report_path.parent)
        self.log_file_path = self.log_dir / report_path.name

    def write(self, session: Dict):
        """
        Serializes `session` to the report file.

        Args:
            session: A dict with at least a ``jobs`` list of dicts.
        """
        if not isinstance(session, dict):
            logger.error("SessionLog.write expects a dictionary.")
            return
        entries: List[Dict] = session.get("jobs", [])
        for i, entry in enumerate(entries, start=1):
            entry["index"] = i

        try:
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.dump(
                    session,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    indent=4,
                    width=220,
                )
        except OSError as e:
            logger.error(f"Failed to write session report {self.log_file_path}: {e}")
            return
        logger.info(f"Session report written to {self.log_file_path} ({len(entries)} job(s)).")

    @staticmethod
    def load(report_path: Path) -> Dict:
        """Reads a report written by `write`; returns {} if missing or invalid."""
        if not report_path.is_file():
            return {}
        try:
            with report_path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading session report {report_path}: {e}")
            return {}
        return loaded if isinstance(loaded, dict) else {}
