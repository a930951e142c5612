"""
Command-line interface definition.

Uses `argparse` to define the options of the headless front end in `main.py`.
"""
import argparse
from pathlib import Path
from typing import List, Optional

from .config.common import OUTPUT_DIR, SESSION_REPORT_FILE_NAME


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments.

    Args:
        argv: Arguments to parse; defaults to ``sys.argv[1:]``.

    Returns:
        argparse.Namespace: The parsed arguments. ``files`` is a list of Paths
                            and ``output_dir`` / ``report`` / ``log_file`` are
                            resolved Paths or None.
    """
    parser = argparse.ArgumentParser(
        description="Convert media files one at a time through ffmpeg."
    )
    parser.add_argument(
        "files", nargs="+", type=Path, help="Files to queue. Duplicates are ignored."
    )
    parser.add_argument(
        "--output-dir", type=Path, default=OUTPUT_DIR,
        help="Directory for converted files. Defaults to each source file's directory.",
    )
    parser.add_argument(
        "--report", type=Path, default=None,
        help=f"Write a YAML report of the session to this file, or to {SESSION_REPORT_FILE_NAME} inside this directory.",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the console logging level. TRACE also shows encoder output.",
    )
    parser.add_argument(
        "--log-file", type=Path, default=None,
        help="Also write the log to this file (rotated at 10 MB).",
    )
    parser.add_argument(
        "--no-sniff", action="store_true",
        help="Reject files with unknown extensions instead of probing their content.",
    )

    args = parser.parse_args(argv)

    if args.output_dir is not None:
        output_dir = Path(args.output_dir)
        if output_dir.exists() and not output_dir.is_dir():
            parser.error(f"The output directory '{output_dir}' is not a directory.")
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            parser.error(f"The output directory '{output_dir}' could not be created: {e}")
        args.output_dir = output_dir.resolve()
    if args.report is not None:
        if args.report.is_dir():
            args.report = args.report / SESSION_REPORT_FILE_NAME
        args.report = args.report.resolve()
    if args.log_file is not None:
        args.log_file = args.log_file.resolve()

    return args
