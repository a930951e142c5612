"""
Main entry point for the Conversion Queue Engine.

Queues the files given on the command line, converts them one at a time and
logs progress to the console. Pressing Ctrl+C once cancels the file being
converted and stops the queue; the partial output is removed.
"""

import sys

from loguru import logger

from convqueue.cli import get_args
from convqueue.config.common import JOB_STATUS_COMPLETE, LOG_FILE_ROTATION, LOGGER_FORMAT
from convqueue.pipeline.orchestrator import ConversionOrchestrator
from convqueue.services.encoder_factory import EncoderStrategyFactory
from convqueue.services.events import ConversionEvent, JobUpdated

# Configure the logger for initial setup.
# The level is overridden once the command-line arguments are parsed.
logger.remove()
logger.add(sys.stderr, level="INFO", format=LOGGER_FORMAT)

# Progress is logged every time a job crosses another multiple of this.
PROGRESS_LOG_STEP = 10


class ConsoleProgress:
    """Event subscriber that logs coarse per-job progress."""

    def __init__(self):
        self.last_step = {}

    def __call__(self, event: ConversionEvent):
        if not isinstance(event, JobUpdated) or event.job.progress is None:
            return
        job = event.job
        step = int(job.progress) // PROGRESS_LOG_STEP
        if job.progress == 0:
            self.last_step[job.source_path] = 0
            return
        if step > self.last_step.get(job.source_path, 0) and job.error_message is None:
            self.last_step[job.source_path] = step
            logger.info(f"{job.source_path.name}: {job.description}")


def main(argv=None) -> int:
    """
    Runs one conversion session.

    Returns:
        0 if every queued file was converted, 1 otherwise.
    """
    args = get_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    if args.log_file:
        logger.add(args.log_file, level="DEBUG", format=LOGGER_FORMAT, rotation=LOG_FILE_ROTATION)

    logger.debug(f"Parsed arguments: {args}")

    factory = EncoderStrategyFactory(output_dir=args.output_dir, sniff_content=not args.no_sniff)
    orchestrator = ConversionOrchestrator(factory=factory, report_path=args.report)
    orchestrator.subscribe(ConsoleProgress())

    missing = [path for path in args.files if not path.is_file()]
    for path in missing:
        logger.warning(f"Not a file, skipping: {path}")
    orchestrator.add_files(path for path in args.files if path.is_file())

    if not orchestrator.can_start:
        logger.error("Nothing to convert.")
        return 1

    orchestrator.start()
    while True:
        try:
            if orchestrator.wait(timeout=0.5):
                break
        except KeyboardInterrupt:
            logger.warning("Interrupted, canceling the current file...")
            orchestrator.terminate()
    orchestrator.close()

    jobs = orchestrator.job_snapshots()
    for job in jobs:
        if job.status == JOB_STATUS_COMPLETE:
            logger.info(f"OK      {job.label}")
        else:
            logger.error(f"FAILED  {job.label}")

    done = sum(1 for job in jobs if job.status == JOB_STATUS_COMPLETE)
    logger.success(f"Converted {done}/{len(jobs)} file(s).")
    return 0 if done == len(jobs) and not missing else 1


if __name__ == "__main__":
    sys.exit(main())
