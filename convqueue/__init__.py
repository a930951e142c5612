"""
Conversion Queue Engine.

Queues media files and converts them one at a time through a pluggable encoder
strategy, publishing progress and log output to any number of observers and
supporting cooperative cancellation of the active job.

The package is layered the same way throughout:

- ``config``: static settings and the optional user YAML configuration.
- ``domain``: jobs, the job queue, media probing and the exception hierarchy.
- ``services``: encoder strategies, their factory, file attribute helpers,
  the event stream and file-based logs.
- ``pipeline``: the orchestrator that drains the queue in a worker thread.
- ``utils``: formatting and ffmpeg helpers.
"""

__version__ = "1.0.0"
