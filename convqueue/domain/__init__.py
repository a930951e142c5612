"""
Core domain models of the Conversion Queue Engine.

Modules:
    exceptions.py: The exception hierarchy used across the engine.
    job.py: The `Job` model, its derived status and immutable snapshots.
    job_queue.py: The ordered, de-duplicated `JobQueue` and its FIFO
                  scheduling policy.
    media.py: `MediaProbe`, a thin ffprobe wrapper used for content sniffing
              and for the duration that drives progress reporting.
"""
