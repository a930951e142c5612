"""
Services package.

- **Encoder strategies** (`EncoderStrategy`, `VideoEncoder`, `AudioEncoder`,
  `RemuxEncoder`): convert one source file into one destination file,
  reporting log lines and progress through callbacks, and stop early on
  `terminate()`.
- **Encoder factory** (`EncoderStrategyFactory`): picks the strategy variant
  for a file.
- **File attributes** (`AttributePropagator`): copies timestamps and
  permissions onto finished outputs and removes canceled ones.
- **Events** (`EventStream`): hands progress and log events from the worker
  thread to observers.
- **Logging service** (`ErrorLog`, `SessionLog`): file-based records of failed
  commands and of each conversion session.
"""
