"""
Utilities package.

Modules:
    - ffmpeg_utils.py: Locating the ffmpeg tools, rendering command lines for
      logs, and parsing ffmpeg's machine-readable progress output.
    - format_utils.py: Formatting progress, sizes and durations for display.
"""
