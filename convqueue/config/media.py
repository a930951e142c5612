"""
Configuration settings related to media formats and encoder variants.

The extension tables here drive the encoder factory: each strategy variant is
registered for the extensions listed below. Extensions are lowercase and carry
their leading dot.
"""

# --- File Identification ---
VIDEO_EXTENSIONS = (
    ".wmv", ".ts", ".mp4", ".mov", ".mpg", ".mpeg", ".avi", ".m2ts",
    ".rmvb", ".3gp", ".flv", ".vob", ".m4v", ".asf", ".mts",
)
AUDIO_EXTENSIONS = (".flac", ".wav", ".mp3", ".m4a", ".m4b", ".aac", ".ogg", ".wma")

# Containers whose streams are usually efficient enough to be copied into mkv
# instead of being re-encoded.
REMUX_EXTENSIONS = (".mkv", ".webm")


# --- Video Encoding Parameters ---
VIDEO_CODEC = "libsvtav1"
VIDEO_CRF = 30
VIDEO_PRESET = 8
VIDEO_CONTAINER_EXTENSION = ".mkv"


# --- Audio Encoding Parameters ---
AUDIO_CODEC = "libopus"
AUDIO_BIT_RATE = 128_000
AUDIO_CONTAINER_EXTENSION = ".opus"


# --- Output Naming ---
# Appended to the source stem so the output never overwrites its source.
ENCODED_SUFFIX = "_encoded"
