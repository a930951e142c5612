"""
Filesystem attribute propagation and output cleanup.

Both operations are best effort from the job's point of view: a failure to copy
timestamps never fails a conversion, and removing a file that is already gone
is not an error.
"""
import os
import shutil
from pathlib import Path
from typing import Optional

from loguru import logger


class AttributePropagator:
    """Copies metadata onto finished outputs and removes abandoned ones."""

    def copy_attributes(self, source: Path, destination: Path) -> bool:
        """
        Copies modification/access times and permission bits from `source` to
        `destination`.

        Returns:
            True if the attributes were copied, False if copying failed (the
            failure is logged).
        """
        try:
            shutil.copystat(source, destination)
        except OSError as e:
            logger.warning(f"Could not copy attributes from {source.name} to {destination}: {e}")
            return False
        logger.trace(f"Copied attributes {source} -> {destination}")
        return True

    def delete_file(self, destination: Optional[Path]) -> bool:
        """
        Removes `destination` if it exists.

        Returns:
            True if a file was removed.
        """
        if destination is None:
            return False
        try:
            os.remove(destination)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Could not delete {destination}: {e}")
            return False
        logger.debug(f"Deleted {destination}")
        return True
