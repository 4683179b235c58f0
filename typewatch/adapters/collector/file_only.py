"""File-level definition collector.

Implements DefinitionCollectorPort without syntax analysis: each test file
is recorded with no definitions, so every diagnostic in it attaches to the
file itself. Used by the command-line entry point; richer collectors plug
in through the same port.
"""

import logging
import os
from pathlib import Path

from typewatch.core.models import CollectedFile, FileRecord
from typewatch.core.ports import DefinitionCollectorPort

logger = logging.getLogger(__name__)


class FileOnlyDefinitionCollector(DefinitionCollectorPort):
    """Collects one bare file record per existing test file."""

    async def collect(self, root: str, filepath: str) -> CollectedFile | None:
        path = Path(filepath)
        try:
            text = path.read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError):
            logger.warning(f"Test file not found: {filepath}")
            return None
        except UnicodeDecodeError as e:
            logger.warning(f"Cannot decode test file {filepath}: {e}")
            return None

        name = os.path.relpath(filepath, root)
        return CollectedFile(
            file=FileRecord(id=name, name=name, filepath=filepath),
            definitions=(),
            parsed_text=text,
        )
