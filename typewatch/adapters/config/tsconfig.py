"""Temporary tsconfig adapter.

Implements CheckerConfigPort by writing a temporary tsconfig next to the
project's own. The temporary file `extends` the base configuration, so
the base is never parsed here (tsconfig files may contain comments), and
only overrides what a type test session needs: the include globs.
"""

import json
import logging
import uuid
from collections.abc import Sequence
from pathlib import Path

from typewatch.core.errors import CheckerConfigError
from typewatch.core.ports import CheckerConfigPort

logger = logging.getLogger(__name__)


class TsconfigAdapter(CheckerConfigPort):
    """Creates and removes temporary tsconfig files."""

    def __init__(self, base_name: str = "tsconfig.json"):
        """Initialize tsconfig adapter.

        Args:
            base_name: File name looked up under the root when no explicit
                tsconfig path is given.
        """
        self.base_name = base_name

    def locate(self, root: str, tsconfig: str | None) -> Path:
        """Find the base configuration.

        Raises:
            CheckerConfigError: If the configuration does not exist.
        """
        base = Path(root, tsconfig) if tsconfig else Path(root, self.base_name)
        if not base.is_file():
            raise CheckerConfigError(f"Cannot find tsconfig file: {base}")
        return base.resolve()

    @staticmethod
    def build_config(base: Path, include: Sequence[str]) -> dict[str, object]:
        return {
            "extends": f"./{base.name}",
            "include": list(include),
            "compilerOptions": {
                # noEmit is passed on the command line and conflicts with it
                "emitDeclarationOnly": False,
            },
        }

    async def locate_or_create(
        self, root: str, tsconfig: str | None, include: Sequence[str]
    ) -> str:
        base = self.locate(root, tsconfig)
        tmp_path = base.with_name(f"tsconfig.{uuid.uuid4().hex[:8]}.tmp.json")
        content = json.dumps(self.build_config(base, include), indent=2)
        try:
            tmp_path.write_text(content + "\n", encoding="utf-8")
        except OSError as e:
            raise CheckerConfigError(f"Cannot write temporary tsconfig {tmp_path}: {e}") from e

        logger.debug(f"Created temporary tsconfig {tmp_path} extending {base}")
        return str(tmp_path)

    async def remove(self, path: str) -> None:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove temporary tsconfig {path}: {e}")
            return
        logger.debug(f"Removed temporary tsconfig {path}")
