"""
File content providers for the execution tier.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from skill_router.errors import ErrorCode, NotFoundError, RouterError

logger = logging.getLogger(__name__)


class FileContentProvider(ABC):
    """Reads execution-tier files on behalf of the budget tracker."""

    @abstractmethod
    def read(self, path: str) -> str:
        """
        Read a file's text content.

        Args:
            path: File path, relative paths are provider-defined

        Returns:
            File content

        Raises:
            NotFoundError: The file does not exist
            RouterError: The file exists but cannot be read
        """
        pass


class LocalFileContentProvider(FileContentProvider):
    """Reads UTF-8 files from the local filesystem.

    Relative paths resolve against ``base_dir`` (the project root).
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    def resolve(self, path: str) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.base_dir / candidate

    def read(self, path: str) -> str:
        resolved = self.resolve(path)
        try:
            return resolved.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(
                f"File not found: {path}",
                resource_type="file",
                resource_id=path,
            )
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {resolved}: {e}")
            raise RouterError(
                f"Cannot read file {path}: {e}",
                code=ErrorCode.INTERNAL_ERROR,
                details={"path": path},
            )


class InMemoryContentProvider(FileContentProvider):
    """Serves content from a dict; used by embedding hosts that already hold the text."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self.files: Dict[str, str] = dict(files or {})

    def read(self, path: str) -> str:
        if path not in self.files:
            raise NotFoundError(
                f"File not found: {path}",
                resource_type="file",
                resource_id=path,
            )
        return self.files[path]


__all__ = ["FileContentProvider", "LocalFileContentProvider", "InMemoryContentProvider"]
