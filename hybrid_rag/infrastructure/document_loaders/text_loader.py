import logging
from pathlib import Path
from typing import Iterator

from ...core.errors import IndexingError

logger = logging.getLogger(__name__)


class TextLoader:

    EXTENSIONS = {".txt", ".md", ".markdown"}

    def supports(self, file_path: Path) -> bool:
        return file_path.is_file() and file_path.suffix.lower() in self.EXTENSIONS

    def iter_files(self, folder: Path) -> Iterator[Path]:
        """Supported files under folder, recursively, in path order."""
        for file_path in sorted(folder.rglob("*")):
            if self.supports(file_path):
                yield file_path

    def load(self, file_path: Path) -> str:
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IndexingError(f"Failed to load {file_path}: {e}") from e
