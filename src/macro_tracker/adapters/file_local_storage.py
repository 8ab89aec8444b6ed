"""File-backed local storage for the query cache."""

from dataclasses import dataclass
from pathlib import Path

from macro_tracker.services.cache import LocalStorage


@dataclass
class FileLocalStorage(LocalStorage):
    """Stores each key as a UTF-8 file inside a directory."""

    directory: Path

    @classmethod
    def create(cls, directory: str | Path) -> "FileLocalStorage":
        """Create storage rooted at a directory, creating it if needed."""
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        return cls(directory=path)

    def get_item(self, key: str) -> str | None:
        """Return the stored value for a key."""
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        """Write a value atomically."""
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def remove_item(self, key: str) -> None:
        """Delete a key if it exists."""
        self._path(key).unlink(missing_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"
