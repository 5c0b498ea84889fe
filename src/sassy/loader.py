"""File loading for top-level parses and `@import`."""

from pathlib import Path
from typing import Protocol

from .errors import IoError


class FileLoader(Protocol):
    def resolve(self, base: str, name: str) -> str:
        """Path of `name` relative to the directory of `base`."""
        ...

    def load(self, path: str) -> bytes:
        """Raw bytes of `path`. Raises IoError when missing or unreadable."""
        ...


class FileSystemLoader:
    """Loads stylesheets from the local filesystem."""

    def resolve(self, base: str, name: str) -> str:
        directory = Path(base).parent if base else Path.cwd()
        return str(directory / name)

    def load(self, path: str) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise IoError(f"Could not load file: '{path}'", e.strerror or str(e)) from e


class MemoryLoader:
    """Serves stylesheets from an in-memory mapping of path to text."""

    def __init__(self, files: dict[str, str], encoding: str = "utf-8"):
        self.files = {str(Path(k)): v for k, v in files.items()}
        self.encoding = encoding

    def resolve(self, base: str, name: str) -> str:
        return str(Path(base).parent / name) if base else str(Path(name))

    def load(self, path: str) -> bytes:
        key = str(Path(path))
        if key not in self.files:
            raise IoError(f"Could not load file: '{path}'", "No such file")
        return self.files[key].encode(self.encoding)
