"""
Common interface of the two thread parsers.

Both variants turn one source document into one Thread. Callers choose the
variant from the input classification (see chatgraph.etl.discovery).
"""

from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from chatgraph.etl.models import Thread

PathLike = Union[str, Path]


class ThreadParseError(Exception):
    """A document could not be turned into a Thread."""

    def __init__(self, message: str, path: Optional[PathLike] = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"{self.path}: {message}"
        super().__init__(message)


@runtime_checkable
class ThreadParser(Protocol):
    """A parser for one export format."""

    name: str

    def parse(self, document) -> Thread:
        """Parse a document already in memory."""
        ...

    def parse_file(self, path: PathLike) -> Thread:
        """Read and parse a document from disk."""
        ...


def read_document(path: PathLike) -> str:
    """
    Read a document as UTF-8 text.

    Raises:
        ThreadParseError: If the file cannot be read or decoded.
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ThreadParseError(f"Failed to read file: {e}", path) from e
