"""
Input discovery: glob expansion, directory traversal and parser selection.

A directory holding a markup export contains one file per conversation,
plus unrelated files (voicemails, call logs). Only files whose name carries
a conversation marker are parsed as markup.
"""

import glob
from pathlib import Path
from typing import Iterable, Iterator, List
import logging

from chatgraph.etl.markup_parser import MarkupThreadParser
from chatgraph.etl.parsers import ThreadParser
from chatgraph.etl.transcript_parser import TranscriptThreadParser

logger = logging.getLogger(__name__)

TEXT_MARKER = "- Text -"
GROUP_CONVERSATION_MARKER = "Group Conversation -"
CONVERSATION_MARKERS = (TEXT_MARKER, GROUP_CONVERSATION_MARKER)

MARKUP_SUFFIXES = {".html", ".htm"}


class InputResolutionError(Exception):
    """The input pattern is invalid or matches nothing."""


def expand_input(pattern: str) -> List[Path]:
    """
    Expand a path or glob pattern.

    Args:
        pattern: A file path, directory path, or glob (** is recursive).

    Returns:
        Matching paths, sorted.

    Raises:
        InputResolutionError: If the pattern is empty, invalid, or matches nothing.
    """
    if not pattern or not pattern.strip():
        raise InputResolutionError("Empty input pattern")

    try:
        matches = glob.glob(pattern, recursive=True)
    except (ValueError, OSError) as e:
        raise InputResolutionError(f"Failed to read glob pattern {pattern!r}: {e}") from e

    if not matches:
        raise InputResolutionError(f"No matching paths found for: {pattern!r}")

    return sorted(Path(match) for match in matches)


def is_conversation_file(path: Path) -> bool:
    """Whether a file name marks it as a markup conversation export."""
    return any(marker in path.name for marker in CONVERSATION_MARKERS)


def iter_documents(paths: Iterable[Path], markup_only: bool = True) -> Iterator[Path]:
    """
    Yield the documents to parse, in a stable order.

    Directories are walked recursively. With markup_only, files found inside
    a directory are kept only if is_conversation_file() accepts them; paths
    given directly are always yielded.

    Args:
        paths: Expanded input paths.
        markup_only: Apply marker filtering inside directories.
    """
    for path in paths:
        if path.is_dir():
            for child in sorted(p for p in path.rglob("*") if p.is_file()):
                if markup_only and not is_conversation_file(child):
                    continue
                yield child
        elif path.is_file():
            yield path
        else:
            logger.warning(f"Skipping non-file, non-directory: {path}")


def parser_for_path(path: Path) -> ThreadParser:
    """Pick the parser variant for a document by its suffix."""
    if path.suffix.lower() in MARKUP_SUFFIXES:
        return MarkupThreadParser()
    return TranscriptThreadParser()
