"""Shared fixtures: an in-memory ContentStore standing in for the GitHub API."""

import logging
import posixpath
from typing import Dict, List, Optional, Set, Tuple

import pytest

from lfs_watchdog.content_store import LISTING_CEILING, ContentStore
from lfs_watchdog.exceptions import ContentNotFoundError
from lfs_watchdog.logging_config import ROOT_LOGGER
from lfs_watchdog.models import DirectoryEntry, EntryKind

VALID_POINTER = (
    "version https://git-lfs.github.com/spec/v1\n"
    "oid sha256:f096f832f1604b8ef02bba85d23d45cbd9144a32936c2761c32775fab7b1001e\n"
    "size 5902\n"
)


class FakeContentStore(ContentStore):
    """Repository snapshot held in memory.

    Listings are derived from ``files``; ``sizes`` overrides the listed size
    of a file without storing its content, ``kinds`` overrides entry kinds,
    ``padding`` adds unrelated entries to a directory and ``errors`` makes
    reads of a path raise.
    """

    def __init__(
        self,
        files: Optional[Dict[str, str]] = None,
        sizes: Optional[Dict[str, int]] = None,
        kinds: Optional[Dict[str, EntryKind]] = None,
        padding: Optional[Dict[str, int]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        hidden: Optional[Set[str]] = None,
    ):
        self.files = dict(files or {})
        self.sizes = dict(sizes or {})
        self.kinds = dict(kinds or {})
        self.padding = dict(padding or {})
        self.errors = dict(errors or {})
        self.hidden = set(hidden or ())
        self.content_reads: List[Tuple[str, str]] = []
        self.listings: List[Tuple[str, str]] = []

    def get_file_content(self, ref: str, path: str) -> str:
        self.content_reads.append((ref, path))
        if path in self.errors:
            raise self.errors[path]
        if path not in self.files:
            raise ContentNotFoundError(f"'{path}' not found", ref=ref, path=path)
        return self.files[path]

    def list_directory(self, ref: str, path: str) -> Tuple[List[DirectoryEntry], bool]:
        self.listings.append((ref, path))
        if path in self.errors:
            raise self.errors[path]

        entries = [
            DirectoryEntry(path=posixpath.join(path, f"filler-{i}"), kind=EntryKind.FILE, size=10)
            for i in range(self.padding.get(path, 0))
        ]
        for name in sorted(set(self.files) | set(self.sizes) | set(self.kinds)):
            if posixpath.dirname(name) != path or name in self.hidden:
                continue
            size = self.sizes.get(name, len(self.files.get(name, "").encode("utf-8")))
            entries.append(
                DirectoryEntry(path=name, kind=self.kinds.get(name, EntryKind.FILE), size=size)
            )

        entries = entries[:LISTING_CEILING]
        return entries, len(entries) >= LISTING_CEILING


@pytest.fixture
def fake_store():
    """Factory for FakeContentStore instances."""
    return FakeContentStore


@pytest.fixture
def valid_pointer():
    return VALID_POINTER


@pytest.fixture(autouse=True)
def reset_watchdog_logger():
    """Undo configure_logging() so caplog sees lfs_watchdog records in every test."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
