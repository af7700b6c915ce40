"""Resolve file sizes from directory listings.

Listing the parent directory is the only way to learn a blob's size without
downloading it. The listing is capped at LISTING_CEILING entries, so a file
missing from a full listing is of unknown size rather than absent.
"""

import posixpath
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import List, Optional, Tuple

from .content_store import ContentStore
from .exceptions import (
    ListingTruncatedError,
    MissingExpectedFileError,
    TransportError,
    WatchdogError,
    WrongEntryKindError,
)
from .logging_config import get_logger
from .models import DirectoryEntry, EntryKind

logger = get_logger("size_resolver")

# Listings kept per resolver; a commit SHA never changes, so entries never go stale.
DEFAULT_LISTING_CACHE_SIZE = 256


class SizeErrorKind(str, Enum):
    TRUNCATED = "truncated"
    WRONG_KIND = "wrong-kind"
    MISSING = "missing"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class SizeLookupResult:
    """Either a size or a tagged failure."""

    size: Optional[int] = None
    error_kind: Optional[SizeErrorKind] = None
    error: Optional[WatchdogError] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    def unwrap(self) -> int:
        """Return the size or raise the carried error."""
        if self.error is not None:
            raise self.error
        assert self.size is not None
        return self.size

    @classmethod
    def failure(cls, kind: SizeErrorKind, error: WatchdogError) -> "SizeLookupResult":
        return cls(error_kind=kind, error=error)


class SizeResolver:
    """Looks up the byte size of a pushed file at a ref.

    Successful listings are kept in a bounded LRU keyed by (ref, directory),
    so files sharing a directory cost one contents-API call per commit.
    Failed listings are not cached. The resolver is shared by the commits of
    a push, so the cache is guarded by a lock.
    """

    def __init__(self, store: ContentStore, cache_size: int = DEFAULT_LISTING_CACHE_SIZE):
        if cache_size < 0:
            raise ValueError("cache_size must be >= 0")
        self.store = store
        self.cache_size = cache_size
        self._listings: "OrderedDict[Tuple[str, str], Tuple[List[DirectoryEntry], bool]]" = (
            OrderedDict()
        )
        self._lock = Lock()

    def _list_directory(self, ref: str, directory: str) -> Tuple[List[DirectoryEntry], bool]:
        key = (ref, directory)
        with self._lock:
            if key in self._listings:
                self._listings.move_to_end(key)
                return self._listings[key]

        listing = self.store.list_directory(ref, directory)

        if self.cache_size:
            with self._lock:
                self._listings[key] = listing
                self._listings.move_to_end(key)
                while len(self._listings) > self.cache_size:
                    evicted, _ = self._listings.popitem(last=False)
                    logger.debug(f"Evicted listing of '{evicted[1] or '/'}' at '{evicted[0]:.7}'")
        return listing

    def resolve(self, ref: str, file_path: str) -> SizeLookupResult:
        directory = posixpath.dirname(file_path)
        try:
            entries, truncated = self._list_directory(ref, directory)
        except TransportError as e:
            return SizeLookupResult.failure(SizeErrorKind.TRANSPORT, e)

        for entry in entries:
            if entry.path != file_path:
                continue
            if entry.kind is EntryKind.FILE:
                return SizeLookupResult(size=entry.size)
            return SizeLookupResult.failure(
                SizeErrorKind.WRONG_KIND,
                WrongEntryKindError(
                    f"'{file_path}' matches, but object is a {entry.kind.value}",
                    ref=ref,
                    path=file_path,
                    kind=entry.kind,
                ),
            )

        if truncated:
            # TODO: fall back to the Git trees API, which has no entry ceiling.
            return SizeLookupResult.failure(
                SizeErrorKind.TRUNCATED,
                ListingTruncatedError(
                    f"'{file_path}' not among the first {len(entries)} entries of "
                    f"'{directory or '/'}'; listing is capped by the contents API",
                    ref=ref,
                    path=file_path,
                ),
            )

        return SizeLookupResult.failure(
            SizeErrorKind.MISSING,
            MissingExpectedFileError(
                f"'{file_path}' was pushed but is not listed in '{directory or '/'}' "
                f"at '{ref:.7}'",
                ref=ref,
                path=file_path,
            ),
        )
