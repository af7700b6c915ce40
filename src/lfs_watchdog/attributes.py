"""LFS path declarations from ``.gitattributes``.

Parsing follows what Git LFS itself does when it scans attribute files:
every non-comment line carrying ``filter=lfs`` contributes its first field
as a path pattern.
"""

import posixpath
import re
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Tuple

from .logging_config import get_logger

logger = get_logger("attributes")

GITATTRIBUTES_PATH = ".gitattributes"
LFS_FILTER_MARKER = "filter=lfs"


@lru_cache(maxsize=512)
def _compile(pattern: str) -> Tuple[Pattern[str], bool]:
    """Translate a glob pattern into a regex.

    Returns:
        Tuple of (compiled regex, anchored) where ``anchored`` is False for
        patterns without a slash, which are matched against each path component
    """
    if pattern.startswith("./"):
        pattern = pattern[2:]
    directory_only = pattern.endswith("/")
    pattern = pattern.strip("/") if directory_only else pattern
    anchored = "/" in pattern
    pattern = pattern.lstrip("/")

    out: List[str] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern[i : i + 2] == "**":
                i += 2
                if pattern[i : i + 1] == "/":
                    # "**/" matches zero or more leading directories
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body.replace(chr(92), chr(92) * 2)}]")
                i = end
        else:
            out.append(re.escape(c))
        i += 1

    # A match may also name a directory, which then covers everything below it.
    return re.compile("".join(out) + "(?:/.*)?\\Z"), anchored


class PathFilter:
    """Glob-style path matcher in the manner of Git LFS path filters.

    - ``*``, ``?`` and ``[...]`` never cross a ``/``; ``**`` does.
    - Patterns without a ``/`` match the file name or any directory name,
      wherever it sits in the tree (``*.xml`` matches ``a/b/data.xml``).
    - Patterns with a ``/`` are anchored at the repository root.
    - A pattern naming a directory matches every path below it.

    An empty filter matches nothing.
    """

    def __init__(self, patterns: Iterable[str]):
        self.patterns: Tuple[str, ...] = tuple(p for p in patterns if p)

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PathFilter) and self.patterns == other.patterns

    def __hash__(self) -> int:
        return hash(self.patterns)

    def __repr__(self) -> str:
        return f"PathFilter({list(self.patterns)!r})"

    def matches(self, path: str) -> bool:
        path = posixpath.normpath(path).lstrip("/")
        components = path.split("/")
        for pattern in self.patterns:
            regex, anchored = _compile(pattern)
            if anchored:
                if regex.match(path):
                    return True
            else:
                for index in range(len(components)):
                    if regex.match("/".join(components[index:])):
                        return True
        return False


class AttributeFilter:
    """Predicate telling whether a path is declared for LFS tracking.

    Built once per ref with ``from_text``; immutable afterwards.
    """

    def __init__(self, patterns: Iterable[str]):
        self.path_filter = PathFilter(patterns)

    @property
    def patterns(self) -> Tuple[str, ...]:
        return self.path_filter.patterns

    def matches(self, path: str) -> bool:
        return self.path_filter.matches(path)

    @staticmethod
    def parse_patterns(attributes_text: str) -> Tuple[List[str], int, int]:
        """Extract LFS patterns from .gitattributes text.

        Returns:
            Tuple of (patterns, lf_count, crlf_count)
        """
        patterns: List[str] = []
        lf_count = crlf_count = 0

        for raw_line in attributes_text.split("\n"):
            if raw_line.endswith("\r"):
                crlf_count += 1
                raw_line = raw_line[:-1]
            else:
                lf_count += 1

            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if LFS_FILTER_MARKER in line:
                patterns.append(line.split()[0])

        return patterns, lf_count, crlf_count

    @classmethod
    def from_text(cls, attributes_text: str) -> Optional["AttributeFilter"]:
        """Build a filter, or return None when no path is declared for LFS.

        None and a filter are not interchangeable: without declarations,
        files are never routed to pointer validation.
        """
        patterns, lf_count, crlf_count = cls.parse_patterns(attributes_text)
        logger.debug(
            f"Parsed {len(patterns)} LFS pattern(s) from {GITATTRIBUTES_PATH}",
            extra={"lf_lines": lf_count, "crlf_lines": crlf_count},
        )
        if not patterns:
            return None
        return cls(patterns)
