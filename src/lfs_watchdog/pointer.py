"""Git LFS pointer parsing and validation.

A pointer is the small text record committed in place of the real content:

    version https://git-lfs.github.com/spec/v1
    oid sha256:4d7a214614ab2935c943f9e0ff69d22eadbb8f32b1258daaa5e2ca24d17e2393
    size 12345
"""

import re
from dataclasses import dataclass
from typing import Dict, List

from .content_store import ContentStore
from .exceptions import InvalidPointerError

# Observed size range of a well-formed pointer, in bytes.
POINTER_MIN_SIZE = 20
POINTER_MAX_SIZE = 150

POINTER_VERSIONS = (
    "https://git-lfs.github.com/spec/v1",
    "https://hawser.github.com/spec/v1",
    "http://git-media.io/v/2",
)

_OID_RE = re.compile(r"^sha256:([0-9a-fA-F]{64})$")
_SIZE_RE = re.compile(r"^[0-9]+$")
_EXTENSION_KEY_RE = re.compile(r"^ext-[0-9]+-[a-z0-9]+$")


@dataclass(frozen=True)
class Pointer:
    version: str
    oid: str
    size: int


def parse_pointer(text: str) -> Pointer:
    """Parse pointer text.

    Raises:
        InvalidPointerError: If the text is not a well-formed pointer
    """
    # Blank lines and CRLF endings are tolerated, as git-lfs does.
    lines = [line for line in text.strip().splitlines() if line.strip()]
    values: Dict[str, str] = {}
    keys: List[str] = []

    for line in lines:
        key, sep, value = line.partition(" ")
        if not sep or not key or not value:
            raise InvalidPointerError(f"Malformed pointer line: {line[:40]!r}")
        if key in values:
            raise InvalidPointerError(f"Duplicate pointer key '{key}'")
        values[key] = value
        keys.append(key)

    if not keys or keys[0] != "version":
        raise InvalidPointerError("Pointer must start with a version line")
    if keys[1:] != sorted(keys[1:]):
        raise InvalidPointerError("Pointer keys are not sorted")

    for key in keys[1:]:
        if key not in ("oid", "size") and not _EXTENSION_KEY_RE.match(key):
            raise InvalidPointerError(f"Unexpected pointer key '{key}'")

    version = values["version"]
    if version not in POINTER_VERSIONS:
        raise InvalidPointerError(f"Unsupported pointer version '{version}'")

    oid_match = _OID_RE.match(values.get("oid", ""))
    if not oid_match:
        raise InvalidPointerError("Pointer has a missing or invalid oid")

    size = values.get("size", "")
    if not _SIZE_RE.match(size):
        raise InvalidPointerError("Pointer has a missing or invalid size")

    return Pointer(version=version, oid=oid_match.group(1).lower(), size=int(size))


class PointerValidator:
    """Checks that an LFS-declared file was committed as a pointer."""

    def __init__(self, store: ContentStore):
        self.store = store

    def validate(self, ref: str, file_path: str, known_size: int) -> None:
        """
        Validate the file committed at ``file_path``.

        Sizes outside [POINTER_MIN_SIZE, POINTER_MAX_SIZE] are rejected
        without fetching any content.

        Raises:
            InvalidPointerError: If the file is not a well-formed pointer
            TransportError: If the content could not be fetched; this means
                validity is unknown, not that the pointer is invalid
        """
        if known_size < POINTER_MIN_SIZE or known_size > POINTER_MAX_SIZE:
            raise InvalidPointerError(
                f"'{file_path}' is {known_size} bytes; LFS pointers are "
                f"{POINTER_MIN_SIZE}-{POINTER_MAX_SIZE} bytes",
                ref=ref,
                path=file_path,
            )

        content = self.store.get_file_content(ref, file_path)

        try:
            parse_pointer(content)
        except InvalidPointerError as e:
            raise InvalidPointerError(
                f"'{file_path}' is not a valid LFS pointer: {e}", ref=ref, path=file_path
            ) from e
