"""Data types shared by the classification engine and its collaborators."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class EntryKind(str, Enum):
    """Kind of an entry in a directory listing."""

    FILE = "file"
    SYMLINK = "symlink"
    DIRECTORY = "dir"
    SUBMODULE = "submodule"
    OTHER = "other"

    @classmethod
    def from_api(cls, value: Optional[str]) -> "EntryKind":
        """Map a contents-API type string to an EntryKind (unknown → OTHER)."""
        for kind in cls:
            if kind.value == value:
                return kind
        return cls.OTHER


@dataclass(frozen=True)
class DirectoryEntry:
    """One immediate child of a listed directory."""

    path: str
    kind: EntryKind
    size: int


@dataclass(frozen=True)
class ChangedFile:
    """A path added or modified by a commit."""

    path: str


class Verdict(str, Enum):
    """Per-file classification result."""

    OK = "ok"
    INVALID_POINTER = "invalid-pointer"
    SIZE_SUGGESTION = "size-suggestion"
    LOOKUP_ERROR = "lookup-error"


@dataclass(frozen=True)
class FileVerdict:
    """Classification of a single file within a commit."""

    path: str
    verdict: Verdict
    size: Optional[int] = None
    detail: Optional[str] = None


@dataclass
class CommitOutcome:
    """Aggregate classification of one commit.

    Both path lists keep processing order and are not deduplicated.
    """

    sha: str
    invalid_pointers: List[str] = field(default_factory=list)
    size_candidates: List[str] = field(default_factory=list)
    verdicts: List[FileVerdict] = field(default_factory=list)

    @property
    def has_findings(self) -> bool:
        return bool(self.invalid_pointers or self.size_candidates)

    def record(self, verdict: FileVerdict) -> None:
        """Append a file verdict and update the finding lists."""
        self.verdicts.append(verdict)
        if verdict.verdict is Verdict.INVALID_POINTER:
            self.invalid_pointers.append(verdict.path)
        elif verdict.verdict is Verdict.SIZE_SUGGESTION:
            self.size_candidates.append(verdict.path)


@dataclass(frozen=True)
class CommitReport:
    """Everything a reporter needs to publish findings for one commit."""

    sha: str
    invalid_pointers: List[str]
    size_candidates: List[str]
    help_contact: str
    size_threshold_kb: int


@dataclass
class CommitInfo:
    """A commit as described by a push event."""

    sha: str
    distinct: bool = True
    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    message: str = ""

    def changed_files(self) -> List[ChangedFile]:
        """Return added then modified paths; removed paths are never classified."""
        return [ChangedFile(path) for path in [*self.added, *self.modified]]

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "CommitInfo":
        return cls(
            sha=data["id"],
            distinct=bool(data.get("distinct", True)),
            added=list(data.get("added") or []),
            modified=list(data.get("modified") or []),
            removed=list(data.get("removed") or []),
            message=data.get("message") or "",
        )


@dataclass
class PushEvent:
    """The subset of a GitHub push webhook payload the watchdog uses."""

    repository_full_name: str
    repository_url: str
    ref: str = ""
    installation_id: Optional[int] = None
    commits: List[CommitInfo] = field(default_factory=list)

    @property
    def distinct_commits(self) -> List[CommitInfo]:
        return [commit for commit in self.commits if commit.distinct]

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PushEvent":
        """Build a PushEvent from a decoded push webhook body.

        Raises:
            ValueError: If the payload has no repository section
        """
        repository = payload.get("repository")
        if not isinstance(repository, dict) or "full_name" not in repository:
            raise ValueError("Push payload is missing 'repository.full_name'")

        installation = payload.get("installation") or {}
        return cls(
            repository_full_name=repository["full_name"],
            repository_url=repository.get("html_url") or repository.get("url") or "",
            ref=payload.get("ref", ""),
            installation_id=installation.get("id"),
            commits=[CommitInfo.from_payload(c) for c in payload.get("commits") or []],
        )
