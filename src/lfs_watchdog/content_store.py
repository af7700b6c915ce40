"""Read-only access to repository content at a given ref."""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import requests
from github import GithubException, RateLimitExceededException, UnknownObjectException
from github.Repository import Repository

from .exceptions import ContentNotFoundError, TransportError
from .logging_config import get_logger
from .models import DirectoryEntry, EntryKind
from .retry import Backoff, retry_with_backoff

logger = get_logger("content_store")

# The contents API returns at most this many entries for a directory.
LISTING_CEILING = 1000


class ContentStore(ABC):
    """Abstract read-only view of a repository.

    Implementations must be safe for concurrent use by several commit
    classifications at once.
    """

    @abstractmethod
    def get_file_content(self, ref: str, path: str) -> str:
        """Return the decoded text content of ``path`` at ``ref``.

        Raises:
            ContentNotFoundError: If the path does not exist at the ref
            TransportError: If the platform could not be queried
        """

    @abstractmethod
    def list_directory(self, ref: str, path: str) -> Tuple[List[DirectoryEntry], bool]:
        """List the immediate entries of directory ``path`` at ``ref``.

        Returns:
            Tuple of (entries, truncated) where ``truncated`` is True when the
            listing reached LISTING_CEILING entries and may be incomplete

        Raises:
            ContentNotFoundError: If the directory does not exist at the ref
            TransportError: If the platform could not be queried
        """


def translate_github_error(error: Exception, ref: str, path: str) -> TransportError:
    """Convert a PyGithub or requests failure into a TransportError."""
    if isinstance(error, UnknownObjectException):
        return ContentNotFoundError(
            f"'{path}' not found at '{ref:.7}'", ref=ref, path=path, status=404
        )
    if isinstance(error, RateLimitExceededException):
        return TransportError(
            f"Rate limited while reading '{path}' at '{ref:.7}'",
            retryable=True,
            ref=ref,
            path=path,
            status=error.status,
        )
    if isinstance(error, GithubException):
        status: Optional[int] = error.status
        if status == 404:
            return ContentNotFoundError(
                f"'{path}' not found at '{ref:.7}'", ref=ref, path=path, status=404
            )
        return TransportError(
            f"GitHub API error {status} while reading '{path}' at '{ref:.7}': {error.data}",
            retryable=status is not None and status >= 500,
            ref=ref,
            path=path,
            status=status,
        )
    return TransportError(
        f"Connection failure while reading '{path}' at '{ref:.7}': {error}",
        retryable=True,
        ref=ref,
        path=path,
    )


class GitHubContentStore(ContentStore):
    """ContentStore backed by the GitHub contents API (PyGithub)."""

    def __init__(self, repository: Repository, backoff: Optional[Backoff] = None):
        """
        Initialize the store.

        Args:
            repository: PyGithub Repository to read from
            backoff: Retry schedule for transient failures (default: Backoff())
        """
        self.repository = repository
        self.backoff = backoff or Backoff()

    def _get_contents(self, ref: str, path: str):
        try:
            return self.repository.get_contents(path, ref=ref)
        except (GithubException, requests.exceptions.RequestException) as e:
            raise translate_github_error(e, ref, path) from e

    def get_file_content(self, ref: str, path: str) -> str:
        content = retry_with_backoff(self._get_contents, ref, path, backoff=self.backoff)

        if isinstance(content, list):
            raise TransportError(
                f"Expected a file but '{path}' at '{ref:.7}' is a directory", ref=ref, path=path
            )
        if content is None:
            raise TransportError(
                f"Unexpected missing file content for '{path}' at '{ref:.7}'", ref=ref, path=path
            )
        if content.encoding != "base64":
            # Blobs above 1MB come back without inline content.
            raise TransportError(
                f"Content of '{path}' at '{ref:.7}' is not available inline "
                f"(encoding: {content.encoding})",
                ref=ref,
                path=path,
            )

        return content.decoded_content.decode("utf-8", errors="replace")

    def list_directory(self, ref: str, path: str) -> Tuple[List[DirectoryEntry], bool]:
        contents = retry_with_backoff(self._get_contents, ref, path, backoff=self.backoff)

        if contents is None:
            raise TransportError(
                f"Directory '{path}' at '{ref:.7}' has no content", ref=ref, path=path
            )
        if not isinstance(contents, list):
            contents = [contents]

        entries = [
            DirectoryEntry(path=item.path, kind=EntryKind.from_api(item.type), size=item.size or 0)
            for item in contents
        ]
        truncated = len(entries) >= LISTING_CEILING
        if truncated:
            logger.debug(
                f"Listing of '{path or '/'}' reached the {LISTING_CEILING} entry ceiling",
                extra={"ref": ref, "directory": path},
            )
        return entries, truncated
