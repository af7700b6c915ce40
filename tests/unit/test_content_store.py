"""Unit tests for the PyGithub-backed content store."""

import base64
from unittest.mock import Mock, patch

import pytest
import requests
from github import GithubException, RateLimitExceededException, UnknownObjectException

from lfs_watchdog.content_store import (
    LISTING_CEILING,
    GitHubContentStore,
    translate_github_error,
)
from lfs_watchdog.exceptions import ContentNotFoundError, TransportError
from lfs_watchdog.models import DirectoryEntry, EntryKind
from lfs_watchdog.retry import NO_RETRY, Backoff


def content_file(path="a.txt", text="hello", encoding="base64", type_="file", size=None):
    item = Mock()
    item.path = path
    item.type = type_
    item.size = len(text) if size is None else size
    item.encoding = encoding
    item.decoded_content = text.encode("utf-8")
    item.content = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return item


@pytest.mark.unit
class TestTranslateGithubError:
    """Test mapping of PyGithub failures onto TransportError."""

    def test_unknown_object_is_not_found(self):
        error = UnknownObjectException(404, {"message": "Not Found"}, {})

        translated = translate_github_error(error, "abc123", "missing.txt")

        assert isinstance(translated, ContentNotFoundError)
        assert translated.retryable is False
        assert translated.path == "missing.txt"

    def test_plain_404_is_not_found(self):
        translated = translate_github_error(GithubException(404, {}, {}), "abc", "x")

        assert isinstance(translated, ContentNotFoundError)

    def test_server_error_is_retryable(self):
        translated = translate_github_error(GithubException(502, {}, {}), "abc", "x")

        assert type(translated) is TransportError
        assert translated.retryable is True
        assert translated.status == 502

    def test_client_error_is_not_retryable(self):
        translated = translate_github_error(GithubException(403, {}, {}), "abc", "x")

        assert translated.retryable is False

    def test_rate_limit_is_retryable(self):
        error = RateLimitExceededException(403, {"message": "API rate limit exceeded"}, {})

        assert translate_github_error(error, "abc", "x").retryable is True

    def test_connection_error_is_retryable(self):
        error = requests.exceptions.ConnectionError("connection reset")

        translated = translate_github_error(error, "abc", "x")

        assert translated.retryable is True
        assert "connection reset" in str(translated)


@pytest.mark.unit
class TestGitHubContentStore:
    """Test reads through a mocked PyGithub Repository."""

    def test_get_file_content(self):
        # Arrange
        repository = Mock()
        repository.get_contents.return_value = content_file(text="lfsSizeThreshold: 1\n")
        store = GitHubContentStore(repository, backoff=NO_RETRY)

        # Act
        text = store.get_file_content("abc123", ".github/watchdog.yml")

        # Assert
        assert text == "lfsSizeThreshold: 1\n"
        repository.get_contents.assert_called_once_with(".github/watchdog.yml", ref="abc123")

    def test_get_file_content_not_found(self):
        repository = Mock()
        repository.get_contents.side_effect = UnknownObjectException(404, {}, {})

        with pytest.raises(ContentNotFoundError):
            GitHubContentStore(repository, backoff=NO_RETRY).get_file_content("abc", "x")

    def test_get_file_content_of_directory_fails(self):
        repository = Mock()
        repository.get_contents.return_value = [content_file()]

        with pytest.raises(TransportError, match="is a directory"):
            GitHubContentStore(repository, backoff=NO_RETRY).get_file_content("abc", "dir")

    def test_large_blob_without_inline_content_fails(self):
        repository = Mock()
        repository.get_contents.return_value = content_file(encoding="none")

        with pytest.raises(TransportError, match="not available inline"):
            GitHubContentStore(repository, backoff=NO_RETRY).get_file_content("abc", "big")

    def test_undecodable_bytes_are_replaced(self):
        repository = Mock()
        item = content_file()
        item.decoded_content = b"\xff\xfebinary"
        repository.get_contents.return_value = item

        text = GitHubContentStore(repository, backoff=NO_RETRY).get_file_content("abc", "x")

        assert text.endswith("binary")

    @patch("lfs_watchdog.retry.time.sleep")
    def test_transient_failure_is_retried(self, mock_sleep):
        """Test that a 502 followed by success returns the content."""
        # Arrange
        repository = Mock()
        repository.get_contents.side_effect = [
            GithubException(502, {"message": "Bad Gateway"}, {}),
            content_file(text="ok"),
        ]
        store = GitHubContentStore(
            repository, backoff=Backoff(retries=2, jitter=False)
        )

        # Act
        text = store.get_file_content("abc", "x")

        # Assert
        assert text == "ok"
        assert repository.get_contents.call_count == 2
        mock_sleep.assert_called_once_with(0.5)

    @patch("lfs_watchdog.retry.time.sleep")
    def test_not_found_is_never_retried(self, mock_sleep):
        repository = Mock()
        repository.get_contents.side_effect = UnknownObjectException(404, {}, {})

        with pytest.raises(ContentNotFoundError):
            GitHubContentStore(repository).get_file_content("abc", "x")

        assert repository.get_contents.call_count == 1
        mock_sleep.assert_not_called()

    def test_list_directory(self):
        # Arrange
        repository = Mock()
        repository.get_contents.return_value = [
            content_file(path="src/main.c", size=1200),
            content_file(path="src/link", type_="symlink", size=0),
            content_file(path="src/vendor", type_="dir", size=0),
            content_file(path="src/lib", type_="submodule", size=0),
        ]

        # Act
        entries, truncated = GitHubContentStore(repository, backoff=NO_RETRY).list_directory(
            "abc", "src"
        )

        # Assert
        assert truncated is False
        assert entries == [
            DirectoryEntry("src/main.c", EntryKind.FILE, 1200),
            DirectoryEntry("src/link", EntryKind.SYMLINK, 0),
            DirectoryEntry("src/vendor", EntryKind.DIRECTORY, 0),
            DirectoryEntry("src/lib", EntryKind.SUBMODULE, 0),
        ]

    def test_list_root_directory(self):
        repository = Mock()
        repository.get_contents.return_value = [content_file(path="README.md")]

        GitHubContentStore(repository, backoff=NO_RETRY).list_directory("abc", "")

        repository.get_contents.assert_called_once_with("", ref="abc")

    def test_listing_at_ceiling_is_truncated(self):
        repository = Mock()
        repository.get_contents.return_value = [
            content_file(path=f"big/f{i}", size=1) for i in range(LISTING_CEILING)
        ]

        entries, truncated = GitHubContentStore(
            repository, backoff=NO_RETRY
        ).list_directory("abc", "big")

        assert len(entries) == LISTING_CEILING
        assert truncated is True

    def test_listing_just_below_ceiling_is_complete(self):
        repository = Mock()
        repository.get_contents.return_value = [
            content_file(path=f"big/f{i}", size=1) for i in range(LISTING_CEILING - 1)
        ]

        _, truncated = GitHubContentStore(repository, backoff=NO_RETRY).list_directory(
            "abc", "big"
        )

        assert truncated is False
