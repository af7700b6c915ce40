"""GitHub API client construction and commit lookups."""

from typing import Optional
from urllib.parse import urlparse

import requests
from github import Auth, Github, GithubException
from github.Repository import Repository

from .content_store import translate_github_error
from .models import CommitInfo

GITHUB_API_URL = "https://api.github.com"


class GitHubClient:
    """Client for the GitHub (or GitHub Enterprise) REST API."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = GITHUB_API_URL,
        gh_instance=None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub token used for all requests
            base_url: GitHub API base URL (default: https://api.github.com)
            gh_instance: Optional Github instance for testing (default: None)
        """
        self.base_url = base_url.rstrip("/")
        if gh_instance is not None:
            self.gh = gh_instance
        else:
            auth = Auth.Token(token) if token else None
            self.gh = Github(base_url=self.base_url, auth=auth)

    @staticmethod
    def api_url_for(repository_url: str) -> str:
        """
        Derive the API base URL from a repository's web URL.

        Args:
            repository_url: e.g. "https://ghe.company.com/org/repo"

        Returns:
            "https://api.github.com" for github.com, otherwise the
            GitHub Enterprise endpoint "<scheme>://<host>/api/v3"

        Raises:
            ValueError: If the URL has no host
        """
        parsed = urlparse(repository_url)
        if not parsed.hostname:
            raise ValueError(f"Cannot derive an API URL from '{repository_url}'")
        if parsed.hostname in ("github.com", "www.github.com"):
            return GITHUB_API_URL
        return f"{parsed.scheme or 'https'}://{parsed.netloc}/api/v3"

    def get_repository(self, full_name: str) -> Repository:
        """
        Open a repository by full name ("owner/repo").

        Raises:
            ContentNotFoundError: If the repository does not exist or is not visible
            TransportError: For other API failures
        """
        try:
            return self.gh.get_repo(full_name)
        except (GithubException, requests.exceptions.RequestException) as e:
            raise translate_github_error(e, "", full_name) from e

    def commit_changes(self, repository: Repository, sha: str) -> CommitInfo:
        """
        Describe a single commit the way a push event would.

        Renames count as an added path plus a removed path. The commit is
        always treated as distinct.

        Raises:
            ContentNotFoundError: If the commit does not exist
            TransportError: For other API failures
        """
        try:
            commit = repository.get_commit(sha)
            files = list(commit.files)
        except (GithubException, requests.exceptions.RequestException) as e:
            raise translate_github_error(e, sha, repository.full_name) from e

        info = CommitInfo(sha=commit.sha, distinct=True, message=commit.commit.message or "")
        for changed in files:
            if changed.status in ("added", "copied"):
                info.added.append(changed.filename)
            elif changed.status in ("modified", "changed"):
                info.modified.append(changed.filename)
            elif changed.status == "removed":
                info.removed.append(changed.filename)
            elif changed.status == "renamed":
                info.added.append(changed.filename)
                if changed.previous_filename:
                    info.removed.append(changed.previous_filename)
        return info
