"""Publishing classification findings back to the hosting platform."""

from abc import ABC, abstractmethod
from enum import Enum

import requests
from github import GithubException
from github.Repository import Repository

from .exceptions import ReportPublishError
from .logging_config import get_logger
from .models import CommitReport

logger = get_logger("reporter")

STATUS_CONTEXT = "lfs-watchdog"

LFS_LINK = "[Git LFS](https://git-lfs.github.com/)"
TUTORIAL_LINK = "[Git LFS tutorial](https://www.youtube.com/watch?v=YQzNfb4IwEY)"


class CommitState(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


def compose_comment(report: CommitReport) -> str:
    """Render the commit comment for a report with findings."""
    sections = []
    if report.size_candidates:
        lines = "".join(f"\n- {path}" for path in report.size_candidates)
        sections.append(
            f"**:warning: The following files are larger than {report.size_threshold_kb}KB "
            f"and may need to be tracked with {LFS_LINK}:**{lines}\n\n"
        )
    if report.invalid_pointers:
        lines = "".join(f"\n- {path}" for path in report.invalid_pointers)
        sections.append(
            f"**:warning: The following files have not been properly added to "
            f"{LFS_LINK}:**{lines}\n\n"
        )
    sections.append(f"> Watch the {TUTORIAL_LINK} or contact {report.help_contact} for help.")
    return "".join(sections)


def status_description(report: CommitReport) -> str:
    """Short status text (GitHub truncates descriptions at 140 characters)."""
    parts = []
    if report.invalid_pointers:
        parts.append(f"{len(report.invalid_pointers)} invalid LFS pointer(s)")
    if report.size_candidates:
        parts.append(f"{len(report.size_candidates)} file(s) over {report.size_threshold_kb}KB")
    return ", ".join(parts) if parts else "No LFS problems found"


class Reporter(ABC):
    """Receives the findings of one commit."""

    @abstractmethod
    def publish(self, report: CommitReport) -> None:
        """Publish a notice for a commit with findings.

        Raises:
            ReportPublishError: If the notice could not be posted
        """

    @abstractmethod
    def set_status(self, sha: str, state: CommitState, description: str) -> None:
        """Set the watchdog status marker on a commit.

        Raises:
            ReportPublishError: If the status could not be posted
        """


class GitHubReporter(Reporter):
    """Posts commit comments and commit statuses through PyGithub."""

    def __init__(self, repository: Repository, status_context: str = STATUS_CONTEXT):
        self.repository = repository
        self.status_context = status_context

    def publish(self, report: CommitReport) -> None:
        body = compose_comment(report)
        try:
            comment = self.repository.get_commit(report.sha).create_comment(body)
        except (GithubException, requests.exceptions.RequestException) as e:
            raise ReportPublishError(
                f"Could not comment on '{report.sha:.7}' in {self.repository.full_name}: {e}",
                sha=report.sha,
            ) from e
        logger.info(f"Posted comment: {getattr(comment, 'html_url', '')}")

    def set_status(self, sha: str, state: CommitState, description: str) -> None:
        try:
            self.repository.get_commit(sha).create_status(
                state=state.value,
                description=description[:140],
                context=self.status_context,
            )
        except (GithubException, requests.exceptions.RequestException) as e:
            raise ReportPublishError(
                f"Could not set status '{state.value}' on '{sha:.7}' "
                f"in {self.repository.full_name}: {e}",
                sha=sha,
            ) from e


class LogReporter(Reporter):
    """Logs findings instead of posting them (dry run)."""

    def publish(self, report: CommitReport) -> None:
        for path in report.invalid_pointers:
            logger.warning(f"invalid pointer: {path}", extra={"commit": report.sha})
        for path in report.size_candidates:
            logger.warning(f"LFS candidate: {path}", extra={"commit": report.sha})

    def set_status(self, sha: str, state: CommitState, description: str) -> None:
        logger.info(f"status {state.value}: {description}", extra={"commit": sha})
