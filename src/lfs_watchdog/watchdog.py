"""Push-level orchestration: classify every distinct commit and report findings."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

from .classifier import Classifier
from .exceptions import ReportPublishError
from .logging_config import get_logger, log_context
from .models import CommitInfo, CommitOutcome, PushEvent
from .reporter import CommitState, Reporter, status_description

logger = get_logger("watchdog")

DEFAULT_MAX_WORKERS = 4


class Watchdog:
    """Checks all commits of a push for LFS problems.

    Distinct commits are classified concurrently on a bounded thread pool;
    each commit owns its config snapshot and outcome and is reported on its
    own. Non-distinct commits were delivered by an earlier push and are
    skipped so nothing is reported twice.
    """

    def __init__(
        self,
        classifier: Classifier,
        reporter: Reporter,
        max_workers: Optional[int] = None,
        set_status: bool = False,
        repository: str = "",
    ):
        """
        Initialize Watchdog.

        Args:
            classifier: Commit classifier for the pushed repository
            reporter: Where findings are published
            max_workers: Concurrent commit classifications per push
                        (default: DEFAULT_MAX_WORKERS)
            set_status: Maintain a pending/success/failure commit status
            repository: Repository full name, used as log context
        """
        if max_workers is None:
            max_workers = DEFAULT_MAX_WORKERS
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.classifier = classifier
        self.reporter = reporter
        self.max_workers = max_workers
        self.set_status = set_status
        self.repository = repository

    def check(self, push: PushEvent) -> List[CommitOutcome]:
        """
        Classify every distinct commit of ``push``.

        Returns once all commits are done. Outcomes are in completion order.
        A commit that fails unexpectedly is logged and left out.
        """
        commits = push.distinct_commits
        skipped = len(push.commits) - len(commits)
        if skipped:
            logger.debug(f"Skipping {skipped} non-distinct commit(s)")
        if not commits:
            return []

        outcomes: List[CommitOutcome] = []
        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(commits)), thread_name_prefix="watchdog"
        ) as executor:
            future_to_commit = {
                executor.submit(self.check_commit, commit): commit for commit in commits
            }
            for future in as_completed(future_to_commit):
                commit = future_to_commit[future]
                try:
                    outcome = future.result()
                except Exception:
                    logger.exception(
                        f"Checking commit '{commit.sha:.7}' failed",
                        extra={"repository": self.repository, "commit": commit.sha},
                    )
                    continue
                if outcome is not None:
                    outcomes.append(outcome)

        return outcomes

    def check_commit(self, commit: CommitInfo) -> Optional[CommitOutcome]:
        """Classify one commit and publish its findings, if any."""
        if not commit.distinct:
            return None

        with log_context(repository=self.repository, commit=commit.sha):
            if self.set_status:
                self._update_status(commit.sha, CommitState.PENDING, "Checking for LFS problems")

            config, outcome = self.classifier.classify_with_config(commit)
            report = self.classifier.report_for(outcome, config)

            if outcome.has_findings:
                try:
                    self.reporter.publish(report)
                except ReportPublishError as e:
                    logger.error(str(e))

            if self.set_status:
                state = CommitState.FAILURE if outcome.has_findings else CommitState.SUCCESS
                self._update_status(commit.sha, state, status_description(report))

            return outcome

    def _update_status(self, sha: str, state: CommitState, description: str) -> None:
        try:
            self.reporter.set_status(sha, state, description)
        except ReportPublishError as e:
            logger.error(str(e))
