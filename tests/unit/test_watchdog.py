"""Unit tests for push-level orchestration."""

import threading
import time
from unittest.mock import Mock

import pytest

from lfs_watchdog.classifier import Classifier
from lfs_watchdog.exceptions import ReportPublishError
from lfs_watchdog.models import CommitInfo, PushEvent
from lfs_watchdog.reporter import CommitState, Reporter
from lfs_watchdog.watchdog import Watchdog

MB = 1000 * 1000


def push(*commits):
    return PushEvent(
        repository_full_name="testorg/testrepo",
        repository_url="https://github.com/testorg/testrepo",
        commits=list(commits),
    )


@pytest.mark.unit
class TestWatchdog:
    """Test classification fan-out and reporting."""

    def test_publishes_commit_with_findings(self, fake_store):
        # Arrange
        store = fake_store(sizes={"big.bin": MB})
        reporter = Mock(spec=Reporter)
        watchdog = Watchdog(Classifier(store), reporter)

        # Act
        outcomes = watchdog.check(push(CommitInfo(sha="c1", added=["big.bin"])))

        # Assert
        assert [o.size_candidates for o in outcomes] == [["big.bin"]]
        reporter.publish.assert_called_once()
        published = reporter.publish.call_args.args[0]
        assert published.sha == "c1"
        assert published.size_candidates == ["big.bin"]
        assert published.size_threshold_kb == 500
        reporter.set_status.assert_not_called()

    def test_clean_commit_is_not_published(self, fake_store):
        store = fake_store(sizes={"small.txt": 10})
        reporter = Mock(spec=Reporter)

        outcomes = Watchdog(Classifier(store), reporter).check(
            push(CommitInfo(sha="c1", added=["small.txt"]))
        )

        assert len(outcomes) == 1
        reporter.publish.assert_not_called()

    def test_non_distinct_commits_produce_no_work(self):
        """Test that redelivered commits reach neither classifier nor reporter."""
        # Arrange
        classifier = Mock(spec=Classifier)
        reporter = Mock(spec=Reporter)
        watchdog = Watchdog(classifier, reporter, set_status=True)

        # Act
        outcomes = watchdog.check(
            push(CommitInfo(sha="c1", added=["big.bin"], distinct=False))
        )

        # Assert
        assert outcomes == []
        assert classifier.method_calls == []
        assert reporter.method_calls == []

    def test_check_commit_skips_non_distinct(self):
        reporter = Mock(spec=Reporter)
        classifier = Mock(spec=Classifier)

        result = Watchdog(classifier, reporter).check_commit(
            CommitInfo(sha="c1", distinct=False)
        )

        assert result is None
        classifier.classify_with_config.assert_not_called()

    def test_status_goes_pending_then_failure(self, fake_store):
        store = fake_store(sizes={"big.bin": MB})
        reporter = Mock(spec=Reporter)

        Watchdog(Classifier(store), reporter, set_status=True).check(
            push(CommitInfo(sha="c1", added=["big.bin"]))
        )

        states = [c.args[1] for c in reporter.set_status.call_args_list]
        assert states == [CommitState.PENDING, CommitState.FAILURE]

    def test_status_goes_pending_then_success(self, fake_store):
        store = fake_store(sizes={"small.txt": 1})
        reporter = Mock(spec=Reporter)

        Watchdog(Classifier(store), reporter, set_status=True).check(
            push(CommitInfo(sha="c1", added=["small.txt"]))
        )

        states = [c.args[1] for c in reporter.set_status.call_args_list]
        assert states == [CommitState.PENDING, CommitState.SUCCESS]

    def test_publish_failure_does_not_block_other_commits(self, fake_store):
        """Test that a failed comment is logged and other commits still get reported."""
        # Arrange
        store = fake_store(sizes={"big.bin": MB})
        reporter = Mock(spec=Reporter)
        reporter.publish.side_effect = [ReportPublishError("403"), None]

        # Act
        outcomes = Watchdog(Classifier(store), reporter, max_workers=1).check(
            push(
                CommitInfo(sha="c1", added=["big.bin"]),
                CommitInfo(sha="c2", added=["big.bin"]),
            )
        )

        # Assert
        assert len(outcomes) == 2
        assert reporter.publish.call_count == 2

    def test_unexpected_commit_failure_is_isolated(self, fake_store):
        # Arrange
        store = fake_store(sizes={"big.bin": MB})
        classifier = Classifier(store)
        original = classifier.classify_with_config

        def flaky(commit):
            if commit.sha == "boom":
                raise RuntimeError("unexpected")
            return original(commit)

        classifier.classify_with_config = flaky
        reporter = Mock(spec=Reporter)

        # Act
        outcomes = Watchdog(classifier, reporter).check(
            push(CommitInfo(sha="boom", added=["big.bin"]), CommitInfo(sha="ok", added=["big.bin"]))
        )

        # Assert
        assert [o.sha for o in outcomes] == ["ok"]

    def test_concurrency_is_bounded(self):
        """Test that no more than max_workers commits are classified at once."""
        # Arrange
        lock = threading.Lock()
        active = 0
        peak = 0

        class SlowClassifier(Classifier):
            def __init__(self):
                pass

            def classify_with_config(self, commit):
                nonlocal active, peak
                with lock:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.05)
                with lock:
                    active -= 1
                from lfs_watchdog.config_loader import PolicyConfig
                from lfs_watchdog.models import CommitOutcome

                return PolicyConfig(), CommitOutcome(sha=commit.sha)

        watchdog = Watchdog(SlowClassifier(), Mock(spec=Reporter), max_workers=2)

        # Act
        outcomes = watchdog.check(push(*[CommitInfo(sha=f"c{i}") for i in range(6)]))

        # Assert
        assert len(outcomes) == 6
        assert peak <= 2

    def test_rejects_non_positive_worker_count(self):
        with pytest.raises(ValueError):
            Watchdog(Mock(spec=Classifier), Mock(spec=Reporter), max_workers=0)
