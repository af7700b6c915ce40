"""Per-commit LFS classification."""

from typing import Optional, Tuple

from .attributes import GITATTRIBUTES_PATH, AttributeFilter
from .config_loader import ConfigLoader, PolicyConfig
from .content_store import ContentStore
from .exceptions import ContentNotFoundError, InvalidPointerError, TransportError, WatchdogError
from .logging_config import get_logger, log_context
from .models import CommitInfo, CommitOutcome, CommitReport, FileVerdict, Verdict
from .pointer import PointerValidator
from .size_resolver import SizeErrorKind, SizeResolver

logger = get_logger("classifier")


class Classifier:
    """Classifies the files of one commit at a time.

    Files within a commit are handled sequentially and in order. A failure
    on one file is logged and never stops the remaining files.
    """

    def __init__(
        self,
        store: ContentStore,
        config_loader: Optional[ConfigLoader] = None,
        size_resolver: Optional[SizeResolver] = None,
        pointer_validator: Optional[PointerValidator] = None,
    ):
        """
        Initialize Classifier.

        Args:
            store: Content store of the pushed repository
            config_loader: Policy loader (default: ConfigLoader(store))
            size_resolver: Size lookups (default: SizeResolver(store))
            pointer_validator: Pointer checks (default: PointerValidator(store))
        """
        self.store = store
        self.config_loader = config_loader or ConfigLoader(store)
        self.size_resolver = size_resolver or SizeResolver(store)
        self.pointer_validator = pointer_validator or PointerValidator(store)

    def load_config(self, sha: str) -> PolicyConfig:
        config, error = self.config_loader.load(sha)
        if error is not None:
            if isinstance(getattr(error, "cause", None), ContentNotFoundError):
                logger.info(f"No watchdog config at '{sha:.7}', using defaults")
            else:
                logger.warning(f"Using default config: {error}")
        return config

    def load_attribute_filter(self, sha: str) -> Optional[AttributeFilter]:
        try:
            text = self.store.get_file_content(sha, GITATTRIBUTES_PATH)
        except ContentNotFoundError:
            logger.debug(f"No {GITATTRIBUTES_PATH} at '{sha:.7}'")
            return None
        except TransportError as e:
            logger.warning(f"Could not read {GITATTRIBUTES_PATH}, assuming no LFS paths: {e}")
            return None
        return AttributeFilter.from_text(text)

    def classify(self, commit: CommitInfo) -> Optional[CommitOutcome]:
        """
        Classify every added and modified file of ``commit``.

        Returns:
            The CommitOutcome, or None for a commit that is not distinct
            (already delivered by an earlier push)
        """
        if not commit.distinct:
            logger.debug(f"Skipping non-distinct commit '{commit.sha:.7}'")
            return None

        _, outcome = self.classify_with_config(commit)
        return outcome

    def classify_with_config(self, commit: CommitInfo) -> Tuple[PolicyConfig, CommitOutcome]:
        """Classify ``commit`` and also return the policy it was checked against."""
        with log_context(commit=commit.sha):
            config = self.load_config(commit.sha)
            attribute_filter = self.load_attribute_filter(commit.sha)

            outcome = CommitOutcome(sha=commit.sha)
            for changed in commit.changed_files():
                outcome.record(self.classify_file(commit.sha, changed.path, config, attribute_filter))

            logger.info(
                f"Classified {len(outcome.verdicts)} file(s) in '{commit.sha:.7}': "
                f"{len(outcome.invalid_pointers)} invalid pointer(s), "
                f"{len(outcome.size_candidates)} LFS candidate(s)"
            )
            return config, outcome

    def classify_file(
        self,
        sha: str,
        path: str,
        config: PolicyConfig,
        attribute_filter: Optional[AttributeFilter],
    ) -> FileVerdict:
        lookup = self.size_resolver.resolve(sha, path)
        if not lookup.ok:
            if lookup.error_kind in (SizeErrorKind.MISSING, SizeErrorKind.WRONG_KIND):
                logger.error(f"Push payload does not match repository: {lookup.error}")
            else:
                logger.warning(f"Size of '{path}' unknown, skipping: {lookup.error}")
            return FileVerdict(path, Verdict.LOOKUP_ERROR, detail=str(lookup.error))

        size = lookup.unwrap()
        logger.debug(f"{path} {size}")

        if attribute_filter is not None and attribute_filter.matches(path):
            try:
                self.pointer_validator.validate(sha, path, size)
            except InvalidPointerError as e:
                logger.info(str(e))
                return FileVerdict(path, Verdict.INVALID_POINTER, size=size, detail=str(e))
            except WatchdogError as e:
                logger.warning(f"Could not validate LFS pointer '{path}': {e}")
                return FileVerdict(path, Verdict.LOOKUP_ERROR, size=size, detail=str(e))
            return FileVerdict(path, Verdict.OK, size=size)

        if config.suggestions_enabled and size > config.threshold_for(path):
            return FileVerdict(path, Verdict.SIZE_SUGGESTION, size=size)
        return FileVerdict(path, Verdict.OK, size=size)

    @staticmethod
    def report_for(outcome: CommitOutcome, config: PolicyConfig) -> CommitReport:
        return CommitReport(
            sha=outcome.sha,
            invalid_pointers=list(outcome.invalid_pointers),
            size_candidates=list(outcome.size_candidates),
            help_contact=config.help_contact,
            size_threshold_kb=config.size_threshold_kb,
        )
