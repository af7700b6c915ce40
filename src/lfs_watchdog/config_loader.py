"""Per-repository watchdog policy loaded from ``.github/watchdog.yml``.

Example file::

    # Contact used in violation comments
    helpContact: "#tech-git on Slack"

    # Suggest LFS for files larger than this many bytes
    lfsSizeThreshold: 512000

    # Files that are allowed to grow up to lfsSizeExemptionsThreshold bytes
    lfsSizeExemptions: |
      Regression/CrsTestSuite.txt
      *.xml
    lfsSizeExemptionsThreshold: 20000000

    lfsSuggestionsEnabled: Yes
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .attributes import PathFilter
from .content_store import ContentStore
from .exceptions import ConfigLoadError, TransportError
from .logging_config import get_logger

logger = get_logger("config_loader")

CONFIG_PATH = ".github/watchdog.yml"

DEFAULT_HELP_CONTACT = "your Git administrators"
DEFAULT_SIZE_THRESHOLD = 512000
DEFAULT_EXEMPTIONS_THRESHOLD = 20000000


class WatchdogConfigFile(BaseModel):
    """Schema of the YAML file. Unknown keys and loose types are rejected."""

    model_config = ConfigDict(extra="forbid", strict=True, populate_by_name=True)

    help_contact: str = Field(DEFAULT_HELP_CONTACT, alias="helpContact")
    suggestions_enabled: bool = Field(True, alias="lfsSuggestionsEnabled")
    size_threshold: int = Field(DEFAULT_SIZE_THRESHOLD, alias="lfsSizeThreshold", ge=0)
    size_exemptions: Union[str, List[str]] = Field("", alias="lfsSizeExemptions")
    size_exemptions_threshold: int = Field(
        DEFAULT_EXEMPTIONS_THRESHOLD, alias="lfsSizeExemptionsThreshold", ge=0
    )

    def exemption_patterns(self) -> List[str]:
        if isinstance(self.size_exemptions, str):
            return self.size_exemptions.split()
        return [p for entry in self.size_exemptions for p in entry.split()]


@dataclass(frozen=True)
class PolicyConfig:
    """Size policy for one repository at one ref.

    ``exemption_threshold_bytes`` is expected to be at least
    ``size_threshold_bytes`` but that is not enforced: a lower value makes
    exempt paths stricter than the others.
    """

    help_contact: str = DEFAULT_HELP_CONTACT
    suggestions_enabled: bool = True
    size_threshold_bytes: int = DEFAULT_SIZE_THRESHOLD
    exemption_filter: PathFilter = field(default_factory=lambda: PathFilter([]))
    exemption_threshold_bytes: int = DEFAULT_EXEMPTIONS_THRESHOLD

    def __post_init__(self) -> None:
        if self.size_threshold_bytes < 0:
            raise ValueError("size_threshold_bytes must be >= 0")
        if self.exemption_threshold_bytes < 0:
            raise ValueError("exemption_threshold_bytes must be >= 0")

    @property
    def size_threshold_kb(self) -> int:
        return self.size_threshold_bytes // 1024

    def is_exempt(self, path: str) -> bool:
        return self.exemption_filter.matches(path)

    def threshold_for(self, path: str) -> int:
        """Return the size limit that applies to ``path``."""
        if self.is_exempt(path):
            return self.exemption_threshold_bytes
        return self.size_threshold_bytes

    @classmethod
    def from_yaml(cls, text: str) -> "PolicyConfig":
        """Parse the YAML config file text.

        Keys missing from the file keep their default values.

        Raises:
            ConfigLoadError: On YAML syntax errors, a non-mapping document,
                unknown keys, wrong value types or negative thresholds
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Invalid YAML in {CONFIG_PATH}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"{CONFIG_PATH} must contain a mapping, got {type(data).__name__}"
            )

        try:
            parsed = WatchdogConfigFile.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigLoadError(f"Invalid {CONFIG_PATH}: {problems}") from e

        return cls(
            help_contact=parsed.help_contact,
            suggestions_enabled=parsed.suggestions_enabled,
            size_threshold_bytes=parsed.size_threshold,
            exemption_filter=PathFilter(parsed.exemption_patterns()),
            exemption_threshold_bytes=parsed.size_exemptions_threshold,
        )


class ConfigLoader:
    """Loads the PolicyConfig of a repository at a ref, falling back to defaults."""

    def __init__(self, store: ContentStore, config_path: str = CONFIG_PATH):
        """
        Initialize ConfigLoader.

        Args:
            store: Content store of the repository
            config_path: Repository-relative path of the config file
        """
        self.store = store
        self.config_path = config_path

    def load(self, ref: str) -> Tuple[PolicyConfig, Optional[ConfigLoadError]]:
        """
        Load the config at ``ref``.

        Any failure yields the default PolicyConfig together with the error,
        so callers can log it and carry on with usable settings.

        Returns:
            Tuple of (config, error) where error is None on success
        """
        try:
            text = self.store.get_file_content(ref, self.config_path)
        except TransportError as e:
            return PolicyConfig(), ConfigLoadError(
                f"Could not read {self.config_path} at '{ref:.7}': {e}", ref=ref, cause=e
            )

        try:
            return PolicyConfig.from_yaml(text), None
        except ConfigLoadError as e:
            e.ref = ref
            return PolicyConfig(), e
