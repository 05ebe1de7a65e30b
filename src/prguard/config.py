"""Per-repository triage configuration, loaded from ``.github/prguard.yml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from prguard.exceptions import ConfigError
from prguard.rate_limit import DEFAULT_DAILY_LIMIT, OPENAI_BUDGET_PER_HOUR
from prguard.store.embeddings import DEFAULT_CANDIDATE_LIMIT

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

CONFIG_PATH = ".github/prguard.yml"
"""Repository path the configuration is read from."""


@dataclass
class LabelConfig:
    """Label names PRGuard applies."""

    duplicate: str = "prguard:duplicate"
    off_scope: str = "prguard:off-scope"
    on_track: str = "prguard:on-track"
    needs_review: str = "prguard:needs-review"
    recommended: str = "prguard:recommended"

    def all(self) -> list[str]:
        """Every configured label name, in declaration order."""
        return [getattr(self, f.name) for f in fields(self)]


@dataclass
class QualityThresholds:
    """Score cut-offs: approve at or above ``approve``, reject below ``reject``."""

    approve: float = 0.75
    reject: float = 0.45

    def __post_init__(self) -> None:
        for name in ("approve", "reject"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"quality_thresholds.{name} must be in [0, 1], got {value!r}")
        if self.reject > self.approve:
            raise ConfigError(
                f"quality_thresholds.reject ({self.reject}) exceeds approve ({self.approve})"
            )


@dataclass
class TriageConfig:
    """Triage settings for one repository."""

    duplicate_threshold: float = 0.85
    """Minimum cosine similarity for two items to count as duplicates."""

    labels: LabelConfig = field(default_factory=LabelConfig)

    trusted_users: list[str] = field(default_factory=list)
    """Authors whose items are never triaged."""

    quality_thresholds: QualityThresholds = field(default_factory=QualityThresholds)

    max_diff_lines: int = 10000
    """Diffs above this size are still analyzed but logged as oversized."""

    dry_run: bool = False
    """Log labels and comments instead of applying them."""

    skip_bots: bool = True

    daily_limit: int = DEFAULT_DAILY_LIMIT
    """Analyses per tenant per UTC day."""

    hourly_budget: int = OPENAI_BUDGET_PER_HOUR
    """Embedding calls per repository per UTC hour."""

    candidate_limit: int = DEFAULT_CANDIDATE_LIMIT
    """Most recent active items compared per dedup pass."""

    openai_api_key: str | None = field(default=None, repr=False)
    """Repository-specific OpenAI key; overrides the facade-wide provider when set."""

    def __post_init__(self) -> None:
        if not 0.0 <= self.duplicate_threshold <= 1.0:
            raise ConfigError(
                f"duplicate_threshold must be in [0, 1], got {self.duplicate_threshold!r}"
            )
        for name in ("daily_limit", "hourly_budget", "candidate_limit", "max_diff_lines"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")


def parse_config(yaml_text: str) -> TriageConfig:
    """Parse a ``prguard.yml`` document, falling back to defaults.

    Missing keys take their defaults and the ``labels`` and
    ``quality_thresholds`` maps merge over the default maps. A document
    that is not valid YAML, is not a mapping, or holds out-of-range
    values is logged and replaced by the defaults.
    """
    try:
        parsed = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError:
        logger.warning("Invalid prguard.yml; using defaults", exc_info=True)
        return TriageConfig()

    if not isinstance(parsed, dict):
        logger.warning("prguard.yml is a %s, not a mapping; using defaults", type(parsed).__name__)
        return TriageConfig()

    try:
        return _from_mapping(parsed)
    except (ConfigError, TypeError, ValueError) as exc:
        logger.warning("Rejected prguard.yml (%s); using defaults", exc)
        return TriageConfig()


def load_config(path: str | Path) -> TriageConfig:
    """Read and parse a configuration file; a missing file yields defaults."""
    config_path = Path(path)
    if not config_path.is_file():
        return TriageConfig()
    return parse_config(config_path.read_text(encoding="utf-8"))


async def default_config_loader(collection: str) -> TriageConfig:
    """Config loader used when none is supplied: defaults for every repository."""
    return TriageConfig()


def static_config_loader(
    configs: dict[str, TriageConfig],
    default: TriageConfig | None = None,
) -> Callable[[str], Awaitable[TriageConfig]]:
    """Build a loader that serves fixed per-repository configs."""
    fallback = default or TriageConfig()

    async def _load(collection: str) -> TriageConfig:
        return configs.get(collection, fallback)

    return _load


def _from_mapping(data: dict[str, Any]) -> TriageConfig:
    defaults = TriageConfig()

    labels_data = data.get("labels") or {}
    if not isinstance(labels_data, dict):
        raise ConfigError("labels must be a mapping")
    label_names = {f.name for f in fields(LabelConfig)}
    labels = LabelConfig(
        **{
            k: str(v).strip()
            for k, v in labels_data.items()
            if k in label_names and v is not None and str(v).strip()
        }
    )

    thresholds_data = data.get("quality_thresholds") or {}
    if not isinstance(thresholds_data, dict):
        raise ConfigError("quality_thresholds must be a mapping")
    thresholds = QualityThresholds(
        approve=float(thresholds_data.get("approve", defaults.quality_thresholds.approve)),
        reject=float(thresholds_data.get("reject", defaults.quality_thresholds.reject)),
    )

    trusted = data.get("trusted_users", defaults.trusted_users)
    if not isinstance(trusted, list):
        raise ConfigError("trusted_users must be a list")

    return TriageConfig(
        duplicate_threshold=float(data.get("duplicate_threshold", defaults.duplicate_threshold)),
        labels=labels,
        trusted_users=[str(u) for u in trusted],
        quality_thresholds=thresholds,
        max_diff_lines=int(data.get("max_diff_lines", defaults.max_diff_lines)),
        dry_run=_flag(data, "dry_run", defaults.dry_run),
        skip_bots=_flag(data, "skip_bots", defaults.skip_bots),
        daily_limit=int(data.get("daily_limit", defaults.daily_limit)),
        hourly_budget=int(data.get("hourly_budget", defaults.hourly_budget)),
        candidate_limit=int(data.get("candidate_limit", defaults.candidate_limit)),
        openai_api_key=str(data.get("openai_api_key") or "").strip() or None,
    )


def _flag(data: dict[str, Any], name: str, default: bool) -> bool:
    """Read a YAML boolean; quoted strings and numbers are rejected."""
    value = data.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false, got {value!r}")
    return value
