"""
Feature definitions and engineering.

The aggregator produces 13 base counters per file; this module derives the
13 ratio features the model was trained on and flattens both into the
26-element vector the tree ensemble reads by position.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, asdict, fields, replace

from .config import FEATURE_NAMES, HIGH_CHURN_PER_COMMIT

Number = int | float


@dataclass(frozen=True)
class FileFeatures:
    """Base counters plus engineered features for one file"""
    module: str = ''
    filename: str = ''
    repo_name: str = ''

    # Base counters, in model order
    commits: Number | None = None
    authors: Number | None = None
    lines_added: Number | None = None
    lines_deleted: Number | None = None
    churn: Number | None = None
    bug_commits: Number | None = None
    refactor_commits: Number | None = None
    feature_commits: Number | None = None
    lines_per_author: Number | None = None
    churn_per_commit: Number | None = None
    bug_ratio: Number | None = None
    days_active: Number | None = None
    commits_per_day: Number | None = None

    # Engineered, in model order
    degradation_days: Number | None = None
    net_lines: Number | None = None
    code_stability: float | None = None
    is_high_churn_commit: int | None = None
    bug_commit_rate: float | None = None
    commits_squared: Number | None = None
    author_concentration: float | None = None
    lines_per_commit: float | None = None
    churn_rate: float | None = None
    modification_ratio: float | None = None
    churn_per_author: float | None = None
    deletion_rate: float | None = None
    commit_density: float | None = None

    @classmethod
    def from_record(cls, record) -> 'FileFeatures':
        """Build from a FileHistory or any mapping, ignoring unknown keys"""
        data = record if isinstance(record, Mapping) else record.to_dict()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)


def _defined(*values) -> bool:
    return all(v is not None for v in values)


def engineer_features(record) -> FileFeatures:
    """Derive the engineered ratios for one base record (pure function)"""
    base = record if isinstance(record, FileFeatures) else FileFeatures.from_record(record)

    commits = base.commits
    authors = base.authors
    added = base.lines_added
    deleted = base.lines_deleted
    churn = base.churn
    days = base.days_active

    derived = {}

    # Growth and stability
    if _defined(added, deleted):
        derived['net_lines'] = added - deleted
        derived['modification_ratio'] = deleted / (added + 1)
        derived['deletion_rate'] = deleted / (added + deleted + 1)
    if _defined(churn, added):
        derived['code_stability'] = churn / (added + 1)
    if _defined(base.churn_per_commit):
        derived['is_high_churn_commit'] = 1 if base.churn_per_commit > HIGH_CHURN_PER_COMMIT else 0

    # Commit activity
    if _defined(base.bug_commits, commits):
        derived['bug_commit_rate'] = base.bug_commits / (commits + 1)
    if _defined(commits):
        derived['commits_squared'] = commits * commits
    if _defined(added, commits):
        derived['lines_per_commit'] = added / (commits + 1)

    # Ownership
    if _defined(authors):
        derived['author_concentration'] = 1.0 / (authors + 1)
    if _defined(churn, authors):
        derived['churn_per_author'] = churn / (authors + 1)

    # Velocity over the active window
    if _defined(churn, days):
        derived['churn_rate'] = churn / (days + 1)
    if _defined(commits, days):
        derived['commit_density'] = commits / (days + 1)
    if _defined(days):
        derived['degradation_days'] = days

    return replace(base, **derived)


def transform(records: Iterable) -> list[FileFeatures]:
    """Engineer features for a batch of base records"""
    return [engineer_features(r) for r in records]


def extract_feature_vector(features: FileFeatures) -> list[float]:
    """Flatten to the model's positional input; missing values read as 0"""
    vector = []
    for name in FEATURE_NAMES:
        value = getattr(features, name)
        vector.append(float(value) if value is not None else 0.0)
    return vector


def get_feature_names() -> list[str]:
    """Feature names in the order the model expects"""
    return list(FEATURE_NAMES)
