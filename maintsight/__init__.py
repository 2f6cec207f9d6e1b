"""
MaintSight - Maintenance Risk Prediction from Commit History
============================================================

Predicts whether each file in a git repository is improving or degrading,
from how it has been changed: churn, authorship, bug-fix ratio and commit
velocity over a recent window, scored by a gradient-boosted tree ensemble.

Pipeline: GitCommitCollector -> engineer_features -> RiskScorer.
"""

__version__ = "0.1.0"

from .config import (
    DEFAULT_BRANCH,
    WINDOW_SIZE_DAYS,
    MAX_COMMITS,
    FEATURE_NAMES,
    SOURCE_EXTENSIONS,
)

from .exceptions import (
    MaintSightError,
    RepositoryError,
    RepositoryNotFoundError,
    InvalidRepositoryError,
    BranchNotFoundError,
    HistoryQueryError,
    HistoryTooLargeError,
    DatasetError,
    ModelError,
    ModelLoadError,
    ModelNotLoadedError,
)

from .commits import (
    CommitCategory,
    CommitRecord,
    FileHistory,
    GitCommitCollector,
    PathMapping,
    aggregate_commits,
    classify_commit,
    parse_git_log,
    parse_rename,
)

from .features import (
    FileFeatures,
    engineer_features,
    transform,
    extract_feature_vector,
    get_feature_names,
)

from .scorer import (
    RiskCategory,
    RiskPrediction,
    RiskScorer,
    TreeModel,
    calibrate_predictions,
    get_risk_category,
    load_model,
)

from .analysis import analyze_repository

__all__ = [
    # Config
    "DEFAULT_BRANCH",
    "WINDOW_SIZE_DAYS",
    "MAX_COMMITS",
    "FEATURE_NAMES",
    "SOURCE_EXTENSIONS",
    # Errors
    "MaintSightError",
    "RepositoryError",
    "RepositoryNotFoundError",
    "InvalidRepositoryError",
    "BranchNotFoundError",
    "HistoryQueryError",
    "HistoryTooLargeError",
    "DatasetError",
    "ModelError",
    "ModelLoadError",
    "ModelNotLoadedError",
    # Commit history
    "CommitCategory",
    "CommitRecord",
    "FileHistory",
    "GitCommitCollector",
    "PathMapping",
    "aggregate_commits",
    "classify_commit",
    "parse_git_log",
    "parse_rename",
    # Features
    "FileFeatures",
    "engineer_features",
    "transform",
    "extract_feature_vector",
    "get_feature_names",
    # Scoring
    "RiskCategory",
    "RiskPrediction",
    "RiskScorer",
    "TreeModel",
    "calibrate_predictions",
    "get_risk_category",
    "load_model",
    # Pipeline
    "analyze_repository",
]
