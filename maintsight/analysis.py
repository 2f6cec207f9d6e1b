"""
End-to-end pipeline: git history -> features -> calibrated risk predictions.
"""

import logging
from pathlib import Path

from .config import DEFAULT_BRANCH, WINDOW_SIZE_DAYS, MAX_COMMITS
from .commits import GitCommitCollector, FileHistory
from .scorer import RiskScorer, RiskPrediction

log = logging.getLogger(__name__)


def analyze_repository(repo_path: str | Path, branch: str = DEFAULT_BRANCH,
                       window_size_days: int = WINDOW_SIZE_DAYS, max_commits: int = MAX_COMMITS,
                       only_existing_files: bool = True, scorer: RiskScorer | None = None,
                       ) -> tuple[list[FileHistory], list[RiskPrediction]]:
    """
    Score every source file changed on a branch within the time window.

    Returns the aggregated histories alongside their predictions; both lists
    are empty when no source file qualifies.
    """
    if scorer is None:
        scorer = RiskScorer()
    if not scorer.is_loaded:
        scorer.load_model()

    collector = GitCommitCollector(
        repo_path,
        branch=branch,
        window_size_days=window_size_days,
        max_commits=max_commits,
        only_existing_files=only_existing_files,
    )
    histories = collector.fetch_commit_data()
    if not histories:
        return [], []

    log.info('Running predictions on %d files...', len(histories))
    return histories, scorer.predict(histories)
