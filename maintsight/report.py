"""
Tabular views and text output for risk predictions.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from .config import STABLE_MAX, DEGRADED_MAX
from .scorer import RiskCategory, RiskPrediction

PREDICTION_COLS = ['module', 'degradation_score', 'raw_prediction', 'risk_category']

# Most severe first, the order every summary lists them in
CATEGORY_ORDER = [
    RiskCategory.SEVERELY_DEGRADED,
    RiskCategory.DEGRADED,
    RiskCategory.STABLE,
    RiskCategory.IMPROVED,
]

FORMATS = ('json', 'csv', 'markdown')


def predictions_to_frame(predictions: list[RiskPrediction]) -> pd.DataFrame:
    """One row per file with the prediction columns"""
    if not predictions:
        return pd.DataFrame(columns=PREDICTION_COLS)
    return pd.DataFrame([p.to_dict() for p in predictions], columns=PREDICTION_COLS)


def filter_by_threshold(predictions: list[RiskPrediction], threshold: float) -> list[RiskPrediction]:
    """Keep files at or above a degradation score; threshold <= 0 keeps everything"""
    if threshold <= 0:
        return list(predictions)
    return [p for p in predictions if p.degradation_score >= threshold]


def risk_distribution(predictions: list[RiskPrediction]) -> dict[str, int]:
    """Count of files per risk category, zero-filled, most severe first"""
    labels = [c.value for c in CATEGORY_ORDER]
    counts = pd.Series([p.risk_category.value for p in predictions], dtype=object).value_counts()
    return {label: int(counts.get(label, 0)) for label in labels}


# =============================================================================
# FORMATTERS
# =============================================================================

def format_json(predictions: list[RiskPrediction]) -> str:
    """Each prediction with the file's base and engineered features alongside"""
    return json.dumps([p.to_dict(include_features=True) for p in predictions], indent=2)


def format_csv(predictions: list[RiskPrediction]) -> str:
    frame = predictions_to_frame(predictions)[PREDICTION_COLS]
    return frame.to_csv(index=False, float_format='%.4f', lineterminator='\n')


def format_markdown(predictions: list[RiskPrediction], repo_path: str | Path,
                    generated_at: datetime | None = None, top_n: int = 20) -> str:
    repo_name = Path(repo_path).resolve().name
    generated_at = generated_at or datetime.now(timezone.utc)
    total = len(predictions)
    distribution = risk_distribution(predictions)

    lines = [
        '# MaintSight - Maintenance Risk Analysis Report',
        '',
        f'**Repository:** {repo_name}',
        f'**Date:** {generated_at.isoformat()}',
        f'**Files Analyzed:** {total}',
        '',
        '## Risk Distribution',
        '',
        '| Risk Level | Count | Percentage |',
        '|------------|-------|------------|',
    ]
    for category in CATEGORY_ORDER:
        count = distribution[category.value]
        pct = count / total * 100 if total else 0.0
        label = category.value.replace('_', ' ').title()
        lines.append(f'| {label} | {count} | {pct:.1f}% |')

    lines += [
        '',
        f'## Top {top_n} High-Risk Files',
        '',
        '| File | Degradation Score | Category |',
        '|------|------------------|----------|',
    ]
    ranked = sorted(predictions, key=lambda p: p.degradation_score, reverse=True)
    for p in ranked[:top_n]:
        lines.append(f'| `{p.module}` | {p.degradation_score:.4f} | {p.risk_category.value} |')

    lines += [
        '',
        '## Risk Categories',
        '',
        f'- **Severely Degraded (> {DEGRADED_MAX})**: Critical attention needed - code quality declining rapidly',
        f'- **Degraded ({STABLE_MAX}-{DEGRADED_MAX})**: Moderate degradation - consider refactoring',
        f'- **Stable (0.0-{STABLE_MAX})**: Code quality stable - minimal degradation',
        '- **Improved (< 0.0)**: Code quality improving - good maintenance practices',
        '',
        '---',
        '*Generated by MaintSight using XGBoost*',
    ]
    return '\n'.join(lines) + '\n'


def format_results(predictions: list[RiskPrediction], fmt: str, repo_path: str | Path) -> str:
    if fmt == 'csv':
        return format_csv(predictions)
    if fmt == 'markdown':
        return format_markdown(predictions, repo_path)
    return format_json(predictions)


def print_summary(predictions: list[RiskPrediction]):
    """Print the risk distribution to stdout"""
    distribution = risk_distribution(predictions)
    print("\nSummary:")
    print(f"Total files: {len(predictions)}")
    print(f"Severely degraded: {distribution['severely_degraded']}")
    print(f"Degraded: {distribution['degraded']}")
    print(f"Stable: {distribution['stable']}")
    print(f"Improved: {distribution['improved']}")
