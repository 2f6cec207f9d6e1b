"""
Tree ensemble inference and score calibration.

The bundled model is an XGBoost ensemble serialized to JSON. Scoring walks the
trees directly so inference needs no native XGBoost runtime.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import numpy as np

from .config import (
    MODEL_PATH,
    DEFAULT_BASE_SCORE,
    TRAIN_MEAN,
    TRAIN_STD,
    TRAIN_MIN,
    TRAIN_MAX,
    CALIBRATION_MARGIN,
    STABLE_MAX,
    DEGRADED_MAX,
)
from .exceptions import ModelLoadError, ModelNotLoadedError
from .features import FileFeatures, transform, extract_feature_vector

log = logging.getLogger(__name__)

LEAF = -1

BASE_SCORE_LITERAL = re.compile(r'^\s*\[?\s*([-+]?[\d.]+(?:[eE][-+]?\d+)?)\s*\]?\s*$')


class RiskCategory(str, Enum):
    IMPROVED = 'improved'
    STABLE = 'stable'
    DEGRADED = 'degraded'
    SEVERELY_DEGRADED = 'severely_degraded'


# =============================================================================
# MODEL
# =============================================================================

@dataclass(frozen=True)
class DecisionTree:
    left_children: tuple[int, ...]
    right_children: tuple[int, ...]
    split_indices: tuple[int, ...]
    split_conditions: tuple[float, ...]
    base_weights: tuple[float, ...]

    @classmethod
    def from_dict(cls, data: dict) -> 'DecisionTree':
        return cls(
            left_children=tuple(int(i) for i in data['left_children']),
            right_children=tuple(int(i) for i in data['right_children']),
            split_indices=tuple(int(i) for i in data['split_indices']),
            # XGBoost keeps thresholds as float32
            split_conditions=tuple(float(np.float32(x)) for x in data['split_conditions']),
            base_weights=tuple(float(x) for x in data['base_weights']),
        )

    def predict(self, features: list[float]) -> float:
        """Descend from the root to a leaf and return its weight"""
        # Assumes a well-formed tree: a cycle in the child arrays never terminates
        node = 0
        while True:
            left = self.left_children[node]
            if left == LEAF:
                return self.base_weights[node]

            index = self.split_indices[node]
            value = features[index] if index < len(features) else 0.0
            if value < self.split_conditions[node]:
                node = left
            else:
                node = self.right_children[node]


@dataclass(frozen=True)
class TreeModel:
    trees: tuple[DecisionTree, ...]
    base_score: float = DEFAULT_BASE_SCORE
    feature_names: tuple[str, ...] = ()
    feature_count: int = 0
    model_type: str = 'xgboost'

    @classmethod
    def from_dict(cls, data: dict) -> 'TreeModel':
        learner = _learner(data)
        try:
            raw_trees = learner.get('gradient_booster', {}).get('model', {}).get('trees', [])
            trees = tuple(DecisionTree.from_dict(t) for t in raw_trees)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ModelLoadError(f'Malformed tree in model: {e}') from e

        feature_names = tuple(resolve_feature_names(data))
        base_score = parse_base_score(learner.get('learner_model_param', {}).get('base_score'))

        return cls(
            trees=trees,
            base_score=base_score,
            feature_names=feature_names,
            feature_count=int(data.get('feature_count') or len(feature_names)),
            model_type=data.get('model_type', 'xgboost'),
        )

    def margin(self, features: list[float]) -> float:
        """Base score plus every tree's leaf, splitting on float32 values like XGBoost"""
        values = np.asarray(features, dtype=np.float32).astype(float).tolist()
        return self.base_score + sum(tree.predict(values) for tree in self.trees)


def _learner(data: dict) -> dict:
    # Bundled artifacts wrap the XGBoost dump in "model_data"; a plain
    # Booster.save_model() JSON has "learner" at the top level
    model_data = data.get('model_data', data)
    return model_data.get('learner') or {}


def resolve_feature_names(data: dict) -> list[str]:
    """
    Feature names of a serialized model.

    Looks at the artifact's top-level "feature_names" first, then the copy
    XGBoost keeps under the learner. Returns [] if neither is present.
    """
    names = data.get('feature_names')
    if names:
        return list(names)
    return list(_learner(data).get('feature_names') or [])


def parse_base_score(value) -> float:
    """Parse XGBoost's base_score string, e.g. "[-1.201454E-2]"; 0.5 if unparseable"""
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = BASE_SCORE_LITERAL.match(value)
        if match:
            try:
                return float(match.group(1))
            except ValueError:
                pass
    return DEFAULT_BASE_SCORE


def load_model(path: str | Path | None = None) -> TreeModel:
    """Read a tree ensemble from JSON; defaults to the bundled model"""
    path = Path(path) if path is not None else MODEL_PATH
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ModelLoadError(f'Failed to load model from {path}: {e}') from e

    if not isinstance(data, dict):
        raise ModelLoadError(f'Failed to load model from {path}: expected a JSON object')
    return TreeModel.from_dict(data)


# =============================================================================
# SCORING
# =============================================================================

def sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def calibrate_predictions(raw_predictions) -> np.ndarray:
    """
    Rescale a batch of raw scores onto the training label distribution.

    Z-scores against the batch's own mean and population std, then maps onto
    the training mean/std and clips to the training range plus a margin.
    """
    raw = np.asarray(raw_predictions, dtype=float)
    if raw.size == 0:
        return raw

    # Identical scores can still give a rounding-sized std, so test the spread directly
    raw_std = raw.std()
    if raw.max() == raw.min() or raw_std == 0:
        return np.full_like(raw, TRAIN_MEAN)

    calibrated = (raw - raw.mean()) / raw_std * TRAIN_STD + TRAIN_MEAN
    return np.clip(calibrated, TRAIN_MIN - CALIBRATION_MARGIN, TRAIN_MAX + CALIBRATION_MARGIN)


def get_risk_category(score: float) -> RiskCategory:
    if score < 0:
        return RiskCategory.IMPROVED
    elif score <= STABLE_MAX:
        return RiskCategory.STABLE
    elif score <= DEGRADED_MAX:
        return RiskCategory.DEGRADED
    return RiskCategory.SEVERELY_DEGRADED


@dataclass
class RiskPrediction:
    module: str
    degradation_score: float
    raw_prediction: float
    risk_category: RiskCategory
    features: FileFeatures | None = field(default=None, repr=False, compare=False)

    def to_dict(self, include_features: bool = False) -> dict:
        result = {
            'module': self.module,
            'degradation_score': self.degradation_score,
            'raw_prediction': self.raw_prediction,
            'risk_category': self.risk_category.value,
        }
        if include_features and self.features is not None:
            for key, value in self.features.to_dict().items():
                result.setdefault(key, value)
        return result


class RiskScorer:
    """Scores files with the tree ensemble. Call load_model() before predict()."""

    def __init__(self, model_path: str | Path | None = None):
        self.model_path = model_path
        self.model: TreeModel | None = None

    @property
    def is_loaded(self) -> bool:
        return self.model is not None

    def load_model(self) -> TreeModel:
        log.info('Loading XGBoost model...')
        self.model = load_model(self.model_path)
        log.info('Model loaded: %d trees, base score %.6f', len(self.model.trees), self.model.base_score)
        log.info('Feature count: %d', self.model.feature_count)
        return self.model

    def _require_model(self) -> TreeModel:
        if self.model is None:
            raise ModelNotLoadedError()
        return self.model

    def predict_raw(self, feature_vector: list[float]) -> float:
        """Sigmoid of the ensemble margin for one feature vector"""
        model = self._require_model()
        return sigmoid(model.margin(feature_vector))

    def predict(self, records) -> list[RiskPrediction]:
        """Engineer features, score and calibrate a batch of file records"""
        model = self._require_model()

        features = transform(records)
        log.info('Running inference on %d files...', len(features))
        if not model.trees:
            log.warning('No trees found in model - using base score only')

        raw_predictions = [self.predict_raw(extract_feature_vector(f)) for f in features]
        calibrated = calibrate_predictions(raw_predictions)

        predictions = [
            RiskPrediction(
                module=feature.module,
                degradation_score=float(score),
                raw_prediction=raw,
                risk_category=get_risk_category(float(score)),
                features=feature,
            )
            for feature, raw, score in zip(features, raw_predictions, calibrated)
        ]

        if predictions:
            raw = np.asarray(raw_predictions)
            log.info('Predictions complete')
            log.info('   Raw predictions - Mean: %.3f, Range: [%.3f, %.3f]',
                     raw.mean(), raw.min(), raw.max())
            log.info('   Calibrated predictions - Mean: %.3f, Range: [%.3f, %.3f]',
                     calibrated.mean(), calibrated.min(), calibrated.max())
            log.info('   Std dev: %.3f', calibrated.std())

        return predictions
