"""
Model training and export.

Fits an XGBoost regressor on labelled file histories and serializes it in the
JSON layout the scorer walks at inference time.
"""

import json
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split, cross_val_score
from sklearn.metrics import mean_absolute_error, r2_score
from xgboost import XGBRegressor

from .config import FEATURE_NAMES, TARGET_COL
from .exceptions import DatasetError
from .features import transform, extract_feature_vector
from .scorer import LEAF, parse_base_score


def build_feature_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Engineer the 26 model features from a frame of base counters"""
    # NaN cells count as missing so the derived features stay unset
    records = [
        {k: v for k, v in row.items() if pd.notna(v)}
        for row in df.to_dict('records')
    ]
    vectors = [extract_feature_vector(f) for f in transform(records)]
    return pd.DataFrame(vectors, columns=FEATURE_NAMES, index=df.index)


def load_dataset(path: str | Path) -> pd.DataFrame:
    """Read a labelled training CSV"""
    try:
        return pd.read_csv(path)
    except (OSError, pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise DatasetError(f'Failed to read dataset {path}: {e}') from e


def train_model(df: pd.DataFrame, target: str = TARGET_COL, n_estimators: int = 100,
                max_depth: int = 4, learning_rate: float = 0.1, cv_folds: int = 5) -> dict:
    """
    Train an XGBoost regressor on degradation labels and evaluate it.

    Args:
        df: DataFrame with the base counters and a target column
        target: Name of the label column (signed degradation score)
    """
    print("\n" + "="*60)
    print("MODEL TRAINING")
    print("="*60)

    if target not in df.columns:
        raise DatasetError(f"Target column '{target}' not found in dataset")

    X = build_feature_frame(df)
    y = df[target]
    print(f"  Using {len(FEATURE_NAMES)} features on {len(df)} samples")

    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=0.25, random_state=42
    )

    model = XGBRegressor(
        objective='reg:squarederror',
        n_estimators=n_estimators,
        max_depth=max_depth,
        learning_rate=learning_rate,
        random_state=42,
        verbosity=0
    )
    model.fit(X_train, y_train)

    y_pred = model.predict(X_test)
    results = {
        'mae': mean_absolute_error(y_test, y_pred),
        'r2': r2_score(y_test, y_pred),
    }

    print(f"\nResults:")
    print(f"  MAE: {results['mae']:.4f}")
    print(f"  R2:  {results['r2']:.3f}")

    importance = pd.DataFrame({
        'feature': FEATURE_NAMES,
        'importance': model.feature_importances_
    }).sort_values('importance', ascending=False)

    print(f"\nTop Predictive Features:")
    for _, row in importance.head(5).iterrows():
        bar = '#' * int(row['importance'] * 30)
        print(f"  {row['feature']:<22} {row['importance']:.3f} {bar}")

    if cv_folds > 1:
        cv_scores = cross_val_score(model, X, y, cv=cv_folds, scoring='r2')
        results['cv_r2'] = cv_scores.mean()
        print(f"\n{cv_folds}-Fold CV R2: {cv_scores.mean():.3f} (+/- {cv_scores.std()*2:.3f})")

    return {'model': model, 'results': results, 'importance': importance}


# =============================================================================
# EXPORT
# =============================================================================

def _feature_index(name: str) -> int:
    if name in FEATURE_NAMES:
        return FEATURE_NAMES.index(name)
    # Boosters trained without column names label features f0, f1, ...
    if name.startswith('f') and name[1:].isdigit():
        return int(name[1:])
    raise ValueError(f'Unknown feature in model: {name}')


def _child_id(node_ref: str) -> int:
    # trees_to_dataframe references children as "<tree>-<node>"
    return int(node_ref.rsplit('-', 1)[1])


def _tree_arrays(tree_id: int, nodes: pd.DataFrame) -> dict:
    size = int(nodes['Node'].max()) + 1
    left = [LEAF] * size
    right = [LEAF] * size
    split_indices = [0] * size
    split_conditions = [0.0] * size
    base_weights = [0.0] * size

    for node in nodes.itertuples(index=False):
        nid = int(node.Node)
        if node.Feature == 'Leaf':
            # For leaves the Gain column carries the leaf value
            base_weights[nid] = split_conditions[nid] = float(node.Gain)
        else:
            left[nid] = _child_id(node.Yes)
            right[nid] = _child_id(node.No)
            split_indices[nid] = _feature_index(node.Feature)
            # XGBoost stores thresholds as float32
            split_conditions[nid] = float(np.float32(node.Split))

    return {
        'id': int(tree_id),
        'left_children': left,
        'right_children': right,
        'split_indices': split_indices,
        'split_conditions': split_conditions,
        'base_weights': base_weights,
    }


def model_to_dict(model) -> dict:
    """Convert a fitted XGBoost model (or Booster) to the bundled artifact layout"""
    booster = model.get_booster() if hasattr(model, 'get_booster') else model

    trees_df = booster.trees_to_dataframe()
    trees = [_tree_arrays(tree_id, nodes) for tree_id, nodes in trees_df.groupby('Tree', sort=True)]

    config = json.loads(booster.save_config())
    base_score = parse_base_score(config['learner']['learner_model_param'].get('base_score'))

    return {
        'model_type': 'xgboost',
        'feature_count': len(FEATURE_NAMES),
        'feature_names': list(FEATURE_NAMES),
        'model_data': {
            'learner': {
                'feature_names': list(FEATURE_NAMES),
                'learner_model_param': {
                    'base_score': f'[{base_score:.8E}]',
                    'num_feature': str(len(FEATURE_NAMES)),
                },
                'gradient_booster': {
                    'name': 'gbtree',
                    'model': {'trees': trees},
                },
            },
        },
    }


def export_model(model, path: str | Path) -> dict:
    """Write a fitted model as a scorer-readable JSON artifact"""
    artifact = model_to_dict(model)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(artifact, f, indent=2)

    trees = artifact['model_data']['learner']['gradient_booster']['model']['trees']
    print(f"\nModel exported: {path} ({len(trees)} trees)")
    return artifact
