"""Preprocessing recipe: role assignment, zero-variance filter, normalization.

Parameters are estimated once on a training subset and replayed, never
re-estimated, on every other subset (validation, test, new genomes).
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype
from sklearn.preprocessing import StandardScaler

from .errors import ConfigurationError, FitError, SchemaMismatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FittedRecipe:
    outcome: str
    predictors: tuple
    supplementary: tuple
    dropped: tuple
    normalized: tuple
    input_columns: tuple
    scaler: StandardScaler = field(default=None, repr=False)

    @property
    def means(self):
        if self.scaler is None:
            return pd.Series(dtype=float)
        return pd.Series(self.scaler.mean_, index=list(self.normalized))

    @property
    def scales(self):
        if self.scaler is None:
            return pd.Series(dtype=float)
        return pd.Series(self.scaler.scale_, index=list(self.normalized))

    def transform(self, data):
        return apply_recipe(self, data)


def _zero_variance_columns(df, columns):
    return [col for col in columns if df[col].nunique(dropna=True) < 2]


def fit_recipe(train, predictors, outcome, supplementary=()):
    predictors = list(predictors)
    supplementary = list(supplementary)
    if not predictors:
        raise ConfigurationError("Recipe needs at least one predictor column.")

    roles = predictors + [outcome] + supplementary
    duplicated = sorted({col for col in roles if roles.count(col) > 1})
    if duplicated:
        raise ConfigurationError(f"Columns assigned more than one role: {duplicated}")

    missing = [col for col in roles if col not in train.columns]
    if missing:
        raise ConfigurationError(f"Recipe columns missing from training data: {missing}")
    unassigned = [col for col in train.columns if col not in set(roles)]
    if unassigned:
        raise ConfigurationError(
            f"Training columns without a role: {unassigned[:10]}; mark them as predictors or supplementary."
        )

    # step_zv
    dropped = _zero_variance_columns(train, predictors)
    kept = [col for col in predictors if col not in set(dropped)]
    if dropped:
        logger.info("Dropping %d zero-variance predictors: %s", len(dropped), ", ".join(dropped))
    if not kept:
        raise FitError("Every predictor has zero variance in the training data", step="step_zv")

    # step_normalize
    normalized = [col for col in kept if is_numeric_dtype(train[col])]
    scaler = None
    if normalized:
        scaler = StandardScaler().fit(train[normalized].astype(float))
        flat = [col for col, var in zip(normalized, scaler.var_) if not var > 0]
        if flat:
            raise FitError(f"Zero training standard deviation for {flat}; cannot normalize", step="step_normalize")
        # sample standard deviation (n - 1), as R sd()
        n = train[normalized].notna().sum().to_numpy(dtype=float)
        scaler.scale_ = np.sqrt(scaler.var_ * n / (n - 1))

    return FittedRecipe(
        outcome=outcome,
        predictors=tuple(kept),
        supplementary=tuple(supplementary),
        dropped=tuple(dropped),
        normalized=tuple(normalized),
        input_columns=tuple(train.columns),
        scaler=scaler,
    )


def check_schema(fitted, data):
    expected = set(fitted.input_columns)
    missing = [col for col in fitted.input_columns if col not in data.columns and col != fitted.outcome]
    unknown = [col for col in data.columns if col not in expected]
    if missing or unknown:
        raise SchemaMismatchError(
            f"Data does not match the training schema: missing={missing[:10]}, unknown={unknown[:10]}"
        )


def apply_recipe(fitted, data):
    check_schema(fitted, data)

    dropped = set(fitted.dropped)
    columns = [col for col in fitted.input_columns if col in data.columns and col not in dropped]
    out = data[columns].copy()
    if fitted.normalized:
        scaled = fitted.scaler.transform(data[list(fitted.normalized)].astype(float))
        out[list(fitted.normalized)] = np.asarray(scaled)
    return out
