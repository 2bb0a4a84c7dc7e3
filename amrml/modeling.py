import itertools
import logging
import warnings
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression

from .config import (
    LOGREG_MAX_ITER,
    MIXTURE,
    PENALTY_GRID_HIGH,
    PENALTY_GRID_LEVELS,
    PENALTY_GRID_LOW,
    POSITIVE_CLASS,
    RF_MIN_LEAF,
    RF_MTRY_FRACTIONS,
    RF_TREES,
)
from .errors import ConfigurationError, FitError
from .recipe import apply_recipe

logger = logging.getLogger(__name__)

GRID_PARAMS = {
    "logreg": ["penalty"],
    "rf": ["trees", "mtry", "min_n"],
}


def penalty_grid(low=PENALTY_GRID_LOW, high=PENALTY_GRID_HIGH, levels=PENALTY_GRID_LEVELS, values=None):
    if values is None:
        if levels < 1:
            raise ConfigurationError(f"Penalty grid needs at least one level; got {levels}")
        values = 10.0 ** np.linspace(low, high, levels)
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        raise ConfigurationError("Penalty grid is empty.")
    if (values <= 0).any():
        raise ConfigurationError(f"Penalties must be positive; got {values[values <= 0].tolist()}")
    return pd.DataFrame({"penalty": values})


def forest_grid(trees=RF_TREES, mtry=RF_MTRY_FRACTIONS, min_n=RF_MIN_LEAF):
    trees, mtry, min_n = list(trees), list(mtry), list(min_n)
    if not trees or not mtry or not min_n:
        raise ConfigurationError("Random forest grid needs at least one value for trees, mtry and min_n.")
    if any(int(t) < 1 for t in trees):
        raise ConfigurationError(f"Tree counts must be >= 1; got {trees}")
    if any(not 0 < float(m) <= 1 for m in mtry):
        raise ConfigurationError(f"mtry is a feature fraction in (0, 1]; got {mtry}")
    if any(int(n) < 1 for n in min_n):
        raise ConfigurationError(f"Minimum leaf sizes must be >= 1; got {min_n}")
    rows = itertools.product(trees, mtry, min_n)
    grid = pd.DataFrame(rows, columns=GRID_PARAMS["rf"])
    return grid.astype({"trees": int, "mtry": float, "min_n": int})


def check_mixture(mixture):
    if not 0.0 <= mixture <= 1.0:
        raise ConfigurationError(f"mixture must be within [0, 1]; got {mixture}")


def build_estimator(
    model_name,
    params,
    n_train,
    mixture=MIXTURE,
    random_state=None,
    class_weight=None,
    max_iter=LOGREG_MAX_ITER,
    n_jobs=None,
):
    if model_name == "logreg":
        check_mixture(mixture)
        # glmnet scales the penalty per observation; sklearn scales the loss by C.
        C = 1.0 / (n_train * float(params["penalty"]))
        return LogisticRegression(
            penalty="elasticnet",
            l1_ratio=mixture,
            C=C,
            solver="saga",
            max_iter=max_iter,
            class_weight=class_weight,
            random_state=random_state,
        )
    if model_name == "rf":
        return RandomForestClassifier(
            n_estimators=int(params["trees"]),
            max_features=float(params["mtry"]),
            min_samples_leaf=int(params["min_n"]),
            bootstrap=True,
            class_weight=class_weight,
            random_state=random_state,
            n_jobs=n_jobs,
        )
    raise ConfigurationError(f"Unknown model name: {model_name}")


@dataclass(frozen=True)
class FittedModel:
    """A trained estimator bound to one grid entry and the recipe it was trained behind."""

    model_name: str
    params: dict
    recipe: object = field(repr=False)
    estimator: object = field(repr=False)
    positive_class: str = POSITIVE_CLASS
    converged: bool = True

    @property
    def feature_names(self):
        return list(self.recipe.predictors)

    def predict_proba_transformed(self, transformed):
        classes = list(self.estimator.classes_)
        if self.positive_class not in classes:
            raise FitError(
                f"Positive class {self.positive_class!r} was not seen in training (classes: {classes})",
                step="predict",
                params=self.params,
            )
        proba = self.estimator.predict_proba(transformed[self.feature_names])
        return pd.Series(
            proba[:, classes.index(self.positive_class)],
            index=transformed.index,
            name=f".pred_{self.positive_class}",
        )

    def predict_proba(self, data):
        """Resistance probability for raw records laid out like the training data."""
        return self.predict_proba_transformed(apply_recipe(self.recipe, data))

    def predict(self, data, threshold=0.5):
        proba = self.predict_proba(data)
        negatives = [c for c in self.estimator.classes_ if c != self.positive_class]
        negative = negatives[0] if negatives else "other"
        labels = np.where(proba >= threshold, self.positive_class, negative)
        return pd.Series(labels, index=proba.index, name=".pred_class")


def fit_transformed(
    transformed,
    recipe,
    model_name,
    params,
    mixture=MIXTURE,
    positive_class=POSITIVE_CLASS,
    random_state=None,
    class_weight=None,
    max_iter=LOGREG_MAX_ITER,
    n_jobs=None,
    strict_convergence=False,
):
    """Fit one grid entry on data the recipe has already transformed."""
    X = transformed[list(recipe.predictors)]
    y = transformed[recipe.outcome].astype(str)
    estimator = build_estimator(
        model_name,
        params,
        n_train=len(X),
        mixture=mixture,
        random_state=random_state,
        class_weight=class_weight,
        max_iter=max_iter,
        n_jobs=n_jobs,
    )

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        try:
            estimator.fit(X, y)
        except (ValueError, FloatingPointError, np.linalg.LinAlgError) as exc:
            raise FitError(f"{model_name} fit failed: {exc}", step="fit", params=params) from exc
    converged = True
    for w in caught:
        if issubclass(w.category, ConvergenceWarning):
            converged = False
        else:
            warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)
    if not converged:
        if strict_convergence:
            raise FitError(f"{model_name} solver did not converge", step="fit", params=params)
        logger.warning("%s solver did not converge for %s", model_name, params)

    return FittedModel(
        model_name=model_name,
        params=dict(params),
        recipe=recipe,
        estimator=estimator,
        positive_class=positive_class,
        converged=converged,
    )


def fit_model(train, recipe, model_name, params, **kwargs):
    return fit_transformed(apply_recipe(recipe, train), recipe, model_name, params, **kwargs)
