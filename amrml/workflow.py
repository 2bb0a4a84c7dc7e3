import logging
from dataclasses import dataclass, field

import pandas as pd

from .config import (
    CV_FOLDS,
    LABEL_COL,
    METADATA_COLUMNS,
    METRIC,
    METRICS,
    MIXTURE,
    MODEL_SEED,
    NEGATIVE_CLASS,
    OUTCOME_COL,
    POSITIVE_CLASS,
    TEST_SEED,
    TEST_SIZE,
    TOP_K,
    VALIDATION_SEED,
    VALIDATION_SIZE,
)
from .data_prep import binarize_phenotype, gene_columns, select_antibiotic
from .errors import ConfigurationError
from .importance import feature_importance
from .modeling import forest_grid, penalty_grid
from .splitting import class_balance, initial_validation_split, validation_resamples, vfold_resamples
from .tuning import last_fit, select_best, tune_grid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowResult:
    model_name: str
    split: object = field(repr=False)
    balance: pd.DataFrame = field(repr=False)
    tuning: pd.DataFrame = field(repr=False)
    best: dict = field(default_factory=dict)
    final: object = field(default=None, repr=False)
    importance: pd.DataFrame = field(default=None, repr=False)

    @property
    def recipe(self):
        return self.final.model.recipe

    def summary(self):
        row = {
            "model": self.model_name,
            "config": self.best["config"],
            "selection_metric": self.best["metric"],
            "validation_value": self.best["value"],
            **self.best["params"],
        }
        row.update({f"test_{name}": value for name, value in self.final.metrics.items()})
        return row


def default_grid(model_name):
    if model_name == "logreg":
        return penalty_grid()
    if model_name == "rf":
        return forest_grid()
    raise ConfigurationError(f"Unknown model name: {model_name}")


def prepare_matrix(
    matrix,
    positive_class=POSITIVE_CLASS,
    negative_class=NEGATIVE_CLASS,
    label_col=LABEL_COL,
    metadata_cols=METADATA_COLUMNS,
    antibiotic=None,
    outcome_col=OUTCOME_COL,
):
    """Binarize the phenotype and assign column roles; returns (data, predictors, supplementary)."""
    if antibiotic:
        matrix = select_antibiotic(matrix, antibiotic)
    data = binarize_phenotype(
        matrix,
        positive_class=positive_class,
        negative_class=negative_class,
        label_col=label_col,
        outcome_col=outcome_col,
    )
    predictors = gene_columns(data, metadata_cols, outcome_col=outcome_col)
    supplementary = [col for col in data.columns if col in set(metadata_cols)]
    return data, predictors, supplementary


def run_workflow(
    matrix,
    model_name="logreg",
    grid=None,
    positive_class=POSITIVE_CLASS,
    negative_class=NEGATIVE_CLASS,
    label_col=LABEL_COL,
    metadata_cols=METADATA_COLUMNS,
    antibiotic=None,
    test_size=TEST_SIZE,
    validation_size=VALIDATION_SIZE,
    test_seed=TEST_SEED,
    validation_seed=VALIDATION_SEED,
    cv_folds=CV_FOLDS,
    metric=METRIC,
    metrics=METRICS,
    mixture=MIXTURE,
    top_k=TOP_K,
    random_state=MODEL_SEED,
    class_weight=None,
    strict_convergence=False,
    n_jobs=1,
):
    if metric not in metrics:
        metrics = list(metrics) + [metric]

    data, predictors, supplementary = prepare_matrix(
        matrix,
        positive_class=positive_class,
        negative_class=negative_class,
        label_col=label_col,
        metadata_cols=metadata_cols,
        antibiotic=antibiotic,
    )
    split = initial_validation_split(
        data,
        strata=OUTCOME_COL,
        test_size=test_size,
        validation_size=validation_size,
        test_seed=test_seed,
        validation_seed=validation_seed,
    )
    if cv_folds:
        resamples = vfold_resamples(split.other, strata=OUTCOME_COL, v=cv_folds, seed=validation_seed)
    else:
        resamples = validation_resamples(split)

    grid = default_grid(model_name) if grid is None else grid
    shared = {
        "mixture": mixture,
        "positive_class": positive_class,
        "random_state": random_state,
        "class_weight": class_weight,
        "strict_convergence": strict_convergence,
    }
    tuning = tune_grid(
        split.other,
        resamples,
        predictors,
        OUTCOME_COL,
        model_name,
        grid,
        supplementary=supplementary,
        metrics=metrics,
        n_jobs=n_jobs,
        **shared,
    )
    best = select_best(tuning, metric=metric, model_name=model_name)
    final = last_fit(
        split,
        best["params"],
        predictors,
        OUTCOME_COL,
        model_name,
        supplementary=supplementary,
        model_n_jobs=n_jobs,
        **shared,
    )
    importance = feature_importance(final.model, top_k=top_k)

    return WorkflowResult(
        model_name=model_name,
        split=split,
        balance=class_balance(split),
        tuning=tuning,
        best=best,
        final=final,
        importance=importance,
    )
