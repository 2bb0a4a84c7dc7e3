import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .config import METRIC, METRICS, MIXTURE, POSITIVE_CLASS
from .errors import ConfigurationError, FitError, SchemaMismatchError
from .evaluate import classification_metrics, get_metric, pr_curve_data, roc_curve_data
from .modeling import GRID_PARAMS, check_mixture, fit_transformed
from .recipe import apply_recipe, fit_recipe

logger = logging.getLogger(__name__)

# Sort keys after the metric: True means smaller values are simpler.
SIMPLICITY_ORDER = {
    "logreg": [("penalty", False)],
    "rf": [("min_n", False), ("mtry", True), ("trees", True)],
}


@dataclass(frozen=True)
class LastFitResult:
    model: object = field(repr=False)
    params: dict
    metrics: dict
    predictions: pd.DataFrame = field(repr=False)
    roc_curve: pd.DataFrame = field(repr=False)
    pr_curve: pd.DataFrame = field(repr=False)


def _check_grid(grid, model_name):
    if model_name not in GRID_PARAMS:
        raise ConfigurationError(f"Unknown model name: {model_name}")
    if grid is None or len(grid) == 0:
        raise ConfigurationError("Hyperparameter grid is empty.")
    missing = [col for col in GRID_PARAMS[model_name] if col not in grid.columns]
    if missing:
        raise ConfigurationError(f"Grid for {model_name} is missing columns {missing}")


def _grid_params(grid, i, param_cols):
    # Column-wise lookup keeps integer columns integer in mixed grids.
    params = {}
    for col in param_cols:
        value = grid.at[i, col]
        params[col] = value.item() if isinstance(value, np.generic) else value
    return params


def _prepare_resample(data, resample, predictors, outcome, supplementary):
    analysis = data.loc[resample.analysis]
    assessment = data.loc[resample.assessment]
    try:
        recipe = fit_recipe(analysis, predictors, outcome, supplementary)
    except FitError as exc:
        logger.warning("Recipe failed on resample %s: %s", resample.id, exc)
        return {"id": resample.id, "error": exc}
    return {
        "id": resample.id,
        "recipe": recipe,
        "analysis": apply_recipe(recipe, analysis),
        "assessment": apply_recipe(recipe, assessment),
    }


def _evaluate_entry(grid_index, params, prepared, model_name, metrics, fit_kwargs):
    scores = {name: [] for name in metrics}
    converged = True
    try:
        for resample in prepared:
            if "error" in resample:
                raise resample["error"]
            fitted = fit_transformed(
                resample["analysis"], resample["recipe"], model_name, params, **fit_kwargs
            )
            converged = converged and fitted.converged
            assessment = resample["assessment"]
            y_score = fitted.predict_proba_transformed(assessment)
            y_true = assessment[resample["recipe"].outcome]
            for name in metrics:
                scores[name].append(get_metric(name)(y_true, y_score, fitted.positive_class))
    except (ConfigurationError, SchemaMismatchError):
        raise
    except (FitError, ValueError, ArithmeticError, np.linalg.LinAlgError) as exc:
        logger.warning("Grid entry %d %s failed: %s", grid_index, params, exc)
        return {"grid_index": grid_index, "status": "failed", "error": str(exc), "scores": None}

    return {
        "grid_index": grid_index,
        "status": "ok" if converged else "not_converged",
        "error": "",
        "scores": scores,
    }


def tune_grid(
    data,
    resamples,
    predictors,
    outcome,
    model_name,
    grid,
    supplementary=(),
    metrics=METRICS,
    mixture=MIXTURE,
    positive_class=POSITIVE_CLASS,
    random_state=None,
    class_weight=None,
    strict_convergence=False,
    n_jobs=1,
    model_n_jobs=None,
):
    """Score every grid entry on every resample and return one report row per entry.

    The recipe is fit once per resample on its analysis rows and shared by all
    entries. A failing entry is kept in the report with ``status="failed"`` and
    NaN metrics; the remaining entries still run.
    """
    _check_grid(grid, model_name)
    for name in metrics:
        get_metric(name)
    if model_name == "logreg":
        check_mixture(mixture)
    if not resamples:
        raise ConfigurationError("At least one resample is required.")

    param_cols = GRID_PARAMS[model_name]
    grid = grid.reset_index(drop=True)
    prepared = [
        _prepare_resample(data, resample, predictors, outcome, supplementary) for resample in resamples
    ]
    fit_kwargs = {
        "mixture": mixture,
        "positive_class": positive_class,
        "random_state": random_state,
        "class_weight": class_weight,
        "strict_convergence": strict_convergence,
        "n_jobs": model_n_jobs,
    }

    logger.info(
        "Tuning %s over %d grid entries x %d resamples", model_name, len(grid), len(resamples)
    )
    results = Parallel(n_jobs=n_jobs)(
        delayed(_evaluate_entry)(i, _grid_params(grid, i, param_cols), prepared, model_name, metrics, fit_kwargs)
        for i in range(len(grid))
    )
    results = sorted(results, key=lambda r: r["grid_index"])

    rows = []
    for result in results:
        i = result["grid_index"]
        row = _grid_params(grid, i, param_cols)
        row["config"] = f"Preprocessor1_Model{i + 1:02d}"
        for name in metrics:
            values = np.asarray(result["scores"][name] if result["scores"] else [], dtype=float)
            n = len(values)
            var = float(np.var(values, ddof=1)) if n > 1 else float("nan")
            row[f"{name}_mean"] = float(np.mean(values)) if n else float("nan")
            row[f"{name}_var"] = var
            row[f"{name}_std_err"] = float(np.sqrt(var / n)) if n > 1 else float("nan")
        row["n"] = len(resamples) if result["scores"] else 0
        row["status"] = result["status"]
        row["error"] = result["error"]
        rows.append(row)
    return pd.DataFrame(rows)


def _ranked(report, metric, model_name):
    mean_col = f"{metric}_mean"
    if mean_col not in report.columns:
        raise ConfigurationError(f"Report has no {metric!r} column; tuned metrics: {list(report.columns)}")
    usable = report[(report["status"] != "failed") & report[mean_col].notna()].copy()
    keys = [key for key in SIMPLICITY_ORDER.get(model_name, []) if key[0] in usable.columns]
    usable["_rank_metric"] = usable[mean_col].round(10)
    return usable.sort_values(
        ["_rank_metric"] + [key for key, _ in keys],
        ascending=[False] + [asc for _, asc in keys],
        kind="mergesort",
    ).drop(columns="_rank_metric")


def show_best(report, metric=METRIC, model_name=None, n=5):
    return _ranked(report, metric, model_name).head(n)


def select_best(report, metric=METRIC, model_name="logreg"):
    ranked = _ranked(report, metric, model_name)
    if ranked.empty:
        raise FitError(f"No grid entry produced a usable {metric}", step="select_best")
    best = ranked.iloc[0]
    params = _grid_params(ranked, ranked.index[0], GRID_PARAMS[model_name])
    logger.info("Selected %s %s with validation %s=%.4f", model_name, params, metric, best[f"{metric}_mean"])
    return {
        "params": params,
        "config": best["config"],
        "metric": metric,
        "value": float(best[f"{metric}_mean"]),
    }


def last_fit(
    split,
    params,
    predictors,
    outcome,
    model_name,
    supplementary=(),
    mixture=MIXTURE,
    positive_class=POSITIVE_CLASS,
    random_state=None,
    class_weight=None,
    strict_convergence=False,
    model_n_jobs=None,
):
    """Refit on train + validation with the chosen entry and score the test set once."""
    train = split.other
    recipe = fit_recipe(train, predictors, outcome, supplementary)
    model = fit_transformed(
        apply_recipe(recipe, train),
        recipe,
        model_name,
        params,
        mixture=mixture,
        positive_class=positive_class,
        random_state=random_state,
        class_weight=class_weight,
        strict_convergence=strict_convergence,
        n_jobs=model_n_jobs,
    )

    test = split.test
    y_true = test[outcome]
    y_score = model.predict_proba(test)
    y_pred = model.predict(test)
    metrics = classification_metrics(y_true, y_pred, y_score, positive_class)
    logger.info(
        "%s test roc_auc=%.4f pr_auc=%.4f", model_name, metrics["roc_auc"], metrics["pr_auc"]
    )

    predictions = pd.DataFrame({"truth": y_true.astype(str), y_score.name: y_score, y_pred.name: y_pred})
    return LastFitResult(
        model=model,
        params=dict(params),
        metrics=metrics,
        predictions=predictions,
        roc_curve=roc_curve_data(y_true, y_score, positive_class),
        pr_curve=pr_curve_data(y_true, y_score, positive_class),
    )
