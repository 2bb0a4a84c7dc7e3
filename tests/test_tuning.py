"""Tests for amrml/tuning.py - grid search, selection and the final refit."""

import numpy as np
import pandas as pd
import pytest

from amrml.errors import ConfigurationError, FitError
from amrml.modeling import forest_grid, penalty_grid
from amrml.splitting import validation_resamples, vfold_resamples
from amrml.tuning import last_fit, select_best, show_best, tune_grid


@pytest.fixture
def tune(three_way, roles):
    predictors, outcome, supplementary = roles

    def _tune(model_name, grid, resamples=None, **kwargs):
        resamples = resamples if resamples is not None else validation_resamples(three_way)
        return tune_grid(
            three_way.other,
            resamples,
            predictors,
            outcome,
            model_name,
            grid,
            supplementary=supplementary,
            random_state=0,
            **kwargs,
        )

    return _tune


class TestTuneGrid:

    def test_one_row_per_grid_entry(self, tune):
        grid = penalty_grid(-4, -1, 6)

        report = tune("logreg", grid)

        assert len(report) == 6
        assert report["penalty"].tolist() == pytest.approx(grid["penalty"].tolist())
        for col in ("config", "n", "roc_auc_mean", "roc_auc_var", "pr_auc_mean", "status", "error"):
            assert col in report.columns
        assert (report["n"] == 1).all()
        assert report["roc_auc_var"].isna().all()
        assert report["status"].isin(["ok", "not_converged"]).all()

    def test_informative_genes_beat_chance(self, tune):
        report = tune("logreg", penalty_grid(-4, -1, 10))

        assert report["roc_auc_mean"].max() > 0.5

    def test_failed_entry_is_reported_not_dropped(self, tune):
        grid = pd.DataFrame({"penalty": [0.0, 0.01]})

        report = tune("logreg", grid)

        assert len(report) == 2
        assert report.loc[0, "status"] == "failed"
        assert report.loc[0, "error"]
        assert np.isnan(report.loc[0, "roc_auc_mean"])
        assert report.loc[0, "n"] == 0
        assert report.loc[1, "status"] != "failed"
        assert not np.isnan(report.loc[1, "roc_auc_mean"])

    def test_cross_validation_reports_variance(self, tune, three_way):
        resamples = vfold_resamples(three_way.other, v=3, seed=5)

        report = tune("logreg", penalty_grid(values=[0.01, 0.05]), resamples=resamples)

        assert (report["n"] == 3).all()
        assert report["roc_auc_var"].notna().all()
        assert (report["roc_auc_std_err"] >= 0).all()

    def test_random_forest_grid(self, tune):
        grid = forest_grid(trees=[25], mtry=[0.25, 0.5], min_n=[1, 5])

        report = tune("rf", grid)

        assert len(report) == 4
        assert report["trees"].tolist() == [25, 25, 25, 25]
        assert report["status"].eq("ok").all()

    def test_parallel_matches_serial(self, tune):
        grid = penalty_grid(values=[0.001, 0.01, 0.05])

        serial = tune("logreg", grid, n_jobs=1)
        parallel = tune("logreg", grid, n_jobs=2)

        pd.testing.assert_frame_equal(serial, parallel)

    def test_grid_missing_columns(self, tune):
        with pytest.raises(ConfigurationError, match="trees"):
            tune("rf", pd.DataFrame({"mtry": [0.5], "min_n": [1]}))

    def test_empty_grid(self, tune):
        with pytest.raises(ConfigurationError):
            tune("logreg", pd.DataFrame({"penalty": []}))

    def test_unknown_metric(self, tune):
        with pytest.raises(ConfigurationError):
            tune("logreg", penalty_grid(values=[0.01]), metrics=["log_loss"])


class TestSelectBest:

    def test_highest_metric_wins(self):
        report = pd.DataFrame(
            {
                "penalty": [0.001, 0.01, 0.1],
                "config": ["m1", "m2", "m3"],
                "roc_auc_mean": [0.7, 0.9, 0.8],
                "status": "ok",
            }
        )

        best = select_best(report, "roc_auc", "logreg")

        assert best["params"] == {"penalty": 0.01}
        assert best["value"] == 0.9
        assert best["config"] == "m2"

    def test_ties_prefer_larger_penalty(self):
        report = pd.DataFrame(
            {
                "penalty": [0.001, 0.01, 0.1],
                "config": ["m1", "m2", "m3"],
                "roc_auc_mean": [0.9, 0.9, 0.8],
                "status": "ok",
            }
        )

        assert select_best(report, "roc_auc", "logreg")["params"] == {"penalty": 0.01}

    def test_ties_prefer_simpler_forest(self):
        report = pd.DataFrame(
            {
                "trees": [500, 100, 100, 100],
                "mtry": [0.1, 0.5, 0.1, 0.1],
                "min_n": [5, 5, 5, 1],
                "config": ["m1", "m2", "m3", "m4"],
                "pr_auc_mean": [0.8, 0.8, 0.8, 0.8],
                "status": "ok",
            }
        )

        best = select_best(report, "pr_auc", "rf")

        assert best["config"] == "m3"

    def test_failed_entries_ignored(self):
        report = pd.DataFrame(
            {
                "penalty": [0.001, 0.01],
                "config": ["m1", "m2"],
                "roc_auc_mean": [np.nan, 0.6],
                "status": ["failed", "not_converged"],
            }
        )

        assert select_best(report, "roc_auc", "logreg")["config"] == "m2"

    def test_all_failed_is_a_fit_error(self):
        report = pd.DataFrame(
            {"penalty": [0.01], "config": ["m1"], "roc_auc_mean": [np.nan], "status": ["failed"]}
        )

        with pytest.raises(FitError):
            select_best(report, "roc_auc", "logreg")

    def test_untuned_metric(self):
        report = pd.DataFrame({"penalty": [0.01], "config": ["m1"], "roc_auc_mean": [0.7], "status": ["ok"]})

        with pytest.raises(ConfigurationError):
            select_best(report, "pr_auc", "logreg")

    def test_show_best_order(self):
        report = pd.DataFrame(
            {
                "penalty": [0.001, 0.01, 0.1, 1.0],
                "config": ["m1", "m2", "m3", "m4"],
                "roc_auc_mean": [0.6, 0.9, 0.8, 0.5],
                "status": "ok",
            }
        )

        top = show_best(report, "roc_auc", "logreg", n=2)

        assert top["config"].tolist() == ["m2", "m3"]


class TestLastFit:

    def test_scores_held_out_test_set(self, three_way, roles):
        predictors, outcome, supplementary = roles

        result = last_fit(
            three_way, {"penalty": 0.01}, predictors, outcome, "logreg", supplementary=supplementary, random_state=0
        )

        assert set(result.metrics) == {"accuracy", "f1", "roc_auc", "pr_auc"}
        assert len(result.predictions) == len(three_way.test)
        assert result.predictions.index.equals(three_way.test.index)
        assert list(result.predictions.columns) == ["truth", ".pred_Resistant", ".pred_class"]
        assert not result.roc_curve.empty
        assert not result.pr_curve.empty

    def test_refits_on_train_and_validation(self, three_way, roles):
        predictors, outcome, supplementary = roles

        result = last_fit(
            three_way, {"penalty": 0.01}, predictors, outcome, "logreg", supplementary=supplementary, random_state=0
        )

        recipe = result.model.recipe
        assert recipe.means["noise_01"] == pytest.approx(three_way.other["noise_01"].mean())
