"""Tests for amrml/modeling.py - grids, estimators and fitted models."""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from amrml.config import OUTCOME_COL
from amrml.errors import ConfigurationError, FitError, SchemaMismatchError
from amrml.modeling import build_estimator, fit_model, forest_grid, penalty_grid
from amrml.recipe import fit_recipe


@pytest.fixture
def recipe(three_way, roles):
    predictors, outcome, supplementary = roles
    return fit_recipe(three_way.train, predictors, outcome, supplementary)


class TestGrids:

    def test_default_penalty_grid(self):
        grid = penalty_grid()

        assert list(grid.columns) == ["penalty"]
        assert len(grid) == 30
        assert grid["penalty"].iloc[0] == pytest.approx(1e-4)
        assert grid["penalty"].iloc[-1] == pytest.approx(1e-1)
        assert grid["penalty"].is_monotonic_increasing

    def test_explicit_penalties(self):
        grid = penalty_grid(values=[0.1, 0.01])

        assert grid["penalty"].tolist() == [0.1, 0.01]

    @pytest.mark.parametrize("values", [[], [0.1, 0.0], [-1.0]])
    def test_bad_penalties(self, values):
        with pytest.raises(ConfigurationError):
            penalty_grid(values=values)

    def test_forest_grid_is_full_product(self):
        grid = forest_grid(trees=[100, 500], mtry=[0.1, 0.5, 1.0], min_n=[1, 5])

        assert len(grid) == 12
        assert list(grid.columns) == ["trees", "mtry", "min_n"]
        assert grid["trees"].dtype.kind == "i"
        assert grid["min_n"].dtype.kind == "i"

    @pytest.mark.parametrize(
        "kwargs",
        [{"trees": []}, {"trees": [0]}, {"mtry": [0.0]}, {"mtry": [1.5]}, {"min_n": [0]}],
    )
    def test_bad_forest_grid(self, kwargs):
        with pytest.raises(ConfigurationError):
            forest_grid(**kwargs)


class TestBuildEstimator:

    def test_logreg_penalty_scaling(self):
        est = build_estimator("logreg", {"penalty": 0.01}, n_train=50, mixture=0.5)

        assert est.C == pytest.approx(2.0)
        assert est.l1_ratio == 0.5
        assert est.solver == "saga"

    def test_random_forest_params(self):
        est = build_estimator("rf", {"trees": 50, "mtry": 0.25, "min_n": 3}, n_train=50, random_state=1)

        assert est.n_estimators == 50
        assert est.max_features == 0.25
        assert est.min_samples_leaf == 3
        assert est.bootstrap

    def test_unknown_model(self):
        with pytest.raises(ConfigurationError):
            build_estimator("svm", {}, n_train=10)

    @pytest.mark.parametrize("mixture", [-0.1, 1.5])
    def test_mixture_out_of_range(self, mixture):
        with pytest.raises(ConfigurationError):
            build_estimator("logreg", {"penalty": 0.1}, n_train=10, mixture=mixture)


class TestFitModel:

    def test_probabilities_for_raw_records(self, recipe, three_way):
        model = fit_model(three_way.train, recipe, "logreg", {"penalty": 0.01}, random_state=0)

        proba = model.predict_proba(three_way.test)

        assert proba.index.equals(three_way.test.index)
        assert proba.between(0, 1).all()
        assert proba.name == ".pred_Resistant"
        assert set(model.predict(three_way.test)) <= {"Resistant", "Susceptible"}

    def test_strong_lasso_zeroes_every_coefficient(self, recipe, three_way):
        model = fit_model(three_way.train, recipe, "logreg", {"penalty": 10.0}, mixture=1.0, random_state=0)

        assert np.all(model.estimator.coef_ == 0)

    def test_weak_penalty_keeps_coefficients(self, recipe, three_way):
        model = fit_model(three_way.train, recipe, "logreg", {"penalty": 1e-3}, mixture=1.0, random_state=0)

        assert np.count_nonzero(model.estimator.coef_) > 0

    def test_shrinkage_grows_with_penalty(self, recipe, three_way):
        norms = []
        for penalty in (1e-3, 1e-2, 1e-1):
            model = fit_model(three_way.train, recipe, "logreg", {"penalty": penalty}, mixture=0.0, random_state=0)
            norms.append(np.linalg.norm(model.estimator.coef_))

        assert norms[0] > norms[1] > norms[2]

    def test_random_forest_importances(self, recipe, three_way):
        model = fit_model(
            three_way.train, recipe, "rf", {"trees": 50, "mtry": 0.5, "min_n": 1}, random_state=0
        )

        assert len(model.estimator.feature_importances_) == len(recipe.predictors)
        assert model.estimator.feature_importances_.sum() == pytest.approx(1.0)
        assert model.predict_proba(three_way.validation).between(0, 1).all()

    def test_schema_checked_on_prediction(self, recipe, three_way):
        model = fit_model(three_way.train, recipe, "logreg", {"penalty": 0.01}, random_state=0)

        with pytest.raises(SchemaMismatchError):
            model.predict_proba(three_way.test.drop(columns=["noise_01"]))

    def test_single_class_training_is_a_fit_error(self, roles, three_way):
        predictors, outcome, supplementary = roles
        train = three_way.train[three_way.train[OUTCOME_COL] == "Susceptible"]
        recipe = fit_recipe(train, predictors, outcome, supplementary)

        with pytest.raises(FitError) as excinfo:
            fit_model(train, recipe, "logreg", {"penalty": 0.01})
        assert excinfo.value.params == {"penalty": 0.01}

    def test_strict_convergence(self, recipe, three_way):
        with pytest.raises(FitError, match="converge"):
            fit_model(
                three_way.train,
                recipe,
                "logreg",
                {"penalty": 1e-4},
                max_iter=1,
                strict_convergence=True,
                random_state=0,
            )

    def test_non_convergence_recorded(self, recipe, three_way):
        model = fit_model(three_way.train, recipe, "logreg", {"penalty": 1e-4}, max_iter=1, random_state=0)

        assert model.converged is False
        assert isinstance(model.params, dict)
        assert model.feature_names == list(recipe.predictors)


def test_fitted_model_is_frozen(three_way, roles):
    predictors, outcome, supplementary = roles
    recipe = fit_recipe(three_way.train, predictors, outcome, supplementary)
    model = fit_model(three_way.train, recipe, "logreg", {"penalty": 0.01}, random_state=0)

    with pytest.raises(FrozenInstanceError):
        model.params = {}
    assert isinstance(model.recipe.predictors, tuple)
