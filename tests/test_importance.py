"""Tests for amrml/importance.py - per-family feature rankings."""

import pytest

from amrml.config import METADATA_COLUMNS, OUTCOME_COL
from amrml.data_prep import binarize_phenotype, gene_columns
from amrml.errors import ConfigurationError
from amrml.importance import feature_importance
from amrml.modeling import fit_model
from amrml.recipe import fit_recipe
from amrml.synthetic import make_synthetic_matrix


@pytest.fixture(scope="module")
def training():
    data = binarize_phenotype(
        make_synthetic_matrix(n_samples=300, n_genes=20, n_constant=3, signal=0.85, random_state=5)
    )
    predictors = gene_columns(data)
    supplementary = [col for col in METADATA_COLUMNS if col in data.columns]
    recipe = fit_recipe(data, predictors, OUTCOME_COL, supplementary)
    return data, recipe


@pytest.fixture(scope="module")
def lasso(training):
    data, recipe = training
    return fit_model(data, recipe, "logreg", {"penalty": 0.01}, mixture=1.0, random_state=0)


@pytest.fixture(scope="module")
def forest(training):
    data, recipe = training
    return fit_model(data, recipe, "rf", {"trees": 200, "mtry": 0.5, "min_n": 1}, random_state=0)


class TestLogisticImportance:

    def test_sorted_absolute_coefficients(self, lasso):
        table = feature_importance(lasso)

        assert list(table.columns) == ["feature", "importance", "sign", "importance_type"]
        assert table["importance"].is_monotonic_decreasing
        assert (table["importance"] >= 0).all()
        assert set(table["importance_type"]) == {"abs_coefficient"}
        assert set(table["sign"]) <= {-1, 0, 1}

    def test_informative_genes_rank_first_and_push_towards_resistance(self, lasso):
        top = feature_importance(lasso, top_k=5)

        assert all(name.startswith("informative_") for name in top["feature"])
        assert (top["sign"] == 1).all()

    def test_constant_genes_never_ranked(self, lasso):
        table = feature_importance(lasso)

        assert len(table) == 17
        assert not table["feature"].str.startswith("constant_").any()


class TestForestImportance:

    def test_impurity_importance(self, forest):
        table = feature_importance(forest)

        assert list(table.columns) == ["feature", "importance", "importance_type"]
        assert set(table["importance_type"]) == {"impurity"}
        assert table["importance"].sum() == pytest.approx(1.0)
        assert table["importance"].is_monotonic_decreasing
        assert table["feature"].iloc[0].startswith("informative_")


@pytest.mark.parametrize("top_k, expected", [(1, 1), (10, 10), (17, 17), (50, 17), (None, 17)])
def test_top_k_length(lasso, top_k, expected):
    assert len(feature_importance(lasso, top_k=top_k)) == expected


def test_top_k_must_be_positive(lasso):
    with pytest.raises(ConfigurationError):
        feature_importance(lasso, top_k=0)
