import pytest

from amrml.config import METADATA_COLUMNS, OUTCOME_COL
from amrml.data_prep import binarize_phenotype, gene_columns
from amrml.splitting import initial_validation_split
from amrml.synthetic import make_synthetic_matrix


@pytest.fixture
def matrix():
    """100 genomes, 20 genes (3 constant, 5 informative), 80/20 phenotype split."""
    return make_synthetic_matrix(n_samples=100, n_genes=20, n_constant=3, positive_rate=0.2, random_state=7)


@pytest.fixture
def amr_data(matrix):
    return binarize_phenotype(matrix)


@pytest.fixture
def large_amr_data():
    return binarize_phenotype(
        make_synthetic_matrix(n_samples=400, n_genes=20, n_constant=3, positive_rate=0.2, random_state=11)
    )


@pytest.fixture
def roles(amr_data):
    predictors = gene_columns(amr_data)
    supplementary = [col for col in METADATA_COLUMNS if col in amr_data.columns]
    return predictors, OUTCOME_COL, supplementary


@pytest.fixture
def three_way(amr_data):
    return initial_validation_split(amr_data, test_size=0.25, validation_size=0.2, test_seed=1, validation_seed=2)
