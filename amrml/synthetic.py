import numpy as np
import pandas as pd

from .config import (
    ANTIBIOTIC_COL,
    ASSEMBLY_COL,
    DRUG_CLASS_COL,
    GENOME_ID_COL,
    LABEL_COL,
    NEGATIVE_CLASS,
    POSITIVE_CLASS,
    SAMPLE_ID_COL,
)


def make_synthetic_matrix(
    n_samples=100,
    n_genes=20,
    n_constant=3,
    n_informative=5,
    positive_rate=0.2,
    signal=0.8,
    antibiotic="ampicillin",
    drug_class="beta-lactam",
    random_state=0,
):
    """Build a toy presence/absence matrix in the layout of the real export.

    The first ``n_informative`` gene columns track the label: a gene is present
    with probability ``signal`` in resistant genomes and ``1 - signal`` in the
    rest. The last ``n_constant`` gene columns are all zero. The remaining
    genes are coin flips.
    """
    if n_constant + n_informative > n_genes:
        raise ValueError("n_constant + n_informative cannot exceed n_genes")
    rng = np.random.default_rng(random_state)

    n_pos = int(round(n_samples * positive_rate))
    labels = np.array([POSITIVE_CLASS] * n_pos + [NEGATIVE_CLASS] * (n_samples - n_pos))
    rng.shuffle(labels)
    is_pos = labels == POSITIVE_CLASS

    genes = {}
    n_noise = n_genes - n_constant - n_informative
    for i in range(n_informative):
        p = np.where(is_pos, signal, 1 - signal)
        genes[f"informative_{i + 1:02d}"] = (rng.random(n_samples) < p).astype(int)
    for i in range(n_noise):
        genes[f"noise_{i + 1:02d}"] = rng.integers(0, 2, n_samples)
    for i in range(n_constant):
        genes[f"constant_{i + 1:02d}"] = np.zeros(n_samples, dtype=int)

    meta = pd.DataFrame(
        {
            SAMPLE_ID_COL: [f"S{i:04d}" for i in range(n_samples)],
            GENOME_ID_COL: [f"562.{1000 + i}" for i in range(n_samples)],
            ASSEMBLY_COL: [f"GCA_{900000 + i:09d}.1" for i in range(n_samples)],
            ANTIBIOTIC_COL: antibiotic,
            DRUG_CLASS_COL: drug_class,
            LABEL_COL: labels,
        }
    )
    return pd.concat([meta, pd.DataFrame(genes)], axis=1)
