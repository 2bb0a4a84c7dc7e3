import logging
from pathlib import Path

import pandas as pd
from pandas.api.types import is_numeric_dtype

from .config import (
    ANTIBIOTIC_COL,
    LABEL_COL,
    METADATA_COLUMNS,
    NEGATIVE_CLASS,
    OUTCOME_COL,
    POSITIVE_CLASS,
    REQUIRED_COLUMNS,
    SAMPLE_ID_COL,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_feature_matrix(path, metadata_cols=None, required_cols=None):
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Feature matrix not found at {path}. Export the gene presence/absence table as CSV and place it there."
        )
    metadata_cols = METADATA_COLUMNS if metadata_cols is None else list(metadata_cols)
    required_cols = REQUIRED_COLUMNS if required_cols is None else list(required_cols)

    # Metadata is text; gene columns keep their inferred numeric dtype.
    header = pd.read_csv(path, nrows=0).columns
    dtypes = {col: str for col in metadata_cols if col in header}
    df = pd.read_csv(path, dtype=dtypes, low_memory=False)

    missing = [col for col in required_cols if col not in df.columns]
    if missing:
        raise ConfigurationError(f"Missing required columns in {path}: {missing}")
    if SAMPLE_ID_COL in df.columns and df[SAMPLE_ID_COL].duplicated().any():
        dupes = df.loc[df[SAMPLE_ID_COL].duplicated(), SAMPLE_ID_COL].unique().tolist()
        raise ConfigurationError(f"Duplicated sample ids: {dupes[:5]}")

    logger.info("Loaded %d genomes x %d columns from %s", len(df), df.shape[1], path)
    return df


def gene_columns(df, metadata_cols=None, outcome_col=OUTCOME_COL):
    metadata_cols = METADATA_COLUMNS if metadata_cols is None else list(metadata_cols)
    excluded = set(metadata_cols) | {outcome_col}
    genes = [col for col in df.columns if col not in excluded]
    if not genes:
        raise ConfigurationError("No gene columns left after removing metadata columns.")
    non_numeric = [col for col in genes if not is_numeric_dtype(df[col])]
    if non_numeric:
        raise ConfigurationError(
            f"Gene columns must be numeric; got non-numeric {non_numeric[:5]}. "
            "Add them to the metadata columns if they are annotations."
        )
    return genes


def select_antibiotic(df, antibiotic, antibiotic_col=ANTIBIOTIC_COL):
    if antibiotic_col not in df.columns:
        raise ConfigurationError(f"Column {antibiotic_col!r} not found; cannot select {antibiotic!r}.")
    normalized = _normalize_label(df[antibiotic_col])
    mask = normalized == antibiotic.strip().lower()
    if not mask.any():
        available = sorted(df[antibiotic_col].dropna().unique().tolist())
        raise ConfigurationError(f"Antibiotic {antibiotic!r} not in data; available: {available}")
    return df.loc[mask].copy()


def _normalize_label(series):
    return series.fillna("").astype(str).str.strip().str.lower()


def binarize_phenotype(
    df,
    positive_class=POSITIVE_CLASS,
    negative_class=NEGATIVE_CLASS,
    label_col=LABEL_COL,
    outcome_col=OUTCOME_COL,
):
    if label_col not in df.columns:
        raise ConfigurationError(f"Label column {label_col!r} not found.")
    if positive_class.strip().lower() == negative_class.strip().lower():
        raise ConfigurationError("Positive and negative class labels must differ.")

    normalized = _normalize_label(df[label_col])
    is_positive = normalized == positive_class.strip().lower()
    if not is_positive.any():
        observed = sorted(df[label_col].dropna().unique().tolist())
        raise ConfigurationError(
            f"Positive class {positive_class!r} not found in {label_col!r}; observed labels: {observed}"
        )

    df = df.copy()
    values = is_positive.map({True: positive_class, False: negative_class})
    df[outcome_col] = pd.Categorical(
        values, categories=[positive_class, negative_class], ordered=True
    )
    return df


def phenotype_counts(df, outcome_col=OUTCOME_COL):
    counts = df[outcome_col].value_counts(sort=False)
    table = counts.to_frame("n")
    table["proportion"] = table["n"] / table["n"].sum()
    table.index.name = outcome_col
    return table
