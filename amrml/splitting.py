import logging
import math
from dataclasses import dataclass, field

import pandas as pd
from sklearn.model_selection import StratifiedKFold, train_test_split

from .config import OUTCOME_COL, TEST_SEED, TEST_SIZE, VALIDATION_SEED, VALIDATION_SIZE
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Split:
    """Two disjoint subsets of one frame; ``test`` is the held-out part."""

    train: pd.DataFrame = field(repr=False)
    test: pd.DataFrame = field(repr=False)
    strata: str
    test_size: float
    seed: int


@dataclass(frozen=True)
class ThreeWaySplit:
    train: pd.DataFrame = field(repr=False)
    validation: pd.DataFrame = field(repr=False)
    test: pd.DataFrame = field(repr=False)
    strata: str
    test_size: float
    validation_size: float
    test_seed: int
    validation_seed: int

    @property
    def other(self):
        """Training plus validation rows, in their original order; used for the final refit."""
        return pd.concat([self.train, self.validation]).sort_index()


@dataclass(frozen=True)
class Resample:
    id: str
    analysis: pd.Index
    assessment: pd.Index


def _check_proportion(name, value):
    if not 0 < value < 1:
        raise ConfigurationError(f"{name} must be in (0, 1); got {value}")


def _check_strata(df, strata, held_out_size):
    if strata not in df.columns:
        raise ConfigurationError(f"Stratification column {strata!r} not found.")
    if df[strata].isna().any():
        raise ConfigurationError(f"Stratification column {strata!r} has missing values.")

    n = len(df)
    n_held_out = math.ceil(held_out_size * n)
    n_kept = n - n_held_out
    if n_held_out < 1 or n_kept < 1:
        raise ConfigurationError(f"Cannot split {n} rows with held-out proportion {held_out_size}.")

    counts = df[strata].value_counts()
    counts = counts[counts > 0]
    for level, count in counts.items():
        if count * n_held_out / n < 1 or count * n_kept / n < 1:
            raise ConfigurationError(
                f"Level {level!r} of {strata!r} has only {count} rows; too few to appear in both subsets "
                f"with held-out proportion {held_out_size}."
            )


def stratified_split(df, strata=OUTCOME_COL, test_size=TEST_SIZE, seed=TEST_SEED):
    _check_proportion("test_size", test_size)
    _check_strata(df, strata, test_size)

    train, test = train_test_split(
        df,
        test_size=test_size,
        random_state=seed,
        shuffle=True,
        stratify=df[strata].astype(str),
    )
    logger.info(
        "Stratified split on %r (seed=%s): %d train / %d held out", strata, seed, len(train), len(test)
    )
    return Split(train=train, test=test, strata=strata, test_size=test_size, seed=seed)


def initial_validation_split(
    df,
    strata=OUTCOME_COL,
    test_size=TEST_SIZE,
    validation_size=VALIDATION_SIZE,
    test_seed=TEST_SEED,
    validation_seed=VALIDATION_SEED,
):
    outer = stratified_split(df, strata=strata, test_size=test_size, seed=test_seed)
    inner = stratified_split(outer.train, strata=strata, test_size=validation_size, seed=validation_seed)
    return ThreeWaySplit(
        train=inner.train,
        validation=inner.test,
        test=outer.test,
        strata=strata,
        test_size=test_size,
        validation_size=validation_size,
        test_seed=test_seed,
        validation_seed=validation_seed,
    )


def validation_resamples(split):
    return [Resample(id="validation", analysis=split.train.index, assessment=split.validation.index)]


def vfold_resamples(df, strata=OUTCOME_COL, v=5, seed=VALIDATION_SEED):
    if v is None or v < 2:
        raise ConfigurationError(f"Cross-validation needs at least 2 folds; got {v}")
    if strata not in df.columns:
        raise ConfigurationError(f"Stratification column {strata!r} not found.")
    counts = df[strata].value_counts()
    counts = counts[counts > 0]
    if (counts < v).any():
        rare = counts[counts < v].to_dict()
        raise ConfigurationError(f"Levels {rare} of {strata!r} have fewer rows than the {v} folds requested.")

    folds = StratifiedKFold(n_splits=v, shuffle=True, random_state=seed)
    resamples = []
    for i, (analysis, assessment) in enumerate(folds.split(df, df[strata].astype(str))):
        resamples.append(
            Resample(
                id=f"Fold{i + 1:02d}",
                analysis=df.index[analysis],
                assessment=df.index[assessment],
            )
        )
    return resamples


def class_balance(subsets, strata=OUTCOME_COL):
    """Per-subset class counts and proportions, one row per (subset, level)."""
    if isinstance(subsets, ThreeWaySplit):
        subsets = {"train": subsets.train, "validation": subsets.validation, "test": subsets.test}
    elif isinstance(subsets, Split):
        subsets = {"train": subsets.train, "test": subsets.test}

    rows = []
    for name, frame in subsets.items():
        counts = frame[strata].value_counts(sort=False)
        total = counts.sum()
        for level, n in counts.items():
            rows.append(
                {"subset": name, strata: level, "n": int(n), "proportion": n / total if total else float("nan")}
            )
    return pd.DataFrame(rows)
