import numpy as np
import pandas as pd

from .errors import ConfigurationError


def _logreg_importance(model):
    coef = np.ravel(model.estimator.coef_)
    # sklearn reports coefficients for classes_[1]; flip so positive means "more resistant".
    if list(model.estimator.classes_).index(model.positive_class) == 0:
        coef = -coef
    return pd.DataFrame(
        {
            "feature": model.feature_names,
            "importance": np.abs(coef),
            "sign": np.sign(coef).astype(int),
            "importance_type": "abs_coefficient",
        }
    )


def _rf_importance(model):
    return pd.DataFrame(
        {
            "feature": model.feature_names,
            "importance": model.estimator.feature_importances_,
            "importance_type": "impurity",
        }
    )


IMPORTANCE_EXTRACTORS = {
    "logreg": _logreg_importance,
    "rf": _rf_importance,
}


def feature_importance(model, top_k=None):
    if top_k is not None and top_k < 1:
        raise ConfigurationError(f"top_k must be >= 1; got {top_k}")
    try:
        extractor = IMPORTANCE_EXTRACTORS[model.model_name]
    except KeyError:
        raise ConfigurationError(f"No importance measure for model {model.model_name!r}") from None

    table = extractor(model)
    table = table.sort_values(["importance", "feature"], ascending=[False, True], kind="mergesort")
    if top_k is not None:
        table = table.head(top_k)
    return table.reset_index(drop=True)
