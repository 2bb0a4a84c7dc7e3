import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    auc,
    f1_score,
    precision_recall_curve,
    roc_auc_score,
    roc_curve,
)

from .config import POSITIVE_CLASS
from .errors import ConfigurationError


def _binary_truth(y_true, positive_class):
    y_true = np.asarray(y_true, dtype=object)
    return (y_true == positive_class).astype(int)


def _has_both_classes(y):
    return len(np.unique(y)) == 2


def roc_auc(y_true, y_score, positive_class=POSITIVE_CLASS):
    y = _binary_truth(y_true, positive_class)
    if not _has_both_classes(y):
        return float("nan")
    return float(roc_auc_score(y, y_score))


def pr_auc(y_true, y_score, positive_class=POSITIVE_CLASS):
    y = _binary_truth(y_true, positive_class)
    if not _has_both_classes(y):
        return float("nan")
    precision, recall, _ = precision_recall_curve(y, y_score)
    return float(auc(recall, precision))


METRIC_FUNCTIONS = {
    "roc_auc": roc_auc,
    "pr_auc": pr_auc,
}


def get_metric(name):
    try:
        return METRIC_FUNCTIONS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown metric {name!r}; choose from {sorted(METRIC_FUNCTIONS)}") from None


def score_metrics(y_true, y_score, metrics, positive_class=POSITIVE_CLASS):
    return {name: get_metric(name)(y_true, y_score, positive_class) for name in metrics}


def classification_metrics(y_true, y_pred, y_score=None, positive_class=POSITIVE_CLASS):
    y = _binary_truth(y_true, positive_class)
    pred = _binary_truth(y_pred, positive_class)
    metrics = {
        "accuracy": accuracy_score(y, pred),
        "f1": f1_score(y, pred, zero_division=0),
    }
    if y_score is not None:
        metrics["roc_auc"] = roc_auc(y_true, y_score, positive_class)
        metrics["pr_auc"] = pr_auc(y_true, y_score, positive_class)
    else:
        metrics["roc_auc"] = float("nan")
        metrics["pr_auc"] = float("nan")
    return metrics


def roc_curve_data(y_true, y_score, positive_class=POSITIVE_CLASS):
    y = _binary_truth(y_true, positive_class)
    fpr, tpr, thresholds = roc_curve(y, y_score)
    return pd.DataFrame(
        {
            "threshold": thresholds,
            "specificity": 1 - fpr,
            "sensitivity": tpr,
        }
    )


def pr_curve_data(y_true, y_score, positive_class=POSITIVE_CLASS):
    y = _binary_truth(y_true, positive_class)
    precision, recall, thresholds = precision_recall_curve(y, y_score)
    # The last precision/recall pair has no threshold.
    return pd.DataFrame(
        {
            "threshold": np.append(thresholds, np.inf),
            "recall": recall,
            "precision": precision,
        }
    )
