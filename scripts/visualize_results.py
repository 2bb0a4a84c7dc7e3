import argparse
from pathlib import Path
import textwrap

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

MODEL_LABELS = {"logreg": "Lasso logistic regression", "rf": "Random forest"}


def parse_args():
    parser = argparse.ArgumentParser(description="Visualize AMR model outputs")
    parser.add_argument("--reports-dir", type=Path, default=Path("reports"))
    parser.add_argument("--output-dir", type=Path, default=Path("reports/figures"))
    parser.add_argument("--models", nargs="+", default=["logreg", "rf"])
    parser.add_argument("--metric", default="roc_auc", choices=["roc_auc", "pr_auc"])
    parser.add_argument("--format", default="png", help="Image format (png, pdf, svg)")
    return parser.parse_args()


def _load_csv(path):
    if not path.exists():
        print(f"Missing file: {path}")
        return None
    return pd.read_csv(path)


def _save(fig, out_path):
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, bbox_inches="tight")
    plt.close(fig)


def _wrap_labels(labels, width=20):
    wrapped = []
    for label in labels:
        text = str(label)
        if "/" in text:
            text = text.replace("/", "/\n")
        wrapped.append(
            textwrap.fill(text, width=width, break_long_words=False, break_on_hyphens=False)
        )
    return wrapped


def _apply_wrapped_ylabels(ax, width=20, fontsize=9):
    labels = [label.get_text() for label in ax.get_yticklabels()]
    wrapped = _wrap_labels(labels, width=width)
    ticks = ax.get_yticks()
    ax.set_yticks(ticks)
    ax.set_yticklabels(wrapped, fontsize=fontsize)


def plot_split_balance(balance_df, output_dir, fmt):
    level_col = [col for col in balance_df.columns if col not in {"subset", "n", "proportion"}][0]
    fig, ax = plt.subplots(figsize=(7, 4))
    sns.barplot(data=balance_df, x="subset", y="proportion", hue=level_col, ax=ax)
    ax.set_ylim(0, 1)
    ax.set_title("Phenotype balance per split")
    ax.set_xlabel("")
    ax.set_ylabel("proportion of genomes")
    _save(fig, output_dir / f"split_balance.{fmt}")


def plot_tuning(tuning_df, model_name, metric, output_dir, fmt):
    mean_col = f"{metric}_mean"
    df = tuning_df[tuning_df["status"] != "failed"].dropna(subset=[mean_col])
    if df.empty:
        print(f"No usable {metric} values for {model_name}")
        return

    if model_name == "logreg":
        fig, ax = plt.subplots(figsize=(7, 4))
        sns.lineplot(data=df, x="penalty", y=mean_col, marker="o", ax=ax, color="#2a6f97")
        ax.set_xscale("log")
        ax.set_xlabel("penalty")
    else:
        fig, ax = plt.subplots(figsize=(7, 4))
        sns.lineplot(
            data=df, x="mtry", y=mean_col, hue="min_n", style="trees", marker="o", ax=ax, palette="viridis"
        )
        ax.set_xlabel("mtry (fraction of genes per split)")
    ax.set_ylabel(f"validation {metric}")
    ax.set_title(f"{MODEL_LABELS.get(model_name, model_name)} tuning")
    _save(fig, output_dir / f"tuning_{model_name}.{fmt}")


def plot_curves(curves, output_dir, fmt):
    roc = [(name, df) for name, kind, df in curves if kind == "roc"]
    pr = [(name, df) for name, kind, df in curves if kind == "pr"]

    if roc:
        fig, ax = plt.subplots(figsize=(5, 5))
        for name, df in roc:
            ax.plot(1 - df["specificity"], df["sensitivity"], label=MODEL_LABELS.get(name, name))
        ax.plot([0, 1], [0, 1], linestyle="--", color="grey")
        ax.set_xlabel("1 - specificity")
        ax.set_ylabel("sensitivity")
        ax.set_title("Test ROC curve")
        ax.legend()
        _save(fig, output_dir / f"roc_curves.{fmt}")

    if pr:
        fig, ax = plt.subplots(figsize=(5, 5))
        for name, df in pr:
            ax.plot(df["recall"], df["precision"], label=MODEL_LABELS.get(name, name))
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1.05)
        ax.set_xlabel("recall")
        ax.set_ylabel("precision")
        ax.set_title("Test precision-recall curve")
        ax.legend()
        _save(fig, output_dir / f"pr_curves.{fmt}")


def plot_importance(importance_df, model_name, output_dir, fmt):
    df = importance_df.sort_values("importance", ascending=False)
    kind = df["importance_type"].iloc[0] if "importance_type" in df.columns and len(df) else "importance"
    fig, ax = plt.subplots(figsize=(8, max(4, 0.35 * len(df) + 1.5)))
    if "sign" in df.columns:
        df = df.assign(direction=df["sign"].map({1: "resistance", -1: "susceptibility", 0: "none"}))
        sns.barplot(data=df, x="importance", y="feature", hue="direction", dodge=False, ax=ax)
    else:
        sns.barplot(data=df, x="importance", y="feature", ax=ax, color="#34a0a4")
    ax.set_title(f"{MODEL_LABELS.get(model_name, model_name)}: top genes")
    ax.set_xlabel(kind.replace("_", " "))
    ax.set_ylabel("")
    _apply_wrapped_ylabels(ax, width=24, fontsize=9)
    _save(fig, output_dir / f"importance_{model_name}.{fmt}")


def main():
    args = parse_args()
    sns.set_theme(style="whitegrid")

    balance_df = _load_csv(args.reports_dir / "split_balance.csv")
    if balance_df is not None:
        plot_split_balance(balance_df, args.output_dir, args.format)

    curves = []
    for model_name in args.models:
        tuning_df = _load_csv(args.reports_dir / f"tuning_{model_name}.csv")
        if tuning_df is not None:
            plot_tuning(tuning_df, model_name, args.metric, args.output_dir, args.format)

        importance_df = _load_csv(args.reports_dir / f"importance_{model_name}.csv")
        if importance_df is not None:
            plot_importance(importance_df, model_name, args.output_dir, args.format)

        for kind in ("roc", "pr"):
            df = _load_csv(args.reports_dir / f"{kind}_curve_{model_name}.csv")
            if df is not None:
                curves.append((model_name, kind, df))

    plot_curves(curves, args.output_dir, args.format)

    print(f"Figures written to {args.output_dir}")


if __name__ == "__main__":
    main()
