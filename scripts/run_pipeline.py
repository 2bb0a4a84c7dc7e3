import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from amrml.config import (
    CV_FOLDS,
    DATA_PATH,
    LABEL_COL,
    METRIC,
    METRICS,
    MIXTURE,
    MODEL_SEED,
    MODELS,
    NEGATIVE_CLASS,
    OUTPUT_DIR,
    PENALTY_GRID_HIGH,
    PENALTY_GRID_LEVELS,
    PENALTY_GRID_LOW,
    POSITIVE_CLASS,
    RF_MIN_LEAF,
    RF_MTRY_FRACTIONS,
    RF_TREES,
    SYNTHETIC_SEED,
    TEST_SEED,
    TEST_SIZE,
    TOP_K,
    VALIDATION_SEED,
    VALIDATION_SIZE,
)
from amrml.data_prep import load_feature_matrix
from amrml.errors import FitError
from amrml.modeling import forest_grid, penalty_grid
from amrml.synthetic import make_synthetic_matrix
from amrml.workflow import run_workflow


def parse_args():
    parser = argparse.ArgumentParser(description="Predict AMR phenotype from gene presence/absence")
    parser.add_argument("--data-path", default=DATA_PATH, type=Path)
    parser.add_argument(
        "--synthetic",
        action="store_true",
        help="Run on a generated 100-genome matrix instead of --data-path.",
    )
    parser.add_argument(
        "--synthetic-seed",
        type=int,
        default=SYNTHETIC_SEED,
        help="Seed of the generated matrix; independent of --model-seed.",
    )
    parser.add_argument("--antibiotic", help="Keep only rows tested against this antibiotic.")
    parser.add_argument("--label-col", default=LABEL_COL)
    parser.add_argument("--positive-class", default=POSITIVE_CLASS)
    parser.add_argument("--negative-class", default=NEGATIVE_CLASS)
    parser.add_argument("--models", nargs="+", choices=MODELS, default=MODELS)
    parser.add_argument("--test-size", type=float, default=TEST_SIZE)
    parser.add_argument(
        "--validation-size",
        type=float,
        default=VALIDATION_SIZE,
        help="Fraction of the non-test rows held out for validation.",
    )
    parser.add_argument("--test-seed", type=int, default=TEST_SEED)
    parser.add_argument("--validation-seed", type=int, default=VALIDATION_SEED)
    parser.add_argument(
        "--cv-folds",
        type=int,
        default=CV_FOLDS,
        help="Tune with stratified V-fold CV on train+validation instead of the single validation split.",
    )
    parser.add_argument("--model-seed", type=int, default=MODEL_SEED)
    parser.add_argument(
        "--mixture",
        type=float,
        default=MIXTURE,
        help="Elastic-net mixture: 1 = lasso, 0 = ridge.",
    )
    parser.add_argument(
        "--penalty-range",
        nargs=2,
        type=float,
        default=[PENALTY_GRID_LOW, PENALTY_GRID_HIGH],
        metavar=("LOG10_LOW", "LOG10_HIGH"),
    )
    parser.add_argument("--penalty-levels", type=int, default=PENALTY_GRID_LEVELS)
    parser.add_argument("--rf-trees", nargs="+", type=int, default=RF_TREES)
    parser.add_argument("--rf-mtry", nargs="+", type=float, default=RF_MTRY_FRACTIONS)
    parser.add_argument("--rf-min-leaf", nargs="+", type=int, default=RF_MIN_LEAF)
    parser.add_argument("--metric", choices=METRICS, default=METRIC)
    parser.add_argument("--top-k", type=int, default=TOP_K)
    parser.add_argument("--class-weight", choices=["balanced"], default=None)
    parser.add_argument(
        "--strict-convergence",
        action="store_true",
        help="Treat solver non-convergence as a failed grid entry.",
    )
    parser.add_argument("--n-jobs", type=int, default=1)
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def write_model_outputs(result, output_dir):
    name = result.model_name
    result.tuning.to_csv(output_dir / f"tuning_{name}.csv", index=False)
    pd.DataFrame([result.summary()]).to_csv(output_dir / f"best_{name}.csv", index=False)
    pd.DataFrame([result.final.metrics]).to_csv(output_dir / f"test_metrics_{name}.csv", index=False)
    result.final.predictions.to_csv(output_dir / f"test_predictions_{name}.csv")
    result.importance.to_csv(output_dir / f"importance_{name}.csv", index=False)
    result.final.roc_curve.to_csv(output_dir / f"roc_curve_{name}.csv", index=False)
    result.final.pr_curve.to_csv(output_dir / f"pr_curve_{name}.csv", index=False)


def main():
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.output_dir.mkdir(parents=True, exist_ok=True)

    if args.synthetic:
        matrix = make_synthetic_matrix(random_state=args.synthetic_seed)
    else:
        matrix = load_feature_matrix(args.data_path)

    grids = {
        "logreg": penalty_grid(args.penalty_range[0], args.penalty_range[1], args.penalty_levels),
        "rf": forest_grid(args.rf_trees, args.rf_mtry, args.rf_min_leaf),
    }

    summary_rows = []
    first_run = True
    for model_name in args.models:
        try:
            result = run_workflow(
                matrix,
                model_name=model_name,
                grid=grids[model_name],
                positive_class=args.positive_class,
                negative_class=args.negative_class,
                label_col=args.label_col,
                antibiotic=args.antibiotic,
                test_size=args.test_size,
                validation_size=args.validation_size,
                test_seed=args.test_seed,
                validation_seed=args.validation_seed,
                cv_folds=args.cv_folds,
                metric=args.metric,
                mixture=args.mixture,
                top_k=args.top_k,
                random_state=args.model_seed,
                class_weight=args.class_weight,
                strict_convergence=args.strict_convergence,
                n_jobs=args.n_jobs,
            )
        except FitError as exc:
            print(f"{model_name} skipped: {exc}")
            continue

        write_model_outputs(result, args.output_dir)
        if first_run:
            result.balance.to_csv(args.output_dir / "split_balance.csv", index=False)
            pd.DataFrame({"dropped_zero_variance": list(result.recipe.dropped)}).to_csv(
                args.output_dir / "dropped_columns.csv", index=False
            )
            first_run = False
        summary_rows.append(result.summary())

        top = ", ".join(result.importance["feature"].head(5))
        print(
            f"{model_name}: best {result.best['params']} "
            f"(validation {args.metric}={result.best['value']:.3f}, "
            f"test {args.metric}={result.final.metrics[args.metric]:.3f}); top genes: {top}"
        )

    if summary_rows:
        pd.DataFrame(summary_rows).to_csv(args.output_dir / "experiment_summary.csv", index=False)

    print(f"Outputs written to {args.output_dir}")


if __name__ == "__main__":
    main()
