import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import pandas as pd

from amrml.config import (
    ANTIBIOTIC_COL,
    DATA_PATH,
    LABEL_COL,
    METADATA_COLUMNS,
    NEGATIVE_CLASS,
    OUTCOME_COL,
    OUTPUT_DIR,
    POSITIVE_CLASS,
    SAMPLE_ID_COL,
    SYNTHETIC_SEED,
)
from amrml.data_prep import load_feature_matrix, phenotype_counts
from amrml.synthetic import make_synthetic_matrix
from amrml.workflow import prepare_matrix


def parse_args():
    parser = argparse.ArgumentParser(description="Generate report example tables")
    parser.add_argument("--data-path", default=DATA_PATH, type=Path)
    parser.add_argument("--synthetic", action="store_true")
    parser.add_argument("--synthetic-seed", type=int, default=SYNTHETIC_SEED)
    parser.add_argument("--antibiotic")
    parser.add_argument("--positive-class", default=POSITIVE_CLASS)
    parser.add_argument("--negative-class", default=NEGATIVE_CLASS)
    parser.add_argument("--output-dir", default=OUTPUT_DIR / "examples", type=Path)
    parser.add_argument("--n-genes", type=int, default=8, help="Gene columns shown in the preview")
    return parser.parse_args()


def main():
    args = parse_args()
    args.output_dir.mkdir(parents=True, exist_ok=True)

    if args.synthetic:
        matrix = make_synthetic_matrix(random_state=args.synthetic_seed)
    else:
        matrix = load_feature_matrix(args.data_path)

    data, predictors, _ = prepare_matrix(
        matrix,
        positive_class=args.positive_class,
        negative_class=args.negative_class,
        antibiotic=args.antibiotic,
    )

    meta_cols = [col for col in METADATA_COLUMNS if col in data.columns]
    data[meta_cols + predictors[: args.n_genes]].head(10).to_csv(
        args.output_dir / "raw_rows.csv", index=False
    )

    label_map_df = (
        data[[LABEL_COL, OUTCOME_COL]]
        .drop_duplicates()
        .rename(columns={LABEL_COL: "raw_label"})
        .astype({OUTCOME_COL: str})
        .sort_values(["raw_label", OUTCOME_COL], na_position="last")
    )
    label_map_df.to_csv(args.output_dir / "label_mapping.csv", index=False)

    phenotype_counts(data).to_csv(args.output_dir / "phenotype_counts.csv")

    if ANTIBIOTIC_COL in data.columns:
        per_drug = data.groupby(ANTIBIOTIC_COL, observed=True)[OUTCOME_COL].value_counts().unstack(fill_value=0)
        per_drug.to_csv(args.output_dir / "phenotype_by_antibiotic.csv")

    prevalence = data[predictors].mean().sort_values(ascending=False)
    prevalence.to_frame("prevalence").rename_axis("gene").to_csv(args.output_dir / "gene_prevalence.csv")

    print(f"{len(data)} genomes ({data[SAMPLE_ID_COL].nunique()} ids), {len(predictors)} genes")
    print(f"Examples written to {args.output_dir}")


if __name__ == "__main__":
    main()
