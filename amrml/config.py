from pathlib import Path

DATA_PATH = Path("data/gene_presence_absence.csv")

SAMPLE_ID_COL = "sample_id"
GENOME_ID_COL = "genome_id"
ASSEMBLY_COL = "assembly_accession"
ANTIBIOTIC_COL = "antibiotic"
DRUG_CLASS_COL = "drug_class"
LABEL_COL = "resistant_phenotype"

METADATA_COLUMNS = [
    SAMPLE_ID_COL,
    GENOME_ID_COL,
    ASSEMBLY_COL,
    ANTIBIOTIC_COL,
    DRUG_CLASS_COL,
    LABEL_COL,
]

REQUIRED_COLUMNS = [SAMPLE_ID_COL, LABEL_COL]

OUTCOME_COL = "phenotype"

POSITIVE_CLASS = "Resistant"
NEGATIVE_CLASS = "Susceptible"

TEST_SIZE = 0.25
VALIDATION_SIZE = 0.2
TEST_SEED = 2024
VALIDATION_SEED = 42
CV_FOLDS = None
MODEL_SEED = 123
SYNTHETIC_SEED = 0

MIXTURE = 1.0
PENALTY_GRID_LOW = -4
PENALTY_GRID_HIGH = -1
PENALTY_GRID_LEVELS = 30
LOGREG_MAX_ITER = 5000

RF_TREES = [500, 1000]
RF_MTRY_FRACTIONS = [0.05, 0.1, 0.25]
RF_MIN_LEAF = [1, 3, 5]

METRICS = ["roc_auc", "pr_auc"]
METRIC = "roc_auc"
TOP_K = 20

MODELS = ["logreg", "rf"]

OUTPUT_DIR = Path("reports")
