import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = BASE_DIR / "data" / "templates"
LOG_FILE = "invoice_templates.log"

OCR_LANGS = os.environ.get("OCR_LANGS", "lit+eng")
TESSERACT_CMD = os.environ.get("TESSERACT_CMD")

MATCH_QUALITY_THRESHOLD = 0.5
OUTLIER_DISTANCE_THRESHOLD = 0.15

# Fraction of the image size added around a learned region before searching.
TEMPLATE_BASE_PADDING = 0.03
PADDING_CONFIDENCE_GAIN = 0.5

QUALITY_EXACT = 1.0
QUALITY_COMPACT = 0.9
QUALITY_NUMERIC = 0.9
QUALITY_CONTAINS_BASE = 0.5
QUALITY_CONTAINS_SPAN = 0.3

DATE_MAX_FUTURE_DAYS = 62
DATE_MAX_PAST_DAYS = 3660
DATE_MIN_YEAR = 1900
DATE_MAX_YEAR = 2100

DOCUMENT_ID_MAX_LEN = 70
COMPANY_NAME_MIN_LEN = 5
COMPANY_NAME_MAX_LEN = 200
COMPANY_LINE_MAX_LEN = 80

AMOUNT_MAX = 10_000_000.0

STANDARD_TAX_RATES = (21.0, 9.0, 5.0, 0.0)

TAX_CODE_THRESHOLDS = (
    (20.0, "PVM1"),
    (8.0, "PVM2"),
    (4.0, "PVM3"),
    (0.0, "PVM4"),
)
DEFAULT_TAX_CODE = "PVM1"
REVERSE_CHARGE_TAX_CODE = "PVM25"
REVERSE_CHARGE_MARKERS = ("96 straipsnis", "atvirkstinis pvm", "reverse charge")

LEGAL_FORMS = (
    "uab",
    "ab",
    "mb",
    "ii",
    "vsi",
    "ltd",
    "llc",
    "inc",
    "gmbh",
    "oy",
    "as",
    "sia",
    "ou",
    "sp z o o",
    "uzdaroji akcine bendrove",
    "akcine bendrove",
)

SECTION_LABELS = (
    "pardavejas",
    "tiekejas",
    "gavejas",
    "pirkejas",
    "pirkejo",
    "seller",
    "buyer",
    "recipient",
    "supplier",
    "imone",
    "kompanija",
    "bendrove",
    "company",
)

OWN_NAME_FUZZY_MATCH = 0.90
OWN_NAME_MIN_CORE_LEN = 5
