import re

from invoice_templates.models import FieldKind

# Labels are compared against diacritic-folded, lower-cased lines.
KEYWORDS = {
    FieldKind.DOCUMENT_ID: [
        "invoice number",
        "invoice no",
        "invoice nr",
        "invoice #",
        "document no",
        "saskaitos numeris",
        "saskaitos serija",
        "fakturos serija",
        "saskaitos fakturos numeris",
        "saskaita faktura",
        "saskaitos faktura",
        "pvmsaskaitafaktura",
        "numeris",
        "numerio",
        "serija",
        "serijos",
        "serijos kodas",
        "series",
        "nr.",
        "nr",
        "no.",
        "ssp",
    ],
    FieldKind.DATE: [
        "data",
        "date",
        "saskaitos data",
        "israsymo data",
        "invoice date",
        "issue date",
        "proforma date",
        "sf data",
        "saskaitos fakturos data",
    ],
    FieldKind.COUNTERPARTY_NAME: [
        "pardavejas",
        "tiekejas",
        "gavejas",
        "imone",
        "kompanija",
        "bendrove",
        "seller",
        "supplier",
        "vendor",
        "company",
        "uab",
        "ab",
        "mb",
        "vsi",
        "ltd",
        "llc",
        "inc",
        "gmbh",
        "oy",
        "sia",
    ],
    FieldKind.AMOUNT_EXCL_TAX: [
        "suma be pvm",
        "suma bepvm",
        "sumabepvm",
        "suma",
        "apmokestinamoji verte",
        "pardavimo tarpine suma",
        "pardavimotarpinesuma",
        "tarpine suma",
        "before vat",
        "without vat",
        "excl vat",
        "excl. vat",
        "net amount",
        "subtotal",
        "sub total",
    ],
    FieldKind.TAX_AMOUNT: [
        "pvm",
        "pvm suma",
        "pvmsuma",
        "vat",
        "vat amount",
        "vat suma",
        "tax amount",
        "tax",
    ],
    FieldKind.TAX_ID: [
        "pvm kodas",
        "pvmkodas",
        "pvm numeris",
        "pvmnumeris",
        "pvm moketojo kodas",
        "vat number",
        "vat no",
        "vat code",
        "vat id",
        "vat kodas",
        "tax id",
    ],
    FieldKind.REGISTRATION_ID: [
        "imones kodas",
        "imoneskodas",
        "im. kodas",
        "im.k.",
        "imones registracijos numeris",
        "registracijos kodas",
        "registracijos numeris",
        "company code",
        "company number",
        "registration number",
        "reg. no",
        "kodas",
    ],
}

# Labels that look like one of the fields above but carry something else.
IGNORED_LABELS = [
    "suma su pvm",
    "suma apmoketi",
    "is viso su pvm",
    "viso su pvm",
    "is viso",
    "bendra suma",
    "suma zodziais",
    "pvm tarifas",
    "vat rate",
    "tarifas",
    "total",
    "grand total",
    "total due",
    "amount due",
    "incl vat",
    "incl. vat",
    "iban",
    "banko kodas",
    "bank code",
]

PATTERN_FIELDS = (
    FieldKind.DATE,
    FieldKind.AMOUNT_EXCL_TAX,
    FieldKind.TAX_AMOUNT,
    FieldKind.TAX_ID,
    FieldKind.REGISTRATION_ID,
    FieldKind.COUNTERPARTY_NAME,
)

DATE_PATTERNS = [
    re.compile(r"\b\d{4}\s*[./-]\s*\d{1,2}\s*[./-]\s*\d{1,2}\b"),
    re.compile(r"\b\d{1,2}\s*[./-]\s*\d{1,2}\s*[./-]\s*\d{4}\b"),
    re.compile(r"\b\d{1,2}[./-]\d{1,2}[./-]\d{2}\b"),
    re.compile(r"\b\d{4}\s*m\.?\s*[a-z]+\s*(?:men\.?\s*)?\d{1,2}\s*d\.?", re.IGNORECASE),
    re.compile(
        r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)\w*\s+\d{1,2},?\s+\d{4}\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b\d{1,2}\s+(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)\w*\s+\d{4}\b",
        re.IGNORECASE,
    ),
]

PERCENT_RE = re.compile(r"\d+(?:[.,]\d+)?\s*%")
AMOUNT_TOKEN_RE = re.compile(
    r"(?<![\w.,])-?\d{1,3}(?:[  .,]\d{3})*(?:[.,]\d{1,2})?(?![\w])"
    r"|(?<![\w.,])-?\d+(?:[.,]\d{1,2})?(?![\w])"
)

TAX_ID_RE = re.compile(r"(?<![A-Z0-9])([A-Z]{2}\s?\d[0-9A-Z]{7,11})(?![A-Z0-9])")
REGISTRATION_ID_RE = re.compile(r"(?<![A-Za-z0-9.,+])(\d{7,14})(?![0-9]|[.,]\d)")
DOCUMENT_SERIES_RE = re.compile(r"\bserija\s*[:.]?\s*([A-Z0-9]{1,6})\b", re.IGNORECASE)
DOCUMENT_NUMBER_RE = re.compile(
    r"(?:\bnr|\bno|\bnumeris|\bnumber|#)\.?\s*[:#]?\s*([A-Z0-9][A-Z0-9\-/_.]*)",
    re.IGNORECASE,
)
DOCUMENT_TOKEN_RE = re.compile(r"[A-Z0-9][A-Z0-9\-/_.]*\d[A-Z0-9\-/_.]*", re.IGNORECASE)

INVOICE_NUMBER_PREFIX_RE = re.compile(r"(?:nr\.?|numeris|serija|no\.?|#)\s*[:.]?\s*$", re.IGNORECASE)
REGISTRATION_CONTEXT = ["imones kodas", "im. kodas", "im.k", "kodas", "company code", "reg"]
CONTACT_CONTEXT = ["tel", "phone", "mob", "fax", "iban", "a/s", "a.s.", "bank"]
AMOUNT_IN_WORDS = ["suma zodziais", "eurai", "centas", "centai", "centu"]
INVOICE_CAPTIONS = ["saskaita", "faktura", "invoice", "pvmsaskaitafaktura"]


def _keyword_regex(keyword):
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z0-9])")


KEYWORD_PATTERNS = []
for _kind, _words in KEYWORDS.items():
    for _word in _words:
        KEYWORD_PATTERNS.append((_word, _kind, _keyword_regex(_word)))
for _word in IGNORED_LABELS:
    KEYWORD_PATTERNS.append((_word, None, _keyword_regex(_word)))
KEYWORD_PATTERNS.sort(key=lambda item: len(item[0]), reverse=True)
