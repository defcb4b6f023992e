import re

from invoice_templates.config import COMPANY_LINE_MAX_LEN, COMPANY_NAME_MIN_LEN, SECTION_LABELS
from invoice_templates.extract.keywords import (
    AMOUNT_IN_WORDS,
    AMOUNT_TOKEN_RE,
    CONTACT_CONTEXT,
    DATE_PATTERNS,
    DOCUMENT_NUMBER_RE,
    DOCUMENT_SERIES_RE,
    DOCUMENT_TOKEN_RE,
    INVOICE_CAPTIONS,
    KEYWORD_PATTERNS,
    PATTERN_FIELDS,
    PERCENT_RE,
    REGISTRATION_ID_RE,
    TAX_ID_RE,
)
from invoice_templates.match.fuzzy import is_same_company_name
from invoice_templates.models import FieldKind, ParsedFieldSet
from invoice_templates.preprocess.normalize import (
    collapse_whitespace,
    compact_identifier,
    fold_diacritics,
    format_amount,
    has_legal_form,
    normalize_key,
    normalize_text,
    parse_amount,
    parse_date,
    take_key_value,
)
from invoice_templates.rules.tax import apply_derived_fields

_LABEL_PREFIX_RE = re.compile(
    r"^\s*(?:" + "|".join(SECTION_LABELS) + r"|pavadinimas|name)\b\s*[:\-]?\s*",
    re.IGNORECASE,
)
_TRAILING_LABEL_RE = re.compile(
    r"[,:;\s]+(?:imones kodas|im\. ?k|kodas|pvm|vat|reg\.?|adresas|address|iban|tel)\b.*$",
    re.IGNORECASE,
)
_DOCUMENT_REF_RE = re.compile(r"\b(?:nr|no|serija|numeris)\b\.?\s*[:#]?\s*[A-Z0-9]*\d", re.IGNORECASE)
_SEPARATOR_AFTER_LABEL_RE = re.compile(r"^[\s.]*:")
_CONTACT_RE = re.compile(
    r"(?<![a-z])(?:" + "|".join(re.escape(w) for w in CONTACT_CONTEXT) + r")(?![a-z])"
)
_SPACED_NUMERIC_DATE_RE = re.compile(r"\s*([./-])\s*")

# Kinds whose labels also show up on phone / bank detail lines.
_CONTACT_SENSITIVE = (FieldKind.DOCUMENT_ID, FieldKind.REGISTRATION_ID, FieldKind.TAX_ID)


def fold_line(line):
    return fold_diacritics(line or "").lower()


def is_contact_line(line):
    return bool(_CONTACT_RE.search(fold_line(line)))


def find_labels(line):
    """Return the keyword hits of a line as sorted ``(start, end, kind)`` spans.

    Longer labels are placed first and shorter labels overlapping them are
    dropped, so "pvm kodas" is read as a tax id label and never as "pvm".
    Ignored labels (totals, rates, bank codes) keep their span with kind None.
    """
    folded = fold_line(line)
    taken = []
    for _, kind, pattern in KEYWORD_PATTERNS:
        for m in pattern.finditer(folded):
            start, end = m.span()
            if any(start < t_end and t_start < end for t_start, t_end, _ in taken):
                continue
            taken.append((start, end, kind))
    taken.sort(key=lambda span: span[0])
    return taken


def classify_line(line):
    labels = [span for span in find_labels(line) if span[2] is not None]
    if not labels:
        return None
    return max(labels, key=lambda span: span[1] - span[0])[2]


def extract_date(text):
    folded = fold_line(text)
    for pattern in DATE_PATTERNS:
        m = pattern.search(folded)
        if not m:
            continue
        raw = m.group(0)
        if not re.search(r"[a-z]", raw):
            raw = _SPACED_NUMERIC_DATE_RE.sub(r"\1", raw)
        parsed = parse_date(raw)
        if parsed:
            return parsed.isoformat()
    return None


def extract_amount(text):
    if not text:
        return None
    cleaned = PERCENT_RE.sub(" ", text)
    tokens = [t.strip() for t in AMOUNT_TOKEN_RE.findall(cleaned)]
    with_decimals = [t for t in tokens if re.search(r"[.,]\d{1,2}$", t)]
    for raw in reversed(with_decimals or tokens):
        value = parse_amount(raw)
        if value is not None:
            return format_amount(value)
    return None


def extract_tax_id(text, exclude=None):
    if not text:
        return None
    excluded = normalize_key(exclude)
    for m in TAX_ID_RE.finditer(text.upper()):
        value = compact_identifier(m.group(1))
        if excluded and normalize_key(value) == excluded:
            continue
        return value
    return None


def extract_registration_id(text, exclude=None):
    if not text:
        return None
    for m in REGISTRATION_ID_RE.finditer(text):
        value = m.group(1)
        if exclude and value == exclude.strip():
            continue
        return value
    return None


def extract_document_id(text, line=None):
    line = line if line is not None else text
    number = None
    number_match = DOCUMENT_NUMBER_RE.search(line or "")
    if number_match and re.search(r"\d", number_match.group(1)):
        number = number_match.group(1).rstrip(".,:;")
    if number:
        series_match = DOCUMENT_SERIES_RE.search(line)
        if series_match:
            series = series_match.group(1).upper()
            if series != number.upper() and not number.upper().startswith(series):
                return series + number
        return number
    token = DOCUMENT_TOKEN_RE.search(text or "")
    if token:
        return token.group(0).rstrip(".,:;")
    return None


def is_company_line(line):
    if not line:
        return False
    stripped = line.strip()
    if len(stripped) < COMPANY_NAME_MIN_LEN or len(stripped) > COMPANY_LINE_MAX_LEN:
        return False
    lower = normalize_text(stripped)
    if lower in SECTION_LABELS:
        return False
    if any(word in lower for word in AMOUNT_IN_WORDS):
        return False
    squeezed = lower.replace(" ", "")
    if any(word in squeezed for word in INVOICE_CAPTIONS):
        return False
    if re.search(r"\d{7,}", lower) or _DOCUMENT_REF_RE.search(stripped):
        return False
    return has_legal_form(stripped)


def clean_company_name(line):
    if not line:
        return None
    cleaned = collapse_whitespace(line)
    folded = fold_diacritics(cleaned)
    prefix = _LABEL_PREFIX_RE.match(folded)
    if prefix:
        cleaned = cleaned[prefix.end():]
        folded = folded[prefix.end():]
    trailing = _TRAILING_LABEL_RE.search(folded)
    if trailing:
        cleaned = cleaned[:trailing.start()]
    cleaned = cleaned.strip(" ,;:-")
    if not is_company_line(cleaned):
        return None
    return cleaned


def extract_value(kind, segment, line, owner=None):
    kind = FieldKind(kind)
    if kind == FieldKind.DATE:
        return extract_date(segment)
    if kind in (FieldKind.AMOUNT_EXCL_TAX, FieldKind.TAX_AMOUNT):
        return extract_amount(segment)
    if kind == FieldKind.TAX_ID:
        return extract_tax_id(segment, exclude=owner.tax_id if owner else None)
    if kind == FieldKind.REGISTRATION_ID:
        return extract_registration_id(segment, exclude=owner.registration_id if owner else None)
    if kind == FieldKind.DOCUMENT_ID:
        return extract_document_id(segment, line)
    if kind == FieldKind.COUNTERPARTY_NAME:
        # names are printed around their legal form, so read the whole line
        return clean_company_name(line)
    return None


def _key_value(kind, line, start, end, seg_end):
    if not _SEPARATOR_AFTER_LABEL_RE.match(line[end:seg_end]):
        return None
    value = take_key_value(line[start:seg_end])
    if value is None:
        return None
    value = value.strip(" ,;")
    if kind == FieldKind.COUNTERPARTY_NAME and not re.search(r"[^\W\d_]", value):
        return None
    return value or None


def is_owner_value(kind, value, owner):
    if owner is None or not value:
        return False
    if kind == FieldKind.TAX_ID and owner.tax_id:
        return normalize_key(value) == normalize_key(owner.tax_id)
    if kind == FieldKind.REGISTRATION_ID and owner.registration_id:
        return normalize_key(value) == normalize_key(owner.registration_id)
    if kind == FieldKind.COUNTERPARTY_NAME and owner.name:
        return is_same_company_name(value, owner.name)
    return False


def extract_fields(lines, owner=None):
    result = ParsedFieldSet()
    lines = [line for line in (lines or []) if line is not None]
    for idx, line in enumerate(lines):
        if not line.strip():
            continue
        labels = find_labels(line)
        contact = is_contact_line(line)
        for pos, (start, end, kind) in enumerate(labels):
            if kind is None or result.has(kind):
                continue
            if contact and kind in _CONTACT_SENSITIVE:
                continue
            last = pos + 1 == len(labels)
            seg_end = len(line) if last else labels[pos + 1][0]

            value = extract_value(kind, line[end:seg_end], line, owner)
            if value is None:
                value = _key_value(kind, line, start, end, seg_end)
            if value is None and last and kind in PATTERN_FIELDS and idx + 1 < len(lines):
                next_line = lines[idx + 1]
                value = extract_value(kind, next_line, next_line, owner)

            if value is None or not value.strip():
                continue
            if is_owner_value(kind, value, owner):
                continue
            result.set(kind, value.strip())

    apply_derived_fields(result, "\n".join(lines))
    return result
