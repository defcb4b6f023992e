import re
import unicodedata
from datetime import date, datetime
from dateutil import parser as date_parser

from invoice_templates.config import DATE_MAX_YEAR, DATE_MIN_YEAR, LEGAL_FORMS


_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_QUOTES_RE = re.compile(r"[\"'“”„«»]+")
_CURRENCY_RE = re.compile(r"(?:eur|usd|gbp|€|\$|£)", re.IGNORECASE)
_AMOUNT_SHAPE_RE = re.compile(r"^\(?-?\d[\d\s.,']*\)?$")
_LEGAL_FORM_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(f).replace(r"\ ", r"\s*") for f in LEGAL_FORMS) + r")\b"
)

LT_MONTHS = {
    "sausio": 1,
    "vasario": 2,
    "kovo": 3,
    "balandzio": 4,
    "geguzes": 5,
    "birzelio": 6,
    "liepos": 7,
    "rugpjucio": 8,
    "rugsejo": 9,
    "spalio": 10,
    "lapkricio": 11,
    "gruodzio": 12,
}

_LT_DATE_RE = re.compile(
    r"(\d{4})\s*m\.?\s*(" + "|".join(LT_MONTHS) + r")\s*(?:men\.?\s*)?(\d{1,2})\s*d\.?",
    re.IGNORECASE,
)


def collapse_whitespace(text):
    return _WS_RE.sub(" ", text).strip()


def fold_diacritics(text):
    if text is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text):
    if text is None:
        return ""
    text = fold_diacritics(text).lower()
    text = _PUNCT_RE.sub(" ", text)
    text = collapse_whitespace(text)
    return text


def normalize_key(raw):
    if raw is None:
        return ""
    return _NON_ALNUM_RE.sub("", fold_diacritics(raw).lower())


def compact_text(text):
    if text is None:
        return ""
    return re.sub(r"[^a-z0-9.,]", "", fold_diacritics(text).lower())


def compact_identifier(text):
    if text is None:
        return ""
    return re.sub(r"[\s\-]", "", str(text)).upper()


def strip_legal_form(text):
    text = normalize_text(_QUOTES_RE.sub("", text or ""))
    text = _LEGAL_FORM_RE.sub(" ", text)
    return collapse_whitespace(text)


def has_legal_form(text):
    return bool(_LEGAL_FORM_RE.search(normalize_text(text)))


def take_key_value(line, separator=":"):
    if not line:
        return None
    idx = line.find(separator)
    if idx <= 0:
        return None
    value = line[idx + 1:].strip()
    return value or None


def is_amount_text(text):
    if text is None:
        return False
    stripped = _CURRENCY_RE.sub("", str(text)).strip()
    return bool(stripped) and _AMOUNT_SHAPE_RE.match(stripped) is not None


def parse_amount(value):
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if text == "":
        return None
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]
    text = text.replace(" ", "").replace(" ", "")
    text = re.sub(r"[^0-9,.\-]", "", text)
    if text in ("", "-", ".", ","):
        return None

    if text.startswith("-"):
        negative = True
        text = text[1:]

    if "," in text and "." in text:
        last_comma = text.rfind(",")
        last_dot = text.rfind(".")
        if last_comma > last_dot:
            text = text.replace(".", "")
            text = text.replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        if re.search(r",\d{1,2}$", text):
            text = text.replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "." in text:
        if text.count(".") > 1:
            head, _, tail = text.rpartition(".")
            text = head.replace(".", "") + ("." + tail if len(tail) <= 2 else tail)
        elif re.search(r"\.\d{3}$", text) and len(text.split(".")[0]) <= 3:
            text = text.replace(".", "")
    try:
        val = float(text)
        return -val if negative else val
    except ValueError:
        return None


def format_amount(value):
    if value is None:
        return None
    return f"{value:.2f}"


def parse_date(value):
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    text = str(value).strip()
    if text == "":
        return None

    lt_match = _LT_DATE_RE.search(fold_diacritics(text))
    if lt_match:
        year, month_name, day = lt_match.groups()
        try:
            return date(int(year), LT_MONTHS[month_name.lower()], int(day))
        except ValueError:
            return None

    if re.fullmatch(r"\d{8}", text):
        year = int(text[:4])
        if year >= DATE_MIN_YEAR:
            try:
                return datetime.strptime(text, "%Y%m%d").date()
            except ValueError:
                pass
        try:
            return datetime.strptime(text, "%d%m%Y").date()
        except ValueError:
            return None

    for fmt in (
        "%Y-%m-%d",
        "%Y/%m/%d",
        "%Y.%m.%d",
        "%d.%m.%Y",
        "%d/%m/%Y",
        "%d-%m-%Y",
        "%m/%d/%Y",
        "%d.%m.%y",
        "%d/%m/%y",
        "%d-%m-%y",
    ):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    for dayfirst in (True, False):
        try:
            parsed = date_parser.parse(
                text, dayfirst=dayfirst, yearfirst=True, fuzzy=True
            ).date()
        except (ValueError, TypeError, OverflowError):
            continue
        if DATE_MIN_YEAR <= parsed.year <= DATE_MAX_YEAR:
            return parsed
    return None
