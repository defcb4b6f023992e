import logging
import re

from invoice_templates.extract.keywords import (
    INVOICE_NUMBER_PREFIX_RE,
    REGISTRATION_CONTEXT,
    REGISTRATION_ID_RE,
    TAX_ID_RE,
)
from invoice_templates.extract.lexical import clean_company_name, fold_line, is_contact_line
from invoice_templates.match.fuzzy import is_same_company_name
from invoice_templates.models import CounterpartyCandidate
from invoice_templates.preprocess.normalize import compact_identifier, normalize_key

logger = logging.getLogger(__name__)

_RECOGNIZED_PARTS = 3


def _has_registration_label(line):
    folded = fold_line(line)
    return any(word in folded for word in REGISTRATION_CONTEXT)


def _looks_like_date(digits):
    if len(digits) != 8:
        return False
    year, month, day = int(digits[:4]), int(digits[4:6]), int(digits[6:])
    if 1900 <= year <= 2100 and 1 <= month <= 12 and 1 <= day <= 31:
        return True
    day, month, year = int(digits[:2]), int(digits[2:4]), int(digits[4:])
    return 1900 <= year <= 2100 and 1 <= month <= 12 and 1 <= day <= 31


def find_counterparty_name(lines, owner=None):
    for line in lines:
        name = clean_company_name(line)
        if not name:
            continue
        if owner is not None and owner.name and is_same_company_name(name, owner.name):
            logger.debug(f"Skipping own company name: {name}")
            continue
        return name
    return None


def find_tax_id(lines, owner=None):
    owner_key = normalize_key(owner.tax_id) if owner is not None else ""
    for line in lines:
        if is_contact_line(line):
            continue
        for m in TAX_ID_RE.finditer(line.upper()):
            value = compact_identifier(m.group(1))
            if owner_key and normalize_key(value) == owner_key:
                continue
            return value
    return None


def _registration_ids_in(line, tax_id_digits, owner_id, labelled=False):
    for m in REGISTRATION_ID_RE.finditer(line):
        value = m.group(1)
        before = line[:m.start()]
        if INVOICE_NUMBER_PREFIX_RE.search(before):
            continue
        if re.search(r"(?<![A-Za-z])[A-Z]{2}\s$", before):
            # spaced tax id such as "LT 300581697"
            continue
        if value == owner_id or (value == tax_id_digits and not labelled):
            continue
        if _looks_like_date(value):
            continue
        yield value


def find_registration_id(lines, tax_id=None, owner=None):
    owner_id = (owner.registration_id or "").strip() if owner is not None else ""
    tax_id_digits = "".join(ch for ch in (tax_id or "") if ch.isdigit())
    candidates = [line for line in lines if not is_contact_line(line)]
    labelled = [line for line in candidates if _has_registration_label(line)]
    for line in labelled:
        for value in _registration_ids_in(line, tax_id_digits, owner_id, labelled=True):
            return value
    for line in candidates:
        for value in _registration_ids_in(line, tax_id_digits, owner_id):
            return value
    return None


def recognize_counterparty(lines, owner=None):
    lines = [line for line in (lines or []) if line and line.strip()]
    name = find_counterparty_name(lines, owner)
    tax_id = find_tax_id(lines, owner)
    registration_id = find_registration_id(lines, tax_id, owner)
    found = sum(1 for value in (name, tax_id, registration_id) if value)
    candidate = CounterpartyCandidate(
        registration_id=registration_id,
        tax_id=tax_id,
        name=name,
        confidence=found / _RECOGNIZED_PARTS,
    )
    logger.debug(f"Recognized counterparty {candidate}")
    return candidate
