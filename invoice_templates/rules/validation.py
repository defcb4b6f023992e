import re
from datetime import date, timedelta

from invoice_templates.config import (
    AMOUNT_MAX,
    COMPANY_NAME_MAX_LEN,
    DATE_MAX_FUTURE_DAYS,
    DATE_MAX_PAST_DAYS,
    DOCUMENT_ID_MAX_LEN,
)
from invoice_templates.models import FIELD_ORDER, FieldKind
from invoice_templates.preprocess.normalize import (
    compact_identifier,
    is_amount_text,
    parse_amount,
    parse_date,
)

TAX_ID_PATTERN = re.compile(r"^([A-Z]{2})?[0-9A-Z]{8,12}$")
REGISTRATION_ID_PATTERN = re.compile(r"^[0-9]{7,14}$")


def validate_field(
    kind,
    value,
    today=None,
    max_future_days=DATE_MAX_FUTURE_DAYS,
    max_past_days=DATE_MAX_PAST_DAYS,
):
    if value is None or str(value).strip() == "":
        return False
    kind = FieldKind(kind)
    value = str(value).strip()
    if kind == FieldKind.DATE:
        return _check_date(value, today, max_future_days, max_past_days)
    if kind in (FieldKind.AMOUNT_EXCL_TAX, FieldKind.TAX_AMOUNT):
        return _check_amount(value)
    if kind == FieldKind.TAX_ID:
        return TAX_ID_PATTERN.match(compact_identifier(value)) is not None
    if kind == FieldKind.REGISTRATION_ID:
        return REGISTRATION_ID_PATTERN.match(re.sub(r"\s", "", value)) is not None
    if kind == FieldKind.DOCUMENT_ID:
        return len(value) <= DOCUMENT_ID_MAX_LEN
    if kind == FieldKind.COUNTERPARTY_NAME:
        return len(value) <= COMPANY_NAME_MAX_LEN
    return False


def _check_date(value, today, max_future_days, max_past_days):
    parsed = parse_date(value)
    if parsed is None:
        return False
    today = today or date.today()
    earliest = today - timedelta(days=max_past_days)
    latest = today + timedelta(days=max_future_days)
    return earliest <= parsed <= latest


def _check_amount(value):
    if not is_amount_text(value):
        return False
    amount = parse_amount(value)
    if amount is None:
        return False
    return 0.0 <= amount <= AMOUNT_MAX


def invalid_fields(field_set, today=None):
    return [
        kind
        for kind in FIELD_ORDER
        if field_set.has(kind) and not validate_field(kind, field_set.get(kind), today=today)
    ]
