from invoice_templates.config import (
    DEFAULT_TAX_CODE,
    REVERSE_CHARGE_MARKERS,
    REVERSE_CHARGE_TAX_CODE,
    STANDARD_TAX_RATES,
    TAX_CODE_THRESHOLDS,
)
from invoice_templates.preprocess.normalize import format_amount, normalize_text, parse_amount


def tax_rate_for(amount_excl_tax, tax_amount, rates=STANDARD_TAX_RATES):
    amount = parse_amount(amount_excl_tax)
    tax = parse_amount(tax_amount)
    if amount is None or tax is None or amount <= 0 or tax < 0:
        return None
    raw = tax / amount * 100.0
    return min(rates, key=lambda rate: abs(rate - raw))


def is_reverse_charge(text):
    if not text:
        return False
    folded = normalize_text(text)
    return any(normalize_text(marker) in folded for marker in REVERSE_CHARGE_MARKERS)


def tax_code_for(rate, reverse_charge=False):
    if reverse_charge:
        return REVERSE_CHARGE_TAX_CODE
    if rate is None:
        return DEFAULT_TAX_CODE
    for threshold, code in TAX_CODE_THRESHOLDS:
        if rate >= threshold:
            return code
    return DEFAULT_TAX_CODE


def apply_derived_fields(field_set, text=None, reverse_charge=None):
    if reverse_charge is None:
        reverse_charge = is_reverse_charge(text)
    rate = tax_rate_for(field_set.amount_excl_tax, field_set.tax_amount)
    field_set.tax_rate = format_amount(rate) if rate is not None else None
    if rate is None and not reverse_charge:
        field_set.tax_code = None
    else:
        field_set.tax_code = tax_code_for(rate, reverse_charge)
    return field_set
