from rapidfuzz import fuzz

from invoice_templates.config import (
    QUALITY_COMPACT,
    QUALITY_CONTAINS_BASE,
    QUALITY_CONTAINS_SPAN,
    QUALITY_EXACT,
    QUALITY_NUMERIC,
    OWN_NAME_FUZZY_MATCH,
    OWN_NAME_MIN_CORE_LEN,
)
from invoice_templates.preprocess.normalize import (
    collapse_whitespace,
    compact_text,
    fold_diacritics,
    is_amount_text,
    normalize_text,
    parse_amount,
    strip_legal_form,
)


def fuzzy_score(a, b, normalizer=normalize_text):
    if a is None or b is None:
        return 0.0, "none"
    a_norm = normalizer(a)
    b_norm = normalizer(b)
    if a_norm == "" and b_norm == "":
        return 1.0, "empty"
    token_score = fuzz.token_set_ratio(a_norm, b_norm) / 100.0
    edit_score = fuzz.ratio(a_norm, b_norm) / 100.0
    if token_score >= edit_score:
        return token_score, "token_set"
    return edit_score, "edit_ratio"


def _plain(text):
    return collapse_whitespace(fold_diacritics(text).lower())


def match_quality(confirmed, candidate):
    if not confirmed or not candidate:
        return 0.0
    a = _plain(confirmed)
    b = _plain(candidate)
    if not a or not b:
        return 0.0
    if a == b:
        return QUALITY_EXACT

    scores = [fuzz.ratio(a, b) / 100.0]

    a_compact = compact_text(a)
    b_compact = compact_text(b)
    if a_compact and a_compact == b_compact:
        scores.append(QUALITY_COMPACT)

    if is_amount_text(confirmed) and is_amount_text(candidate):
        a_amt = parse_amount(confirmed)
        b_amt = parse_amount(candidate)
        if a_amt is not None and b_amt is not None and abs(a_amt - b_amt) < 0.01:
            scores.append(QUALITY_NUMERIC)

    shorter, longer = sorted((a, b), key=len)
    if shorter in longer:
        scores.append(QUALITY_CONTAINS_BASE + QUALITY_CONTAINS_SPAN * len(shorter) / len(longer))

    return max(0.0, min(1.0, max(scores)))


def is_same_company_name(a, b, threshold=OWN_NAME_FUZZY_MATCH):
    core_a = strip_legal_form(a)
    core_b = strip_legal_form(b)
    if not core_a or not core_b:
        return False
    if core_a == core_b:
        return True
    if min(len(core_a), len(core_b)) < OWN_NAME_MIN_CORE_LEN:
        return False
    score, _ = fuzzy_score(core_a, core_b)
    return score >= threshold
