import logging

from invoice_templates.config import (
    DATE_MAX_FUTURE_DAYS,
    DATE_MAX_PAST_DAYS,
    PADDING_CONFIDENCE_GAIN,
    REVERSE_CHARGE_TAX_CODE,
    TEMPLATE_BASE_PADDING,
)
from invoice_templates.extract.counterparty import recognize_counterparty
from invoice_templates.extract.lexical import extract_fields, extract_value, is_owner_value
from invoice_templates.match.geometry import (
    contains_point,
    denormalize_box,
    expand_box,
    intersects,
    reading_order,
)
from invoice_templates.models import FIELD_ORDER, MONETARY_FIELDS, FieldKind, Page, ParsedFieldSet
from invoice_templates.preprocess.normalize import (
    collapse_whitespace,
    format_amount,
    parse_amount,
    take_key_value,
)
from invoice_templates.rules.tax import apply_derived_fields, is_reverse_charge
from invoice_templates.rules.validation import validate_field
from invoice_templates.scoring.confidence import placement_score, search_padding

logger = logging.getLogger(__name__)

_FREE_TEXT_FIELDS = (FieldKind.DOCUMENT_ID, FieldKind.COUNTERPARTY_NAME)


def clean_fragment_value(kind, text, owner=None):
    if not text or not text.strip():
        return None
    value = extract_value(kind, text, text, owner)
    if value is None and kind in _FREE_TEXT_FIELDS:
        value = take_key_value(text) or collapse_whitespace(text)
    return value.strip() if value else None


def merge_field_sets(field_sets, text=None):
    """Combine the per-page results of one document.

    Monetary fields are summed, every other field keeps the first value seen,
    and the tax rate / code is recomputed from the totals.
    """
    field_sets = list(field_sets)
    merged = ParsedFieldSet()
    for kind in FIELD_ORDER:
        if kind in MONETARY_FIELDS:
            amounts = [parse_amount(fs.get(kind)) for fs in field_sets if fs.has(kind)]
            amounts = [a for a in amounts if a is not None]
            if amounts:
                merged.set(kind, format_amount(sum(amounts)))
            continue
        for fs in field_sets:
            if fs.has(kind):
                merged.set(kind, fs.get(kind))
                break
    reverse_charge = is_reverse_charge(text) or any(
        fs.tax_code == REVERSE_CHARGE_TAX_CODE for fs in field_sets
    )
    return apply_derived_fields(merged, reverse_charge=reverse_charge)


class TemplateAwareParser:
    def __init__(
        self,
        store,
        today=None,
        padding=TEMPLATE_BASE_PADDING,
        padding_gain=PADDING_CONFIDENCE_GAIN,
        max_future_days=DATE_MAX_FUTURE_DAYS,
        max_past_days=DATE_MAX_PAST_DAYS,
    ):
        self.store = store
        self.today = today
        self.padding = padding
        self.padding_gain = padding_gain
        self.max_future_days = max_future_days
        self.max_past_days = max_past_days

    def is_valid(self, kind, value):
        return validate_field(
            kind,
            value,
            today=self.today,
            max_future_days=self.max_future_days,
            max_past_days=self.max_past_days,
        )

    def find_template(self, candidate):
        for key in candidate.keys():
            template = self.store.get(key)
            if not template.is_empty:
                return key, template
        return None, None

    def parse(self, fragments, owner=None, image_size=None):
        fragments = list(fragments or [])
        lines = [f.text for f in fragments]
        lexical = extract_fields(lines, owner)
        if not image_size or not all(image_size):
            logger.debug("Image size unknown, using keyword extraction")
            return lexical

        candidate = recognize_counterparty(lines, owner)
        key, template = self.find_template(candidate)
        if template is None:
            logger.debug(f"No template for counterparty keys {candidate.keys()}")
            return lexical

        logger.info(f"Parsing with template '{key}' ({len(template.regions)} regions)")
        result = self.parse_with_template(fragments, template, image_size, lexical, owner)
        apply_derived_fields(result, "\n".join(lines))
        return result

    def parse_with_template(self, fragments, template, image_size, lexical, owner=None):
        result = ParsedFieldSet()
        claimed = set()
        for region in template.by_confidence():
            kind = region.field
            value, indices = self.read_region(fragments, region, image_size, claimed, owner)
            if value is None:
                value = lexical.get(kind)
                logger.debug(f"{kind.value}: template region gave nothing usable, keyword value '{value}'")
            else:
                claimed.update(indices)
            result.set(kind, value)

        for kind in FIELD_ORDER:
            if template.get(kind) is None:
                result.set(kind, lexical.get(kind))
        return result

    def read_region(self, fragments, region, image_size, claimed, owner=None):
        box = denormalize_box(region.box, image_size)
        pad_x, pad_y = search_padding(region.confidence, image_size, self.padding, self.padding_gain)
        search = expand_box(box, pad_x, pad_y, bounds=image_size)

        ranked = []
        for index, fragment in enumerate(fragments):
            if index in claimed or fragment.box is None:
                continue
            if intersects(fragment.box, search):
                ranked.append((placement_score(fragment.box, box), index))
        if not ranked:
            return None, None

        # best placement first, earlier fragment on ties
        ranked.sort(key=lambda item: (-item[0], item[1]))
        best = ranked[0][1]
        attempts = [[best]]
        group = self.fragments_inside(fragments, box, claimed, best)
        if len(group) > 1:
            attempts.insert(0, group)

        for indices in attempts:
            text = " ".join(fragments[i].text for i in indices)
            value = clean_fragment_value(region.field, text, owner)
            if value is None or not self.is_valid(region.field, value):
                continue
            if is_owner_value(region.field, value, owner):
                continue
            return value, indices
        return None, None

    def fragments_inside(self, fragments, box, claimed, best):
        """Unclaimed fragments centred inside the learned box, in reading order.

        A region learned from several words spans all of them, so they are
        read back together.
        """
        if not contains_point(box, fragments[best].box.center):
            return [best]
        inside = [
            i for i, f in enumerate(fragments)
            if i not in claimed and f.box is not None and contains_point(box, f.box.center)
        ]
        order = reading_order(fragments[i].box for i in inside)
        return [inside[k] for k in order]

    def parse_document(self, pages, owner=None):
        pages = [p if isinstance(p, Page) else Page(list(p)) for p in (pages or [])]
        results = [self.parse(page.fragments, owner, page.image_size) for page in pages]
        text = "\n".join(line for page in pages for line in page.lines)
        return merge_field_sets(results, text)
