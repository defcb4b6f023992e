import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np

from invoice_templates.config import (
    DATE_MAX_FUTURE_DAYS,
    DATE_MAX_PAST_DAYS,
    MATCH_QUALITY_THRESHOLD,
    OUTLIER_DISTANCE_THRESHOLD,
    QUALITY_COMPACT,
    QUALITY_NUMERIC,
)
from invoice_templates.extract.lexical import extract_value
from invoice_templates.io.store import TemplateStoreError
from invoice_templates.match.fuzzy import match_quality
from invoice_templates.match.geometry import (
    bbox_union,
    is_near,
    normalize_box,
    reading_order,
    region_distance,
)
from invoice_templates.models import (
    FIELD_ORDER,
    MONETARY_FIELDS,
    FieldKind,
    FieldRegion,
    Rect,
    Template,
)
from invoice_templates.preprocess.normalize import (
    compact_text,
    normalize_key,
    parse_amount,
    parse_date,
)
from invoice_templates.rules.validation import validate_field

logger = logging.getLogger(__name__)


@dataclass
class LearnResult:
    template: Template = field(default_factory=Template)
    learned: List[FieldKind] = field(default_factory=list)
    rejected: List[FieldKind] = field(default_factory=list)
    skipped: List[FieldKind] = field(default_factory=list)
    failed_keys: List[str] = field(default_factory=list)

    @property
    def ok(self):
        return not self.failed_keys


def same_value(kind, a, b):
    if kind == FieldKind.DATE:
        parsed = parse_date(a)
        return parsed is not None and parsed == parse_date(b)
    if kind in MONETARY_FIELDS:
        a_amt, b_amt = parse_amount(a), parse_amount(b)
        return a_amt is not None and b_amt is not None and abs(a_amt - b_amt) < 0.01
    return bool(normalize_key(a)) and normalize_key(a) == normalize_key(b)


def fragment_quality(kind, value, text):
    """How well one fragment's text carries the confirmed value.

    Whole OCR lines carry labels and locale formatting around the value
    ("Suma be PVM: 100,00 EUR"), so the value read out of the line is
    compared as well as the raw text.
    """
    quality = match_quality(value, text)
    extracted = extract_value(kind, text, text)
    if extracted and same_value(kind, value, extracted):
        canonical = QUALITY_NUMERIC if kind in MONETARY_FIELDS else QUALITY_COMPACT
        quality = max(quality, canonical)
    return quality


def best_fragment(kind, fragments, value):
    best, best_quality = None, 0.0
    for fragment in fragments:
        if fragment.box is None:
            continue
        quality = fragment_quality(kind, value, fragment.text)
        if quality > best_quality:
            best, best_quality = fragment, quality
    return best, best_quality


def best_fragment_group(fragments, value):
    """Neighbouring fragments that together spell out the value.

    Word-level OCR splits a name into "UAB", "Tavo", "Finansininkas"; only
    fragments whose text occurs inside the value take part, and a group only
    grows with fragments near the ones already in it.
    """
    target = compact_text(value)
    parts = [
        f for f in fragments
        if f.box is not None and len(compact_text(f.text)) >= 2 and compact_text(f.text) in target
    ]
    if len(parts) < 2:
        return None, 0.0
    parts = [parts[i] for i in reading_order([f.box for f in parts])]

    best_box, best_quality = None, 0.0
    for start, first in enumerate(parts):
        group = [first]
        for fragment in parts[start + 1:]:
            if not is_near(bbox_union(f.box for f in group), fragment.box):
                continue
            group.append(fragment)
            quality = match_quality(value, " ".join(f.text for f in group))
            if quality > best_quality:
                best_box, best_quality = bbox_union(f.box for f in group), quality
    return best_box, best_quality


def best_match(kind, fragments, value):
    fragment, quality = best_fragment(kind, fragments, value)
    box = fragment.box if fragment is not None else None
    group_box, group_quality = best_fragment_group(fragments, value)
    if group_quality > quality:
        return group_box, group_quality
    return box, quality


def merge_region(stored, candidate):
    weights = [stored.sample_count, 1]
    box = np.average(
        np.array([stored.box.as_list(), candidate.box.as_list()], dtype=float),
        axis=0,
        weights=weights,
    )
    confidence = float(np.average([stored.confidence, candidate.confidence], weights=weights))
    return FieldRegion(
        field=stored.field,
        box=Rect(*(float(v) for v in box)),
        confidence=max(stored.confidence, min(1.0, confidence)),
        sample_count=stored.sample_count + 1,
    )


def base_template(templates):
    """Union of the templates stored under all aliases of one counterparty.

    Per field the region with the most samples wins; on a tie the earlier key
    wins.
    """
    chosen = {}
    for template in templates:
        for region in template.regions:
            current = chosen.get(region.field)
            if current is None or region.sample_count > current.sample_count:
                chosen[region.field] = region
    return Template(tuple(chosen.values()))


class TemplateLearner:
    def __init__(
        self,
        store,
        quality_threshold=MATCH_QUALITY_THRESHOLD,
        outlier_threshold=OUTLIER_DISTANCE_THRESHOLD,
        today=None,
        max_future_days=DATE_MAX_FUTURE_DAYS,
        max_past_days=DATE_MAX_PAST_DAYS,
    ):
        self.store = store
        self.quality_threshold = quality_threshold
        self.outlier_threshold = outlier_threshold
        self.today = today
        self.max_future_days = max_future_days
        self.max_past_days = max_past_days

    def candidate_regions(self, fragments, confirmed, image_size, result):
        candidates = []
        for kind in FIELD_ORDER:
            if not confirmed.has(kind):
                continue
            value = confirmed.get(kind).strip()
            if not validate_field(
                kind,
                value,
                today=self.today,
                max_future_days=self.max_future_days,
                max_past_days=self.max_past_days,
            ):
                logger.info(f"Not learning {kind.value}: confirmed value '{value}' is invalid")
                result.skipped.append(kind)
                continue
            box, quality = best_match(kind, fragments, value)
            if box is None or quality < self.quality_threshold:
                logger.info(
                    f"Not learning {kind.value}: best match quality {quality:.2f} "
                    f"below {self.quality_threshold:.2f}"
                )
                result.skipped.append(kind)
                continue
            try:
                box = normalize_box(box, image_size)
            except ValueError as e:
                logger.warning(f"Not learning {kind.value}: {e}")
                result.skipped.append(kind)
                continue
            candidates.append(FieldRegion(field=kind, box=box, confidence=quality))
        return candidates

    def merge(self, template, candidate, result):
        stored = template.get(candidate.field)
        if stored is None:
            result.learned.append(candidate.field)
            return template.with_region(candidate)
        distance = region_distance(stored.box, candidate.box)
        if distance > self.outlier_threshold:
            logger.warning(
                f"Rejected outlier for {candidate.field.value}: distance {distance:.3f} "
                f"exceeds {self.outlier_threshold:.3f}"
            )
            result.rejected.append(candidate.field)
            return template
        result.learned.append(candidate.field)
        return template.with_region(merge_region(stored, candidate))

    def learn(self, fragments, confirmed, keys, image_size=None):
        result = LearnResult()
        keys = list(dict.fromkeys(normalize_key(k) for k in (keys or []) if normalize_key(k)))
        if not keys:
            logger.info("No counterparty keys given, nothing to learn")
            return result
        if not image_size or not all(image_size):
            logger.info("Image size unknown, nothing to learn")
            return result

        candidates = self.candidate_regions(list(fragments or []), confirmed, image_size, result)

        with self.store.locked(keys):
            template = base_template(self.store.get(key) for key in keys)
            for candidate in candidates:
                template = self.merge(template, candidate, result)
            result.template = template
            if template.is_empty:
                return result
            for key in keys:
                try:
                    self.store.put(key, template)
                except TemplateStoreError as e:
                    logger.error(f"Failed to store template under '{key}': {e}")
                    result.failed_keys.append(key)

        logger.info(
            f"Learned {[k.value for k in result.learned]} for {keys}; "
            f"rejected {[k.value for k in result.rejected]}"
        )
        return result
