from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import List, Optional, Tuple

from invoice_templates.preprocess.normalize import normalize_key


@dataclass(frozen=True)
class Rect:
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self):
        return self.x2 - self.x1

    @property
    def height(self):
        return self.y2 - self.y1

    @property
    def center(self):
        return (self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2

    @property
    def diagonal(self):
        return math.hypot(self.width, self.height)

    @property
    def area(self):
        return max(0.0, self.width) * max(0.0, self.height)

    def as_list(self):
        return [self.x1, self.y1, self.x2, self.y2]

    def to_dict(self):
        return {"x1": self.x1, "y1": self.y1, "x2": self.x2, "y2": self.y2}

    @classmethod
    def from_dict(cls, data):
        return cls(
            float(data["x1"]), float(data["y1"]), float(data["x2"]), float(data["y2"])
        )


@dataclass(frozen=True)
class TextFragment:
    text: str
    box: Optional[Rect] = None


class FieldKind(str, Enum):
    DOCUMENT_ID = "document_id"
    DATE = "date"
    COUNTERPARTY_NAME = "counterparty_name"
    AMOUNT_EXCL_TAX = "amount_excl_tax"
    TAX_AMOUNT = "tax_amount"
    TAX_ID = "tax_id"
    REGISTRATION_ID = "registration_id"


FIELD_ORDER = list(FieldKind)
MONETARY_FIELDS = (FieldKind.AMOUNT_EXCL_TAX, FieldKind.TAX_AMOUNT)


@dataclass(frozen=True)
class FieldRegion:
    field: FieldKind
    box: Rect
    confidence: float
    sample_count: int = 1


@dataclass(frozen=True)
class Template:
    regions: Tuple[FieldRegion, ...] = ()

    def __post_init__(self):
        by_kind = {}
        for region in self.regions:
            by_kind[region.field] = region
        ordered = tuple(by_kind[kind] for kind in FIELD_ORDER if kind in by_kind)
        object.__setattr__(self, "regions", ordered)

    @property
    def is_empty(self):
        return not self.regions

    def get(self, kind):
        for region in self.regions:
            if region.field == kind:
                return region
        return None

    def with_region(self, region):
        kept = [r for r in self.regions if r.field != region.field]
        return Template(tuple(kept) + (region,))

    def by_confidence(self):
        return sorted(self.regions, key=lambda r: r.confidence, reverse=True)


@dataclass(frozen=True)
class OwnerIdentity:
    registration_id: Optional[str] = None
    tax_id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class CounterpartyCandidate:
    registration_id: Optional[str] = None
    tax_id: Optional[str] = None
    name: Optional[str] = None
    confidence: float = 0.0

    def keys(self):
        keys = []
        for raw in (self.registration_id, self.tax_id, self.name):
            key = normalize_key(raw)
            if key and key not in keys:
                keys.append(key)
        return keys


@dataclass
class ParsedFieldSet:
    document_id: Optional[str] = None
    date: Optional[str] = None
    counterparty_name: Optional[str] = None
    amount_excl_tax: Optional[str] = None
    tax_amount: Optional[str] = None
    tax_id: Optional[str] = None
    registration_id: Optional[str] = None
    tax_rate: Optional[str] = None
    tax_code: Optional[str] = None

    def get(self, kind):
        return getattr(self, FieldKind(kind).value)

    def set(self, kind, value):
        setattr(self, FieldKind(kind).value, value)

    def has(self, kind):
        value = self.get(kind)
        return value is not None and value.strip() != ""

    def filled(self):
        return [kind for kind in FIELD_ORDER if self.has(kind)]

    def as_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Page:
    fragments: List[TextFragment] = field(default_factory=list)
    image_size: Optional[Tuple[int, int]] = None

    @property
    def lines(self):
        return [f.text for f in self.fragments]
