import json
import logging
import threading
import weakref
from contextlib import ExitStack, contextmanager

from invoice_templates.io.store import TemplateStoreError
from invoice_templates.models import FieldKind, FieldRegion, Rect, Template
from invoice_templates.preprocess.normalize import normalize_key

logger = logging.getLogger(__name__)


def template_to_dict(template):
    return {
        "regions": [
            {
                "field": region.field.value,
                **region.box.to_dict(),
                "confidence": region.confidence,
                "sample_count": region.sample_count,
            }
            for region in template.regions
        ]
    }


def template_from_dict(data):
    if not isinstance(data, dict) or not isinstance(data.get("regions"), list):
        raise ValueError("template JSON must be an object with a 'regions' list")
    regions = []
    for item in data["regions"]:
        box = Rect.from_dict(item)
        confidence = float(item.get("confidence", 0.0))
        sample_count = int(item.get("sample_count", 1))
        if sample_count < 1:
            raise ValueError(f"sample_count must be >= 1, got {sample_count}")
        regions.append(
            FieldRegion(
                field=FieldKind(item["field"]),
                box=box,
                confidence=max(0.0, min(1.0, confidence)),
                sample_count=sample_count,
            )
        )
    return Template(tuple(regions))


def encode_template(template):
    return json.dumps(template_to_dict(template), indent=2).encode("utf-8")


def decode_template(payload):
    return template_from_dict(json.loads(payload.decode("utf-8")))


class TemplateStore:
    def __init__(self, backend):
        self.backend = backend
        # a key keeps its lock only while some learner holds or waits on it
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def get(self, key):
        key = normalize_key(key)
        if not key:
            return Template()
        try:
            payload = self.backend.get(key)
        except (TemplateStoreError, OSError) as e:
            logger.error(f"Template read failed for '{key}': {e}")
            return Template()
        if payload is None:
            return Template()
        try:
            return decode_template(payload)
        except (ValueError, KeyError, TypeError, UnicodeDecodeError) as e:
            logger.error(f"Stored template for '{key}' is corrupt, ignoring it. Error: {e}")
            return Template()

    def put(self, key, template):
        key = normalize_key(key)
        if not key:
            raise TemplateStoreError("template key is empty after normalization")
        try:
            self.backend.put(key, encode_template(template))
        except TemplateStoreError:
            raise
        except OSError as e:
            raise TemplateStoreError(f"Failed to write template '{key}': {e}") from e
        logger.info(f"Stored template '{key}' with {len(template.regions)} regions")

    def _lock_for(self, key):
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def locked(self, keys):
        normalized = sorted({normalize_key(k) for k in keys if normalize_key(k)})
        with ExitStack() as stack:
            for key in normalized:
                stack.enter_context(self._lock_for(key))
            yield normalized
