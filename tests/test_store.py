import gc
import json

import pytest

from invoice_templates.io.store import DirectoryBackend, MemoryBackend, TemplateStoreError
from invoice_templates.io.templates import TemplateStore, template_from_dict, template_to_dict
from invoice_templates.models import FieldKind, FieldRegion, Rect, Template


def make_template():
    return Template(
        (
            FieldRegion(FieldKind.TAX_ID, Rect(0.1, 0.2, 0.3, 0.23), 0.95, 3),
            FieldRegion(FieldKind.COUNTERPARTY_NAME, Rect(0.1, 0.1, 0.4, 0.13), 1.0, 1),
        )
    )


class BrokenBackend(MemoryBackend):
    def get(self, key):
        raise TemplateStoreError("backend offline")

    def put(self, key, payload):
        raise OSError("disk full")


class UnreachableBackend(MemoryBackend):
    def get(self, key):
        raise OSError("share not mounted")


def test_round_trip_on_disk(tmp_path):
    store = TemplateStore(DirectoryBackend(tmp_path))
    template = make_template()
    store.put("LT 300581697", template)
    assert (tmp_path / "lt300581697.json").exists()
    assert store.get("lt300581697") == template
    assert store.get("LT-300-581-697") == template


def test_regions_are_kept_in_field_order():
    template = make_template()
    assert [r.field for r in template.regions] == [FieldKind.COUNTERPARTY_NAME, FieldKind.TAX_ID]
    assert template == Template(tuple(reversed(template.regions)))


def test_serialized_format():
    data = template_to_dict(make_template())
    assert data["regions"][1] == {
        "field": "tax_id",
        "x1": 0.1,
        "y1": 0.2,
        "x2": 0.3,
        "y2": 0.23,
        "confidence": 0.95,
        "sample_count": 3,
    }
    assert template_from_dict(data) == make_template()


def test_missing_key_is_empty():
    store = TemplateStore(MemoryBackend())
    assert store.get("unknown").is_empty
    assert store.get("").is_empty


def test_corrupt_file_is_empty(tmp_path):
    (tmp_path / "lt300581697.json").write_text("{not json", encoding="utf-8")
    store = TemplateStore(DirectoryBackend(tmp_path))
    assert store.get("LT300581697").is_empty


def test_unknown_field_is_treated_as_corrupt():
    payload = json.dumps({"regions": [{"field": "iban", "x1": 0, "y1": 0, "x2": 1, "y2": 1}]})
    store = TemplateStore(MemoryBackend({"k": payload.encode("utf-8")}))
    assert store.get("k").is_empty


def test_backend_read_failure_is_empty():
    store = TemplateStore(BrokenBackend())
    assert store.get("k").is_empty
    assert TemplateStore(UnreachableBackend()).get("k").is_empty


def test_write_failures_raise_store_error(tmp_path):
    with pytest.raises(TemplateStoreError):
        TemplateStore(BrokenBackend()).put("k", make_template())

    blocked = tmp_path / "blocked"
    blocked.write_text("not a directory", encoding="utf-8")
    with pytest.raises(TemplateStoreError):
        TemplateStore(DirectoryBackend(blocked)).put("k", make_template())


def test_locked_holds_every_key_lock():
    store = TemplateStore(MemoryBackend())
    with store.locked(["B", "a", "b"]) as keys:
        assert keys == ["a", "b"]
        assert store._lock_for("a").locked()
        assert store._lock_for("b").locked()
    assert not store._lock_for("a").locked()
    assert not store._lock_for("b").locked()


def test_key_locks_are_dropped_once_released():
    store = TemplateStore(MemoryBackend())
    with store.locked(["LT300581697", "300581697"]):
        assert len(store._locks) == 2
    gc.collect()
    assert len(store._locks) == 0
