import json
from pathlib import Path

from invoice_templates.models import OwnerIdentity, Page, ParsedFieldSet, Rect, TextFragment


def load_json(path):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e


def load_batch(path):
    batch = load_json(path)
    _validate_min_schema(batch)
    owner = owner_from_dict(batch.get("owner"))
    documents = [document_from_dict(doc) for doc in batch["documents"]]
    return owner, documents


def _validate_min_schema(batch):
    if not isinstance(batch, dict) or "documents" not in batch:
        raise ValueError("batch JSON missing 'documents'")
    for doc in batch["documents"]:
        if not isinstance(doc.get("pages"), list):
            raise ValueError(f"document '{doc.get('document_id')}' missing 'pages'")


def owner_from_dict(data):
    if not data:
        return None
    return OwnerIdentity(
        registration_id=data.get("registration_id"),
        tax_id=data.get("tax_id"),
        name=data.get("name"),
    )


def fragment_from_dict(data):
    box = None
    if all(k in data for k in ("x1", "y1", "x2", "y2")):
        box = Rect.from_dict(data)
    return TextFragment(data.get("text", ""), box)


def page_from_dict(data):
    size = data.get("image_size")
    return Page(
        [fragment_from_dict(f) for f in data.get("fragments", [])],
        tuple(size) if size else None,
    )


def document_from_dict(data):
    confirmed = data.get("confirmed")
    return {
        "document_id": data.get("document_id"),
        "pages": [page_from_dict(p) for p in data["pages"]],
        "confirmed": ParsedFieldSet.from_dict(confirmed) if confirmed else None,
    }
