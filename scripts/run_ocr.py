from pathlib import Path
import json
import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from invoice_templates.config import OCR_LANGS
from invoice_templates.logger_config import setup_logging
from invoice_templates.ocr.tesseract import ocr_page

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".tif", ".tiff")


def _page_to_dict(page):
    return {
        "image_size": list(page.image_size),
        "fragments": [
            {"text": f.text, **(f.box.to_dict() if f.box else {})} for f in page.fragments
        ],
    }


def main(images_dir="data/images", out_path="data/batch.json", lang=OCR_LANGS):
    """OCR every sub-directory of ``images_dir`` as one document, one image per page."""
    images_dir = Path(images_dir)
    documents = []
    for doc_dir in sorted(p for p in images_dir.iterdir() if p.is_dir()):
        image_paths = sorted(p for p in doc_dir.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
        if not image_paths:
            continue
        pages = [_page_to_dict(ocr_page(path, lang)) for path in image_paths]
        documents.append({"document_id": doc_dir.name, "pages": pages})

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps({"documents": documents}, ensure_ascii=False, indent=2), encoding="utf-8"
    )
    print(f"[done] {out_path}")


if __name__ == "__main__":
    setup_logging()
    main(*sys.argv[1:3])
