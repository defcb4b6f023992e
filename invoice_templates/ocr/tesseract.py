import logging
from pathlib import Path

import pytesseract
from PIL import Image

from invoice_templates.config import OCR_LANGS, TESSERACT_CMD
from invoice_templates.models import Page, Rect, TextFragment

logger = logging.getLogger(__name__)


def _configure_tesseract():
    if TESSERACT_CMD and Path(TESSERACT_CMD).exists():
        pytesseract.pytesseract.tesseract_cmd = str(TESSERACT_CMD)


def _line_tokens(data):
    line_buckets = {}
    n = len(data.get("text", []))
    for i in range(n):
        text = (data["text"][i] or "").strip()
        if not text:
            continue
        left = int(data["left"][i])
        top = int(data["top"][i])
        token = {
            "text": text,
            "x1": left,
            "y1": top,
            "x2": left + int(data["width"][i]),
            "y2": top + int(data["height"][i]),
        }
        line_key = (
            int(data["block_num"][i]),
            int(data["par_num"][i]),
            int(data["line_num"][i]),
        )
        line_buckets.setdefault(line_key, []).append(token)
    return line_buckets


def fragments_from_tesseract_data(data):
    fragments = []
    for _, items in sorted(_line_tokens(data).items()):
        items = sorted(items, key=lambda t: t["x1"])
        box = Rect(
            float(min(t["x1"] for t in items)),
            float(min(t["y1"] for t in items)),
            float(max(t["x2"] for t in items)),
            float(max(t["y2"] for t in items)),
        )
        fragments.append(TextFragment(" ".join(t["text"] for t in items), box))
    return sorted(fragments, key=lambda f: (f.box.y1, f.box.x1))


def ocr_page(image_path, lang=OCR_LANGS):
    _configure_tesseract()
    with Image.open(image_path) as img:
        image_size = img.size
        data = pytesseract.image_to_data(
            img,
            lang=lang,
            output_type=pytesseract.Output.DICT,
        )
    fragments = fragments_from_tesseract_data(data)
    logger.info(f"OCR of {Path(image_path).name}: {len(fragments)} lines, size {image_size}")
    return Page(fragments, image_size)
