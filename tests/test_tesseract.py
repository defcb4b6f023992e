from PIL import Image

from invoice_templates.models import Rect
from invoice_templates.ocr import tesseract


def make_tess_data():
    return {
        "text": ["", "LT300581697", "UAB", "Tavo", "  "],
        "left": [0, 10, 10, 60, 0],
        "top": [0, 60, 20, 22, 0],
        "width": [0, 120, 40, 50, 0],
        "height": [0, 15, 15, 15, 0],
        "block_num": [0, 1, 1, 1, 1],
        "par_num": [0, 1, 1, 1, 1],
        "line_num": [0, 2, 1, 1, 3],
        "conf": ["-1", "90", "96", "95", "-1"],
    }


def test_tokens_are_grouped_into_lines():
    fragments = tesseract.fragments_from_tesseract_data(make_tess_data())
    assert [f.text for f in fragments] == ["UAB Tavo", "LT300581697"]
    assert fragments[0].box == Rect(10, 20, 110, 37)
    assert fragments[1].box == Rect(10, 60, 130, 75)


def test_empty_data():
    assert tesseract.fragments_from_tesseract_data({}) == []


def test_ocr_page(tmp_path, monkeypatch):
    image_path = tmp_path / "page.png"
    Image.new("RGB", (200, 100), "white").save(image_path)
    monkeypatch.setattr(
        tesseract.pytesseract, "image_to_data", lambda img, lang, output_type: make_tess_data()
    )

    page = tesseract.ocr_page(image_path, lang="eng")
    assert page.image_size == (200, 100)
    assert page.lines == ["UAB Tavo", "LT300581697"]
