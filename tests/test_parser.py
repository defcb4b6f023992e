from datetime import date

from invoice_templates.extract.counterparty import recognize_counterparty
from invoice_templates.extract.lexical import extract_fields
from invoice_templates.io.store import MemoryBackend
from invoice_templates.io.templates import TemplateStore
from invoice_templates.learning.learner import TemplateLearner
from invoice_templates.models import FieldKind, FieldRegion, Page, ParsedFieldSet, Rect, TextFragment
from invoice_templates.parsing.parser import TemplateAwareParser, merge_field_sets

TODAY = date(2026, 1, 20)
IMAGE_SIZE = (1000, 1400)


def frag(text, x1, y1, x2, y2):
    return TextFragment(text, Rect(x1, y1, x2, y2))


def make_document(number="TF2026001", day="2026-01-13", amount="100,00 EUR", tax="21,00 EUR",
                  labelled=True):
    fragments = [
        frag("PVM SĄSKAITA FAKTŪRA", 350, 60, 650, 90),
        frag(f"Nr. {number}", 380, 100, 620, 125),
        frag(day, 450, 135, 550, 160),
        frag("UAB Tavo Finansininkas", 60, 250, 360, 275),
        frag("Įmonės kodas:", 60, 280, 200, 305),
        frag("304417364", 210, 280, 330, 305),
        frag("PVM kodas:", 60, 310, 200, 335),
        frag("LT100010371419", 210, 310, 380, 335),
        frag(amount, 780, 1100, 900, 1125),
        frag(tax, 780, 1130, 900, 1155),
    ]
    if labelled:
        fragments += [
            frag("Suma be PVM:", 600, 1100, 750, 1125),
            frag("PVM:", 600, 1130, 750, 1155),
        ]
    return fragments


def make_confirmed():
    return ParsedFieldSet(
        document_id="TF2026001",
        date="2026-01-13",
        counterparty_name="UAB Tavo Finansininkas",
        amount_excl_tax="100.00",
        tax_amount="21.00",
        tax_id="LT100010371419",
        registration_id="304417364",
    )


def make_trained_parser():
    store = TemplateStore(MemoryBackend())
    fragments = make_document()
    keys = recognize_counterparty([f.text for f in fragments]).keys()
    TemplateLearner(store, today=TODAY).learn(fragments, make_confirmed(), keys, IMAGE_SIZE)
    return store, TemplateAwareParser(store, today=TODAY)


def test_empty_store_matches_keyword_extraction():
    parser = TemplateAwareParser(TemplateStore(MemoryBackend()), today=TODAY)
    fragments = make_document()
    expected = extract_fields([f.text for f in fragments])
    assert parser.parse(fragments, image_size=IMAGE_SIZE) == expected
    assert parser.parse(fragments) == expected


def test_learned_template_covers_all_fields():
    store, _ = make_trained_parser()
    template = store.get("304417364")
    assert {r.field for r in template.regions} == set(FieldKind)
    assert store.get("lt100010371419") == template


def test_template_reads_unlabelled_values_by_position():
    _, parser = make_trained_parser()
    fragments = make_document(
        number="TF2026002",
        day="2026-01-18",
        amount="150,00 EUR",
        tax="31,50 EUR",
        labelled=False,
    )
    lexical = extract_fields([f.text for f in fragments])
    assert lexical.amount_excl_tax is None

    result = parser.parse(fragments, image_size=IMAGE_SIZE)
    assert result.document_id == "TF2026002"
    assert result.date == "2026-01-18"
    assert result.counterparty_name == "UAB Tavo Finansininkas"
    assert result.registration_id == "304417364"
    assert result.tax_id == "LT100010371419"
    assert result.amount_excl_tax == "150.00"
    assert result.tax_amount == "31.50"
    assert result.tax_rate == "21.00"
    assert result.tax_code == "PVM1"


def test_template_without_image_size_uses_keywords():
    _, parser = make_trained_parser()
    fragments = make_document(amount="150,00 EUR", labelled=False)
    assert parser.parse(fragments) == extract_fields([f.text for f in fragments])


def test_invalid_region_value_falls_back_to_keywords():
    _, parser = make_trained_parser()
    fragments = make_document(day="Apmokėti iki", labelled=False)
    fragments.append(frag("Data: 2026-01-19", 60, 400, 300, 425))
    result = parser.parse(fragments, image_size=IMAGE_SIZE)
    assert result.date == "2026-01-19"


def make_page(lines):
    return Page([TextFragment(line) for line in lines])


def test_two_pages_sum_amounts_and_recompute_tax():
    parser = TemplateAwareParser(TemplateStore(MemoryBackend()), today=TODAY)
    page_one = make_page(["Nr. TF2026003", "Data: 2026-01-13", "Suma be PVM: 100,00"])
    page_two = make_page(["Suma be PVM: 50,00", "PVM: 4,50"])

    second_alone = parser.parse(page_two.fragments)
    assert second_alone.tax_code == "PVM2"

    result = parser.parse_document([page_one, page_two])
    assert result.document_id == "TF2026003"
    assert result.date == "2026-01-13"
    assert result.amount_excl_tax == "150.00"
    assert result.tax_amount == "4.50"
    assert result.tax_rate == "5.00"
    assert result.tax_code == "PVM3"


def test_merge_keeps_first_values_and_reverse_charge():
    first = ParsedFieldSet(document_id="A-1", amount_excl_tax="10.00", tax_code="PVM25")
    second = ParsedFieldSet(document_id="A-2", date="2026-01-13", amount_excl_tax="5.00")
    merged = merge_field_sets([first, second])
    assert merged.document_id == "A-1"
    assert merged.date == "2026-01-13"
    assert merged.amount_excl_tax == "15.00"
    assert merged.tax_code == "PVM25"


def test_merge_of_nothing_is_empty():
    assert merge_field_sets([]) == ParsedFieldSet()


def split_name(fragments):
    words = [
        frag("UAB", 60, 250, 110, 275),
        frag("Tavo", 120, 250, 180, 275),
        frag("Finansininkas", 190, 250, 360, 275),
    ]
    return [f for f in fragments if f.text != "UAB Tavo Finansininkas"] + words


def test_name_split_into_words_is_read_back_whole():
    store = TemplateStore(MemoryBackend())
    fragments = split_name(make_document())
    keys = recognize_counterparty([f.text for f in fragments]).keys()
    TemplateLearner(store, today=TODAY).learn(fragments, make_confirmed(), keys, IMAGE_SIZE)
    parser = TemplateAwareParser(store, today=TODAY)

    result = parser.parse(
        split_name(make_document(number="TF2026002", labelled=False)), image_size=IMAGE_SIZE
    )
    assert result.counterparty_name == "UAB Tavo Finansininkas"
    assert result.document_id == "TF2026002"


def test_date_window_is_configurable():
    store, parser = make_trained_parser()
    strict = TemplateAwareParser(store, today=TODAY, max_past_days=3)
    assert parser.is_valid(FieldKind.DATE, "2026-01-13")
    assert not strict.is_valid(FieldKind.DATE, "2026-01-13")
    assert strict.is_valid(FieldKind.DATE, "2026-01-18")


def test_search_padding_is_configurable():
    store = TemplateStore(MemoryBackend())
    region = FieldRegion(FieldKind.AMOUNT_EXCL_TAX, Rect(0.5, 0.5, 0.6, 0.52), 1.0)
    fragments = [frag("100,00", 500, 535, 600, 555)]
    size = (1000, 1000)

    wide = TemplateAwareParser(store, today=TODAY)
    tight = TemplateAwareParser(store, today=TODAY, padding=0.01, padding_gain=0.0)
    assert wide.read_region(fragments, region, size, set()) == ("100.00", [0])
    assert tight.read_region(fragments, region, size, set()) == (None, None)
