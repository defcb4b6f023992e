import pytest

from invoice_templates.extract.counterparty import recognize_counterparty
from invoice_templates.models import OwnerIdentity

OWNER = OwnerIdentity(registration_id="111222333", tax_id="LT111222333", name="UAB Mano Apskaita")


def make_header_lines(owner_first=False):
    seller = [
        "Pardavėjas:",
        "UAB Tavo Finansininkas",
        "Įmonės kodas: 300581697",
        "PVM kodas: LT300581697",
    ]
    buyer = [
        "Pirkėjas:",
        "UAB Mano Apskaita",
        "Įmonės kodas: 111222333",
        "PVM kodas: LT111222333",
    ]
    return buyer + seller if owner_first else seller + buyer


def test_recognizes_all_three_parts():
    candidate = recognize_counterparty(make_header_lines())
    assert candidate.name == "UAB Tavo Finansininkas"
    assert candidate.tax_id == "LT300581697"
    assert candidate.registration_id == "300581697"
    assert candidate.confidence == pytest.approx(1.0)
    assert candidate.keys() == ["300581697", "lt300581697", "uabtavofinansininkas"]


def test_owner_identity_is_excluded():
    candidate = recognize_counterparty(make_header_lines(owner_first=True), owner=OWNER)
    assert candidate.name == "UAB Tavo Finansininkas"
    assert candidate.tax_id == "LT300581697"
    assert candidate.registration_id == "300581697"


def test_only_owner_on_document():
    lines = ["UAB Mano Apskaita", "Įmonės kodas: 111222333", "PVM kodas: LT111222333"]
    candidate = recognize_counterparty(lines, owner=OWNER)
    assert candidate.name is None
    assert candidate.tax_id is None
    assert candidate.registration_id is None
    assert candidate.confidence == 0.0
    assert candidate.keys() == []


def test_partial_confidence():
    candidate = recognize_counterparty(["Tavo Finansininkas, UAB", "PVM kodas: LT300581697"])
    assert candidate.name == "Tavo Finansininkas, UAB"
    assert candidate.registration_id is None
    assert candidate.confidence == pytest.approx(2 / 3)


def test_bank_and_phone_lines_are_ignored():
    lines = ["IBAN LT 12345678901", "Tel. +370 60012345", "PVM kodas: LT300581697"]
    candidate = recognize_counterparty(lines)
    assert candidate.tax_id == "LT300581697"
    assert candidate.registration_id is None


def test_registration_id_skips_invoice_numbers_and_dates():
    lines = ["Sąskaita Nr. 1234567", "20260113", "300581697"]
    candidate = recognize_counterparty(lines)
    assert candidate.registration_id == "300581697"


def test_section_labels_and_captions_are_not_names():
    lines = ["PVM SĄSKAITA FAKTŪRA", "Pardavėjas", "Suma žodžiais: šimtas eurų", "MB Rasa ir Ko"]
    candidate = recognize_counterparty(lines)
    assert candidate.name == "MB Rasa ir Ko"
