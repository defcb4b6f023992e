from datetime import date

from invoice_templates.match.fuzzy import is_same_company_name
from invoice_templates.preprocess.normalize import (
    has_legal_form,
    normalize_key,
    parse_amount,
    parse_date,
    strip_legal_form,
    take_key_value,
)


def test_parse_amount_separators():
    assert parse_amount("1 234,56") == 1234.56
    assert parse_amount("1.234,56") == 1234.56
    assert parse_amount("1,234.56") == 1234.56
    assert parse_amount("121,00 EUR") == 121.0
    assert parse_amount("(15.00)") == -15.0
    assert parse_amount("") is None


def test_parse_date_formats():
    assert parse_date("2026-01-13") == date(2026, 1, 13)
    assert parse_date("13.01.2026") == date(2026, 1, 13)
    assert parse_date("20260113") == date(2026, 1, 13)
    assert parse_date("2026 m. sausio 13 d.") == date(2026, 1, 13)
    assert parse_date("2026 m. gruodžio 3 d.") == date(2026, 12, 3)


def test_normalize_key_strips_everything_but_alphanumerics():
    assert normalize_key("LT 300-581 697") == "lt300581697"
    assert normalize_key("UAB „Tavo Finansininkas“") == "uabtavofinansininkas"
    assert normalize_key("Įmonė") == "imone"
    assert normalize_key(None) == ""


def test_legal_form_handling():
    assert strip_legal_form("UAB „Tavo Finansininkas“") == "tavo finansininkas"
    assert has_legal_form("Tavo Finansininkas, UAB")
    assert not has_legal_form("Jonas Jonaitis")


def test_take_key_value():
    assert take_key_value("Data: 2026-01-13") == "2026-01-13"
    assert take_key_value(": value") is None
    assert take_key_value("Data:") is None
    assert take_key_value("no separator") is None


def test_same_company_name_ignores_legal_form_and_quotes():
    assert is_same_company_name("UAB „Mano Apskaita“", "Mano Apskaita, UAB")
    assert not is_same_company_name("UAB Mano Apskaita", "UAB Tavo Finansininkas")
