from invoice_templates.models import ParsedFieldSet
from invoice_templates.rules.tax import apply_derived_fields, tax_code_for, tax_rate_for


def test_rate_snaps_to_standard_rates():
    assert tax_rate_for("100.00", "21.00") == 21.0
    assert tax_rate_for("100", "9") == 9.0
    assert tax_rate_for("100", "4.6") == 5.0
    assert tax_rate_for("100", "0") == 0.0
    assert tax_rate_for("0", "5") is None
    assert tax_rate_for(None, "1") is None


def test_tax_codes():
    assert tax_code_for(21.0) == "PVM1"
    assert tax_code_for(9.0) == "PVM2"
    assert tax_code_for(5.0) == "PVM3"
    assert tax_code_for(0.0) == "PVM4"
    assert tax_code_for(None) == "PVM1"
    assert tax_code_for(21.0, reverse_charge=True) == "PVM25"


def test_apply_derived_fields():
    field_set = apply_derived_fields(ParsedFieldSet(amount_excl_tax="200.00", tax_amount="18.00"))
    assert field_set.tax_rate == "9.00"
    assert field_set.tax_code == "PVM2"

    reverse = apply_derived_fields(
        ParsedFieldSet(amount_excl_tax="200.00", tax_amount="0.00"),
        text="Atvirkštinis PVM apmokestinimas",
    )
    assert reverse.tax_rate == "0.00"
    assert reverse.tax_code == "PVM25"


def test_no_amounts_no_derived_fields():
    field_set = apply_derived_fields(ParsedFieldSet(document_id="A-1"))
    assert field_set.tax_rate is None
    assert field_set.tax_code is None
