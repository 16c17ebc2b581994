import pytest
from pydantic import ValidationError

from app.core.config import Settings, parse_credit_packs


def test_parse_comma_list():
    assert parse_credit_packs("price_a:100, price_b:250") == {"price_a": 100, "price_b": 250}


def test_parse_json_object():
    assert parse_credit_packs('{"price_a": 100, "price_b": "250"}') == {"price_a": 100, "price_b": 250}


@pytest.mark.parametrize("raw", ["price_a:0", "price_a:-5", "price_a:lots", "price_a", ":100", '{"price_a": 100.7}'])
def test_parse_rejects_bad_entries(raw):
    with pytest.raises(ValueError):
        parse_credit_packs(raw)


def test_settings_reject_bad_credit_packs():
    with pytest.raises(ValidationError):
        Settings(CREDIT_PACKS="price_a:0")


def test_settings_reject_unknown_backend():
    with pytest.raises(ValidationError):
        Settings(BALANCE_STORE_BACKEND="redis")


def test_credit_table_is_read_only():
    settings = Settings(CREDIT_PACKS="price_a:100")
    table = settings.credits_per_price
    assert table["price_a"] == 100
    with pytest.raises(TypeError):
        table["price_a"] = 1_000_000


def test_default_table_matches_production_packs():
    settings = Settings()
    assert dict(settings.credits_per_price) == {
        "price_1RlSDORragUkhvY8W5M9kAHI": 1000,
        "price_1RlSQRragUkhvY8QneFCSGJ": 2900,
        "price_1RlSFragUkhvY8umWtkb81": 9750,
    }
