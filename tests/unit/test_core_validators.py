from decimal import Decimal

import pytest

from storefront.core import validators


def test_normalize_username_strips_and_lowercases():
    assert validators.normalize_username("  Alice.Smith ") == "alice.smith"


@pytest.mark.parametrize("raw", ["ab", "_alice", "alice-", "x" * 65, None])
def test_normalize_username_rejects(raw):
    with pytest.raises(ValueError):
        validators.normalize_username(raw)


def test_validate_email_normalizes_case():
    assert validators.validate_email(" Bob@Example.COM ") == "bob@example.com"


@pytest.mark.parametrize("raw", ["", "bob", "bob@", "@example.com", "bob@localhost", 42])
def test_validate_email_rejects(raw):
    with pytest.raises(ValueError):
        validators.validate_email(raw)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (True, True),
        (False, False),
        (1, True),
        (0, False),
        ("true", True),
        ("FALSE", False),
        ("on", True),
        ("", False),
        (None, False),
    ],
)
def test_coerce_bool(raw, expected):
    assert validators.coerce_bool(raw) is expected


@pytest.mark.parametrize("raw", ["maybe", 2, [], {}])
def test_coerce_bool_rejects_unknown_values(raw):
    with pytest.raises(ValueError):
        validators.coerce_bool(raw, "organic")


def test_parse_price_quantizes_to_cents():
    assert validators.parse_price("12.345") == Decimal("12.35")
    assert validators.parse_price(7) == Decimal("7.00")


@pytest.mark.parametrize("raw", ["abc", "-1", None, True, "NaN", "Infinity", "1e30", "100000000", 100000000.5])
def test_parse_price_rejects(raw):
    with pytest.raises(ValueError):
        validators.parse_price(raw)


def test_parse_optional_int():
    assert validators.parse_optional_int("3", "categoryId") == 3
    assert validators.parse_optional_int(None, "categoryId") is None
    assert validators.parse_optional_int("", "categoryId") is None
    with pytest.raises(ValueError):
        validators.parse_optional_int("three", "categoryId")
    with pytest.raises(ValueError):
        validators.parse_optional_int(True, "categoryId")


def test_parse_page_and_limit():
    assert validators.parse_page(None) == 1
    assert validators.parse_page("4") == 4
    assert validators.parse_limit(None, 12) == 12
    assert validators.parse_limit("500", 12, maximum=100) == 100
    with pytest.raises(ValueError):
        validators.parse_page("0")
    with pytest.raises(ValueError):
        validators.parse_limit("-2", 12)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, []),
        ("", []),
        (["aloe", " shea ", "", None], ["aloe", "shea"]),
        (("aloe", "jojoba"), ["aloe", "jojoba"]),
        ('["aloe", "jojoba"]', ["aloe", "jojoba"]),
        ("aloe, jojoba,\nbeeswax", ["aloe", "jojoba", "beeswax"]),
        ("[not json", ["[not json"]),
    ],
)
def test_normalize_ingredients(raw, expected):
    assert validators.normalize_ingredients(raw) == expected


def test_normalize_ingredients_is_idempotent():
    once = validators.normalize_ingredients("aloe, jojoba")
    assert validators.normalize_ingredients(once) == once


def test_normalize_ingredients_rejects_objects():
    with pytest.raises(ValueError):
        validators.normalize_ingredients({"aloe": 1})


def test_normalize_slug_prefers_explicit_value():
    assert validators.normalize_slug("My Custom Slug", "ignored") == "my-custom-slug"
    assert validators.normalize_slug(None, "Hello World!") == "hello-world"
    with pytest.raises(ValueError):
        validators.normalize_slug("", "")


def test_validate_role():
    assert validators.validate_role("editor") == "editor"
    with pytest.raises(ValueError):
        validators.validate_role("superuser")
