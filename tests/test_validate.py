"""Tests for slug validation rules."""

import pytest

from fixup_slugs.core.utils import normalize
from fixup_slugs.core.validate import DEFAULT_RESERVED, is_reserved, validate_slug


def test_valid_slug():
    result = validate_slug("oil-change")
    assert result.valid
    assert result.reason is None
    assert bool(result) is True


def test_empty_slug():
    assert validate_slug("").reason == "Slug cannot be empty"
    assert validate_slug("   ").reason == "Slug cannot be empty"


def test_length_limit():
    assert validate_slug("a" * 100)
    result = validate_slug("a" * 101)
    assert not result
    assert result.reason == "Slug must be 100 characters or less"
    assert validate_slug("a" * 21, max_length=20).reason == "Slug must be 20 characters or less"


def test_reserved_slug():
    result = validate_slug("admin")
    assert not result
    assert result.reason == "Slug 'admin' is reserved"
    # case-insensitive
    assert validate_slug("Services").reason == "Slug 'services' is reserved"


def test_reserved_can_be_overridden():
    assert validate_slug("admin", reserved=())
    assert not validate_slug("oil-change", reserved={"oil-change"})


def test_character_set():
    for slug in ("Oil-Change", "oil change", "oil_change", "ზეთი"):
        result = validate_slug(slug)
        assert not result
        assert "lowercase letters, numbers, and hyphens" in result.reason


def test_edge_hyphens():
    assert validate_slug("-oil").reason == "Slug cannot start or end with a hyphen"
    assert validate_slug("oil-").reason == "Slug cannot start or end with a hyphen"


def test_consecutive_hyphens():
    assert validate_slug("oil--change").reason == "Slug cannot contain consecutive hyphens"


def test_is_reserved():
    assert is_reserved("mechanics")
    assert is_reserved(" API ")
    assert not is_reserved("mechanic-tbilisi")
    assert "sitemap" in DEFAULT_RESERVED


@pytest.mark.parametrize(
    "name", ["Oil Change", "ძრავის დიაგნოსტიკა", "Tyre / Wheel alignment", "A" * 80]
)
def test_normalized_names_validate(name):
    assert validate_slug(normalize(name))
