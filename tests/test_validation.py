"""Tests for ledger address validation."""

import pytest

from core.validation import is_valid_address
from tests.conftest import BAD_POOL, CURVE_BASE, OSWAP_FACTORY, POOL1, POOL2


@pytest.mark.parametrize("address", [CURVE_BASE, OSWAP_FACTORY, POOL1, POOL2])
def test_valid_addresses(address):
    assert is_valid_address(address) is True


@pytest.mark.parametrize("value", [
    BAD_POOL,                               # checksum mismatch
    CURVE_BASE.lower(),                     # wrong case
    CURVE_BASE[:-1],                        # too short
    CURVE_BASE + "A",                       # too long
    "LORHOZFHKVU4A75ME5IKZDW5RIEKC4U1",     # outside the base32 alphabet
    "",
    None,
    42,
])
def test_invalid_addresses(value):
    assert is_valid_address(value) is False
