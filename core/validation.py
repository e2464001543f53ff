"""
Ledger address validation.

An address is 32 upper-case base32 characters encoding 160 bits: 128 bits
of hash data with 32 checksum bits interleaved at offsets derived from the
digits of pi.  The checksum is bytes 5, 13, 21 and 29 of SHA-256 over the
128 clean bits.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re

_PI_DIGITS = "14159265358979323846264338327950288419716939937510"
_ADDRESS_RE = re.compile(r"^[A-Z2-7]{32}$")


def _checksum_offsets(length: int = 160) -> frozenset[int]:
    offsets: list[int] = []
    offset = 0
    for digit in _PI_DIGITS:
        step = int(digit)
        if step == 0:
            continue
        offset += step
        if offset >= length:
            break
        offsets.append(offset)
    if len(offsets) != 32:
        raise ValueError(f"Wrong number of checksum bits: {len(offsets)}")
    return frozenset(offsets)


_OFFSETS = _checksum_offsets()


def _bits(data: bytes) -> str:
    return "".join(f"{byte:08b}" for byte in data)


def _bytes(bits: str) -> bytes:
    return int(bits, 2).to_bytes(len(bits) // 8, "big")


def is_valid_address(value: object) -> bool:
    """True if *value* is a well-formed, checksummed ledger address."""
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        return False
    try:
        raw = base64.b32decode(value)
    except binascii.Error:
        return False

    clean: list[str] = []
    checksum: list[str] = []
    for pos, bit in enumerate(_bits(raw)):
        (checksum if pos in _OFFSETS else clean).append(bit)

    digest = hashlib.sha256(_bytes("".join(clean))).digest()
    expected = bytes((digest[5], digest[13], digest[21], digest[29]))
    return _bytes("".join(checksum)) == expected
