"""
Parsers for the human-typed numbers of a memory description: capacities
("2GB", "512M", "1.5K", "4096") and hexadecimal byte counts or addresses
("0x1000", "ff").

None of these functions raise on bad input. They return either an int or a
ParseError carrying the reason, so callers can show the reason next to the
field that produced it.
"""
import re
from dataclasses import dataclass
from fractions import Fraction

# number, optional blank, optional prefix letter, optional unit character
_CAPACITY_RE = re.compile(r'^(\d+(?:\.\d+)?)\s*([A-Z])?([A-Z])?$',
                          re.ASCII)
_HEX_DIGITS_RE = re.compile(r'^[0-9a-f]+$')

CAPACITY_PREFIXES = {
    ''  : 1,
    'K' : 1024,
    'M' : 1024**2,
    'G' : 1024**3,
}


@dataclass(frozen=True)
class ParseError:
    """Reason why a string could not be turned into a number."""
    reason: str

    def __str__(self):
        return self.reason


def is_error(value):
    return isinstance(value, ParseError)


def parse_capacity(text):
    """Parse a capacity such as '2GB', '512M', '1024KB' or '4096' into
    bytes. Prefixes are binary (K=1024). Returns an int or a ParseError."""
    if text is None or not text.strip():
        return ParseError('Input is empty')
    cleaned = text.strip().upper()

    match = _CAPACITY_RE.match(cleaned)
    if not match:
        return ParseError('Invalid format. Example: 2GB, 512M, 1024KB, '
                          '2048B, or 4096 (Bytes)')
    number, prefix, unit = match.groups()
    prefix = prefix or ''
    unit = unit or ''

    # a lone letter may be either the unit ('2048B') or a prefix ('512M')
    if prefix == 'B' and unit == '':
        prefix, unit = '', 'B'
    if prefix not in CAPACITY_PREFIXES:
        return ParseError(f'Unknown prefix: {prefix}')
    if unit not in ('', 'B'):
        return ParseError(f'Invalid unit character: {unit}')

    n_bytes = Fraction(number) * CAPACITY_PREFIXES[prefix]
    if n_bytes <= 0:
        return ParseError('Cannot convert to a valid byte count (must be '
                          'greater than 0)')
    if n_bytes.denominator != 1:
        return ParseError(f'"{text.strip()}" is not a whole number of bytes')
    return int(n_bytes)


def _parse_hex(text, what):
    if text is None or not text.strip():
        return ParseError(f'{what} input is empty')
    cleaned = text.strip().lower()
    if cleaned.startswith('0x'):
        cleaned = cleaned[2:]
    if not _HEX_DIGITS_RE.match(cleaned):
        return ParseError(f'Invalid hexadecimal {what.lower()}. Expected '
                          'e.g., 0x1000 or 1000.')
    return int(cleaned, 16)


def parse_hex_bytes(text):
    """Parse a hexadecimal byte count ('0x1000' or '1000'). The result must
    be strictly positive."""
    value = _parse_hex(text, 'Size')
    if is_error(value):
        return value
    if value <= 0:
        return ParseError('Invalid byte count from hex. Value must be a '
                          'positive number.')
    return value


def parse_hex_address(text):
    """Parse a hexadecimal physical address. Zero is a valid address."""
    return _parse_hex(text, 'Address')
