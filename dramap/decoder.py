from dataclasses import dataclass

from dramap.mapping import Level
from dramap.units import parse_hex_address, is_error

@dataclass(frozen=True)
class DecodeDiagnostic:
    """Stands in for an identifier that could not be computed."""
    reason: str

    def __str__(self):
        return self.reason


INVALID_MAPPING = DecodeDiagnostic('Invalid mapping')
ADDRESS_NOT_ENTERED = DecodeDiagnostic('Address not entered')
INVALID_ADDRESS = DecodeDiagnostic('Invalid address')


def decode_level(address, config):
    if not config.is_valid:
        return INVALID_MAPPING
    # no groups (count <= 1) decodes to 0
    return config.identifier(address)


def decode(address, mapping):
    """Identifier of every hierarchy level for a physical address, in level
    order. A level with an unparsable bit group gets INVALID_MAPPING and
    does not affect the others."""
    return {level: decode_level(address, config)
            for level,config in mapping.items()}


def decode_string(text, mapping):
    """Same as decode(), for an address typed in hexadecimal."""
    if text is None or not text.strip():
        return {level: ADDRESS_NOT_ENTERED for level in Level}
    address = parse_hex_address(text)
    if is_error(address):
        return {level: INVALID_ADDRESS for level in Level}
    return decode(address, mapping)
