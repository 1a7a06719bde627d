from dramap.units import parse_capacity, parse_hex_bytes, parse_hex_address, ParseError
from dramap.mapping import (bit_width, Level, BitGroup, LevelConfig, BitMapping,
                            AddressSpace, PathConstraint, check_consistency)
from dramap.decoder import decode, decode_string, DecodeDiagnostic
from dramap.resolver import (resolve_ranges, sibling_ranges, AddressRange, RangeSet,
                             Aborted, MAX_BIT_SPAN)
from dramap.vm import parse_vm, parse_vms, vms_using, classify_usage
