"""
Description of how physical address bits are spread over the memory
hierarchy.

Every level (Channel, Rank, ..., Column) has a number of elements and, for
each bit of the element identifier, a BitGroup: the list of physical address
bits that are XOR-ed together to produce that identifier bit. Group 0 gives
the least significant identifier bit.

All the types here are immutable snapshots. Changing a level returns a new
BitMapping.
"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple


def bit_width(count):
    """Number of bits needed to tell apart identifiers 0..count-1."""
    if count <= 1:
        return 0
    return (count - 1).bit_length()


def bit_at(address, position):
    """Value of a single address bit. Negative addresses or positions read
    as 0, and so do non-integral or non-finite float addresses."""
    if isinstance(address, float):
        if not address.is_integer():
            return 0
        address = int(address)
    if address < 0 or position < 0:
        return 0
    return (address >> position) & 1


class Level(IntEnum):
    CHANNEL = 0
    RANK = 1
    BANK = 2
    BANK_GROUP = 3
    SUBARRAY = 4
    ROW = 5
    COLUMN = 6

    @property
    def label(self):
        return _LEVEL_LABELS[self]

    def child(self):
        """next level when drilling down, None after Column."""
        if self is Level.COLUMN:
            return None
        return Level(self + 1)

    @classmethod
    def from_name(cls, name):
        key = name.strip().replace('_', '').replace(' ', '').lower()
        for level in cls:
            if level.label.lower() == key:
                return level
        raise ValueError(f'Unknown hierarchy level "{name}". Expected one '
                         f'of: {", ".join(l.label for l in cls)}')

    def __str__(self):
        return self.label


_LEVEL_LABELS = {
    Level.CHANNEL    : 'Channel',
    Level.RANK       : 'Rank',
    Level.BANK       : 'Bank',
    Level.BANK_GROUP : 'BankGroup',
    Level.SUBARRAY   : 'Subarray',
    Level.ROW        : 'Row',
    Level.COLUMN     : 'Column',
}

# element count of each level when nothing else is configured
DEFAULT_COUNTS = {
    Level.CHANNEL    : 1,
    Level.RANK       : 1,
    Level.BANK       : 4,
    Level.BANK_GROUP : 2,
    Level.SUBARRAY   : 8,
    Level.ROW        : 16,
    Level.COLUMN     : 32,
}


@dataclass(frozen=True)
class BitGroup:
    """Physical bit positions XOR-ed into one identifier bit.

    positions is None when the text the group came from could not be
    parsed. An empty tuple is a group nobody filled in yet. Both contribute
    a 0 bit."""
    positions: Tuple[int, ...] = ()
    raw: str = ''

    @classmethod
    def parse(cls, text):
        """Parse '5' or '0, 2' (comma separated, non-negative decimal
        integers). Blank text gives an empty group; a bad token makes the
        whole group unparsable."""
        if text is None or not text.strip():
            return cls((), text or '')
        positions = []
        for token in text.split(','):
            token = token.strip()
            if not token.isdigit() or not token.isascii():
                return cls(None, text)
            positions.append(int(token))
        return cls(tuple(positions), text)

    @classmethod
    def of(cls, *positions):
        positions = tuple(int(p) for p in positions)
        if any(p < 0 for p in positions):
            raise ValueError(f'Bit positions must be non-negative: '
                             f'{positions}')
        return cls(positions, ','.join(str(p) for p in positions))

    @property
    def is_valid(self):
        return self.positions is not None

    @property
    def is_empty(self):
        return self.positions == ()

    @property
    def mask(self):
        """Address mask whose parity equals the group's XOR. A position
        listed twice cancels itself out, like in the XOR."""
        mask = 0
        for p in self.positions or ():
            mask ^= 1 << p
        return mask

    def xor(self, address):
        value = 0
        for p in self.positions or ():
            value ^= bit_at(address, p)
        return value

    def __str__(self):
        if self.positions is None:
            return self.raw
        return ','.join(str(p) for p in self.positions)


@dataclass(frozen=True)
class LevelConfig:
    count: int = 1
    groups: Tuple[BitGroup, ...] = ()

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f'Element count cannot be negative: {self.count}')
        if len(self.groups) != bit_width(self.count):
            raise ValueError(f'{self.count} elements need '
                             f'{bit_width(self.count)} bit groups, '
                             f'got {len(self.groups)}')

    @classmethod
    def empty(cls, count):
        """count elements, with every bit group still unassigned."""
        count = max(int(count), 0)
        return cls(count, tuple(BitGroup() for _ in range(bit_width(count))))

    @classmethod
    def from_groups(cls, count, groups):
        """Build from a list mixing raw strings ('0,2'), lists of integers
        and BitGroup objects."""
        parsed = []
        for g in groups:
            if isinstance(g, BitGroup):
                parsed.append(g)
            elif isinstance(g, str):
                parsed.append(BitGroup.parse(g))
            else:
                parsed.append(BitGroup.of(*g))
        return cls(count, tuple(parsed))

    @property
    def width(self):
        return len(self.groups)

    @property
    def is_valid(self):
        return all(g.is_valid for g in self.groups)

    def with_count(self, count):
        # bit assignments are discarded, not carried over
        return LevelConfig.empty(count)

    def with_group(self, index, group):
        if isinstance(group, str):
            group = BitGroup.parse(group)
        groups = list(self.groups)
        groups[index] = group
        return LevelConfig(self.count, tuple(groups))

    def identifier(self, address):
        ident = 0
        for k,group in enumerate(self.groups):
            ident |= group.xor(address) << k
        return ident


class BitMapping:
    """Fixed seven-slot table of LevelConfig, indexed by Level."""
    __slots__ = ('_levels',)

    def __init__(self, levels=None):
        levels = dict(levels or {})
        unknown = [k for k in levels if not isinstance(k, Level)]
        if unknown:
            raise ValueError(f'BitMapping keys must be Level members: '
                             f'{unknown}')
        self._levels = tuple(levels.get(l, LevelConfig.empty(DEFAULT_COUNTS[l]))
                             for l in Level)

    @classmethod
    def default(cls):
        return cls()

    def __getitem__(self, level):
        return self._levels[level]

    def __iter__(self):
        return iter(Level)

    def __len__(self):
        return len(self._levels)

    def items(self):
        return zip(Level, self._levels)

    def with_level(self, level, config):
        levels = dict(self.items())
        levels[level] = config
        return BitMapping(levels)

    def __eq__(self, other):
        return isinstance(other, BitMapping) and self._levels == other._levels

    def __hash__(self):
        return hash(self._levels)

    def __repr__(self):
        body = ', '.join(f'{l.label}={c.count}:{[str(g) for g in c.groups]}'
                         for l,c in self.items())
        return f'BitMapping({body})'

    @property
    def total_width(self):
        return sum(c.width for c in self._levels)


@dataclass(frozen=True)
class AddressSpace:
    total_capacity: int

    def __post_init__(self):
        if self.total_capacity <= 0:
            raise ValueError('Address space capacity must be positive, got '
                             f'{self.total_capacity}')

    @property
    def max_bit(self):
        """highest bit position that can be set in [0, capacity)."""
        return self.total_capacity.bit_length() - 1

    @property
    def address_bits(self):
        return bit_width(self.total_capacity)

    def __contains__(self, address):
        return 0 <= address < self.total_capacity


@dataclass(frozen=True)
class Consistency:
    consistent: bool
    mapped_bits: int
    address_bits: int

    @property
    def message(self):
        status = 'Consistent' if self.consistent else 'Inconsistent'
        return (f'Status: {status} ({self.mapped_bits} mapped bits, '
                f'{self.address_bits} address bits from capacity)')


def check_consistency(mapping, space):
    """Compare the identifier bits of all levels with the number of address
    bits the capacity needs."""
    mapped = mapping.total_width
    return Consistency(mapped == space.address_bits, mapped,
                       space.address_bits)


class PathConstraint:
    """Drill-down location: (Level, identifier) pairs from the root, with
    levels strictly increasing."""
    __slots__ = ('_steps',)

    def __init__(self, steps=()):
        steps = tuple((Level(l), int(i)) for l,i in steps)
        for (prev,_),(cur,_) in zip(steps, steps[1:]):
            if cur <= prev:
                raise ValueError(f'Path levels must be strictly increasing: '
                                 f'{prev.label} then {cur.label}')
        for l,i in steps:
            if i < 0:
                raise ValueError(f'Negative identifier {i} for {l.label}')
        self._steps = steps

    @classmethod
    def parse(cls, text):
        """Parse 'Channel=0,Rank=2'. Blank text is the root path."""
        if text is None or not text.strip():
            return cls()
        steps = []
        for item in text.split(','):
            try:
                name, ident = item.split('=')
                ident = int(ident.strip(), 0)
            except ValueError:
                raise ValueError(f'Malformed path element "{item.strip()}". '
                                 'Expected <Level>=<id>') from None
            steps.append((Level.from_name(name), ident))
        return cls(steps)

    def extend(self, level, ident):
        return PathConstraint(self._steps + ((level, ident),))

    def __iter__(self):
        return iter(self._steps)

    def __len__(self):
        return len(self._steps)

    def __getitem__(self, idx):
        return self._steps[idx]

    def __eq__(self, other):
        return isinstance(other, PathConstraint) and \
            self._steps == other._steps

    def __hash__(self):
        return hash(self._steps)

    def __repr__(self):
        return f'PathConstraint({self})'

    def __str__(self):
        return ','.join(f'{l.label}={i}' for l,i in self._steps)

    def names(self):
        return [f'{l.label}{i}' for l,i in self._steps]

    def breadcrumb(self):
        return ' > '.join(['System'] + self.names())

    def view_level(self):
        """Level whose elements are listed below this path."""
        if not self._steps:
            return Level.CHANNEL
        last = self._steps[-1][0]
        return last.child() or last
