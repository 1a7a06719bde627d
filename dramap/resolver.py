"""
Range resolution: which physical addresses decode to a given drill-down
path (e.g. Channel=0, Rank=2).

Every identifier bit of every level on the path turns into one constraint:
the XOR of some address bits must equal a 0 or a 1. All constraints are
ANDed. The search only looks at the address bits between the lowest and the
highest referenced position:

  * bits below the lowest one never change the outcome, so candidates are
    visited with a stride of 2**min_bit;
  * bits above the highest one never change it either, so the outcome
    repeats every 2**(max_bit+1) bytes, and the runs found in the first
    period are tiled over the rest of the capacity.

The number of candidates is bounded by max_bit_span (24 by default, i.e. at
most 2**25 candidates). Configurations beyond that, or referencing bits that
the capacity can never set, come back as Aborted instead of a range list.
"""
import bisect
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import islice

from dramap.mapping import PathConstraint

# widest (max_bit - min_bit) the enumeration accepts
MAX_BIT_SPAN = 24


@dataclass(frozen=True)
class AddressRange:
    """Closed interval [start, end] of physical addresses."""
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f'Range start 0x{self.start:X} is above its end '
                             f'0x{self.end:X}')

    @property
    def size(self):
        return self.end - self.start + 1

    def overlaps(self, other):
        return self.start <= other.end and other.start <= self.end

    def __contains__(self, address):
        return self.start <= address <= self.end

    def __str__(self):
        return f'0x{self.start:X} - 0x{self.end:X}'


@dataclass(frozen=True)
class Aborted:
    """The resolver refused the configuration. Not the same as an empty
    result, which means that no address matches."""
    reason: str

    def __str__(self):
        return self.reason


def _parity(value):
    return bin(value).count('1') & 1


class RangeSet(Sequence):
    """Ordered, disjoint, maximal address ranges within a capacity.

    Stored as the runs of a single period (in period-local coordinates) and
    expanded lazily: iterating yields AddressRange objects in increasing
    order, merging runs that touch across a period boundary and clamping the
    last one to the capacity."""

    def __init__(self, capacity, period, runs):
        self.capacity = capacity
        self.period = period
        self._runs = list(runs)
        # a period entirely in range is the whole capacity
        if self._runs == [(0, min(period, capacity) - 1)]:
            self.period = capacity
            self._runs = [(0, capacity - 1)]
        self._starts = [s for s,_ in self._runs]
        self._len = None

    @classmethod
    def whole(cls, capacity):
        return cls(capacity, capacity, [(0, capacity - 1)])

    @property
    def n_periods(self):
        return -(-self.capacity // self.period)

    def __wraps(self):
        return len(self._runs) > 1 and self._runs[0][0] == 0 and \
            self._runs[-1][1] == self.period - 1

    def __iter__(self):
        if not self._runs:
            return
        pending = None
        for k in range(self.n_periods):
            base = k * self.period
            for s,e in self._runs:
                s, e = base + s, base + e
                if s >= self.capacity:
                    break
                e = min(e, self.capacity - 1)
                if pending is not None and s == pending[1] + 1:
                    pending = (pending[0], e)
                    continue
                if pending is not None:
                    yield AddressRange(*pending)
                pending = (s, e)
        if pending is not None:
            yield AddressRange(*pending)

    def __len__(self):
        if self._len is None:
            full, rem = divmod(self.capacity, self.period)
            count = full * len(self._runs)
            count += bisect.bisect_left(self._starts, rem) if rem else 0
            if self.__wraps():
                count -= self.n_periods - 1
            self._len = count
        return self._len

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return list(self)[idx]
        if idx < 0:
            idx += len(self)
        if not 0 <= idx < len(self):
            raise IndexError('RangeSet index out of range')
        if self.__wraps():
            return next(islice(iter(self), idx, None))
        # without merges, range idx is run j of period k
        k, j = divmod(idx, len(self._runs))
        s, e = self._runs[j]
        base = k * self.period
        return AddressRange(base + s, min(base + e, self.capacity - 1))

    def __bool__(self):
        return bool(self._runs)

    def contains_address(self, address):
        if not 0 <= address < self.capacity:
            return False
        offset = address % self.period
        idx = bisect.bisect_right(self._starts, offset) - 1
        return idx >= 0 and offset <= self._runs[idx][1]

    def __contains__(self, value):
        if isinstance(value, AddressRange):
            return any(r == value for r in self)
        return self.contains_address(value)

    def overlaps(self, other):
        """True if any range of the set intersects the AddressRange
        other."""
        lo = max(other.start, 0)
        hi = min(other.end, self.capacity - 1)
        if lo > hi or not self._runs:
            return False
        first, last = lo // self.period, hi // self.period
        # a complete period lies inside [lo, hi]
        if last - first >= 2:
            return True
        for k in range(first, last + 1):
            base = k * self.period
            for s,e in self._runs:
                if base + s <= hi and lo <= base + e:
                    return True
        return False

    def covered_bytes(self):
        full, rem = divmod(self.capacity, self.period)
        total = full * sum(e - s + 1 for s,e in self._runs)
        for s,e in self._runs:
            if s < rem:
                total += min(e, rem - 1) - s + 1
        return total

    def __eq__(self, other):
        if isinstance(other, RangeSet):
            if (self.capacity, self.period, self._runs) == \
               (other.capacity, other.period, other._runs):
                return True
            if len(self) != len(other):
                return False
            return all(a == b for a,b in zip(self, other))
        if isinstance(other, (list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        shown = [str(r) for r in islice(self, 4)]
        more = ', ...' if len(self) > 4 else ''
        return f'RangeSet([{", ".join(shown)}{more}], count={len(self)})'


def _constraints(path, mapping):
    """(mask, required_bit) pairs of every identifier bit along path, the
    referenced bit positions and whether some identifier is wider than its
    level. Aborted if one of the bit groups involved is not parsable."""
    constraints = []
    referenced = set()
    too_wide = False
    for level,ident in path:
        config = mapping[level]
        # no address decodes to bits above the level width
        if ident >> config.width:
            too_wide = True
        for k,group in enumerate(config.groups):
            if not group.is_valid:
                return Aborted(f'Invalid mapping for {level.label} bit {k}: '
                               f'"{group.raw}"'), None, False
            if group.is_empty:
                continue
            constraints.append((group.mask, (ident >> k) & 1))
            referenced.update(group.positions)
    return constraints, referenced, too_wide


def resolve_ranges(path, mapping, space, max_bit_span=MAX_BIT_SPAN):
    """Physical address ranges decoding to every (level, id) of path.

    Returns a RangeSet (possibly empty) or Aborted."""
    if not isinstance(path, PathConstraint):
        path = PathConstraint(path)
    capacity = space.total_capacity

    constraints, referenced, too_wide = _constraints(path, mapping)
    if isinstance(constraints, Aborted):
        return constraints
    if too_wide:
        return RangeSet(capacity, capacity, [])
    if not constraints:
        return RangeSet.whole(capacity)

    min_bit, max_bit = min(referenced), max(referenced)
    if max_bit > space.max_bit:
        return Aborted(f'A specified bit ({max_bit}) is outside the '
                       'addressable range for the given capacity '
                       f'({capacity} bytes). Max possible bit is '
                       f'{space.max_bit}.')
    if max_bit - min_bit > max_bit_span:
        return Aborted(f'Bit range too large ({max_bit - min_bit}). The '
                       f'limit is {max_bit_span}, skipping range '
                       'calculation.')

    period = 1 << (max_bit + 1)
    stride = 1 << min_bit
    limit = min(period, capacity)

    runs = []
    start = None
    for addr in range(0, limit, stride):
        hit = True
        for mask,required in constraints:
            if _parity(addr & mask) != required:
                hit = False
                break
        if hit and start is None:
            start = addr
        elif not hit and start is not None:
            runs.append((start, addr - 1))
            start = None
    if start is not None:
        runs.append((start, limit - 1))

    return RangeSet(capacity, period, runs)


def sibling_ranges(path, mapping, space, max_bit_span=MAX_BIT_SPAN):
    """Resolve every element of the level shown below path. Returns the
    level and a list of (identifier, RangeSet or Aborted)."""
    if not isinstance(path, PathConstraint):
        path = PathConstraint(path)
    level = path.view_level()
    # at the bottom of the hierarchy the selected column is listed with
    # its siblings
    if len(path) > 0 and path[-1][0] == level:
        path = PathConstraint(list(path)[:-1])
    results = []
    for ident in range(mapping[level].count):
        results.append((ident, resolve_ranges(path.extend(level, ident),
                                              mapping, space, max_bit_span)))
    return level, results
