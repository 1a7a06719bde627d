"""
Virtual machines placed in the physical address space, and which hierarchy
elements they end up using.

An element (say Bank2 under Channel0) is used by a VM when any of its
resolved address ranges intersects the VM's [base, base+size-1] interval.
One VM makes the element take that VM's color, several make it a conflict.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from dramap.palette import Palette
from dramap.resolver import AddressRange, Aborted
from dramap.units import parse_hex_address, parse_hex_bytes, is_error

UNUSED = 'unused'
SINGLE = 'single'
CONFLICT = 'conflict'


@dataclass(frozen=True)
class VmDescriptor:
    index: int
    base_text: str
    size_text: str
    base: Optional[int] = None
    size: int = 0
    color: str = ''
    error: str = ''

    @property
    def is_valid(self):
        return self.base is not None and self.size > 0

    @property
    def end(self):
        if not self.is_valid:
            return None
        return self.base + self.size - 1

    @property
    def span(self):
        return AddressRange(self.base, self.end)

    @property
    def name(self):
        return f'VM {self.index + 1}'


def parse_vm(base_text, size_text, index=0, palette=None):
    """Build a VmDescriptor from the typed base (hex address) and size (hex
    byte count). Invalid descriptors keep the first error found and never
    take part in overlap checks."""
    palette = palette or Palette()
    color = palette[index]
    base = parse_hex_address(base_text)
    size = parse_hex_bytes(size_text)
    error = ''
    if is_error(base):
        error = f'base: {base}'
    elif is_error(size):
        error = f'size: {size}'
    if error:
        return VmDescriptor(index, base_text, size_text, color=color,
                            error=error)
    return VmDescriptor(index, base_text, size_text, base, size, color)


def parse_vms(entries, palette=None):
    """entries: iterable of (base_text, size_text)."""
    entries = list(entries)
    palette = palette or Palette(max(len(entries), 1))
    return [parse_vm(b, s, i, palette) for i,(b,s) in enumerate(entries)]


def vms_using(ranges, vms):
    """Valid VMs whose interval intersects any of ranges. ranges is a
    RangeSet or any iterable of AddressRange; an Aborted resolution uses no
    VM."""
    if isinstance(ranges, Aborted):
        return []
    used = []
    for vm in vms:
        if not vm.is_valid:
            continue
        if hasattr(ranges, 'overlaps'):
            hit = ranges.overlaps(vm.span)
        else:
            hit = any(r.overlaps(vm.span) for r in ranges)
        if hit:
            used.append(vm)
    return used


@dataclass(frozen=True)
class ElementUsage:
    vms: List[VmDescriptor] = field(default_factory=list)

    @property
    def kind(self):
        if len(self.vms) == 0:
            return UNUSED
        if len(self.vms) == 1:
            return SINGLE
        return CONFLICT

    def color(self, palette=Palette):
        if self.kind == SINGLE:
            return self.vms[0].color
        if self.kind == CONFLICT:
            return palette.conflict
        return palette.unused

    def describe(self):
        if self.kind == SINGLE:
            return self.vms[0].name
        if self.kind == CONFLICT:
            return f'Conflict: Used by {len(self.vms)} VMs'
        return '-'


def classify_usage(ranges, vms):
    return ElementUsage(vms_using(ranges, vms))
