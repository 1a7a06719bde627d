import os
import json
from datetime import datetime
from jsonschema import validate, ValidationError # to validate config files

from dramap.ui import UI
from dramap.mapping import (Level, LevelConfig, BitMapping, AddressSpace,
                            DEFAULT_COUNTS, bit_width, check_consistency)
from dramap.resolver import MAX_BIT_SPAN
from dramap.units import parse_capacity, is_error
from dramap.vm import parse_vms
from dramap.palette import Palette

class Settings:
    mode = 'view'
    timestamp = datetime.now().strftime('%Y-%m-%d_%H:%M:%S')

    @classmethod
    def set_mode(cls, args):
        if args.mode is not None:
            cls.mode = args.mode
        return

    @classmethod
    def from_file(cls, filename=None):
        """Load the memory description and the VMs from a configuration
        file. Without a file, the defaults are used."""
        cfg = {}
        if filename is not None:
            cfg = ConfigFile.load(filename)
        cls.Memory.from_dict(cfg, file_path=filename)
        cls.Vms.from_dict(cfg)
        return


    class Memory:
        ############################################################
        #### BASIC VALUES
        file_path = None
        capacity_text = None
        max_bit_span = MAX_BIT_SPAN
        levels = {l: LevelConfig.empty(DEFAULT_COUNTS[l]) for l in Level}

        ############################################################
        #### DERIVED VALUES
        capacity = None

        @classmethod
        def from_dict(cls, cfg, file_path=None):
            cls.file_path = file_path
            where = f'While reading "{file_path}":\n' if file_path else ''

            cls.capacity_text = None
            if 'capacity' in cfg:
                cls.capacity_text = str(cfg['capacity'])
            cls.max_bit_span = cfg.get('max_bit_span', MAX_BIT_SPAN)

            levels = {l: LevelConfig.empty(DEFAULT_COUNTS[l]) for l in Level}
            for name,lvl_cfg in cfg.get('levels', {}).items():
                try:
                    level = Level.from_name(name)
                except ValueError as e:
                    UI.error(f'{where}{e}')
                count = lvl_cfg['count']
                bits = lvl_cfg.get('bits')
                if bits is None:
                    levels[level] = LevelConfig.empty(count)
                    continue
                if len(bits) != bit_width(count):
                    UI.error(f'{where}{level.label} has {count} elements, '
                             f'which need {bit_width(count)} bit groups, but '
                             f'{len(bits)} were given.')
                levels[level] = LevelConfig.from_groups(count, bits)
            cls.levels = levels

            cls.__init_derived_values()
            return

        @classmethod
        def from_args(cls, args):
            if args.capacity is not None:
                cls.capacity_text = args.capacity
            if args.max_bit_span is not None:
                if args.max_bit_span < 0:
                    UI.error('Argument "-bs/--max-bit-span" cannot be '
                             'negative.')
                cls.max_bit_span = args.max_bit_span
            cls.__init_derived_values()
            return

        @classmethod
        def __init_derived_values(cls):
            cls.capacity = None
            if cls.capacity_text is None:
                return
            capacity = parse_capacity(cls.capacity_text)
            if is_error(capacity):
                UI.error(f'Invalid capacity "{cls.capacity_text}": '
                         f'{capacity}')
            cls.capacity = capacity
            return

        @classmethod
        def mapping(cls):
            """Immutable snapshot of the current bit assignment."""
            return BitMapping(cls.levels)

        @classmethod
        def space(cls):
            if cls.capacity is None:
                UI.error('No memory capacity given. Set "capacity" in the '
                         'configuration file or use -C/--capacity.')
            return AddressSpace(cls.capacity)

        @classmethod
        def to_dict(cls):
            return {
                'capacity': cls.capacity_text,
                'max_bit_span': cls.max_bit_span,
                'levels': {
                    l.label: {'count': c.count,
                              'bits': [g.raw for g in c.groups]}
                    for l,c in cls.levels.items()
                }
            }

        @classmethod
        def describe(cls):
            if cls.capacity is None:
                UI.text('Capacity   : (not set)')
            else:
                space = cls.space()
                names = ['Capacity', 'Address Bits', 'Max Bit Span']
                vals = [f'{cls.capacity} bytes ({cls.capacity_text})',
                        f'{space.address_bits} (bits 0..{space.max_bit})',
                        cls.max_bit_span]
                UI.columns((names, vals), sep=' : ')

            names = ['Level']
            counts = ['Count']
            widths = ['Bits']
            groups = ['Bit Groups (identifier bit 0 first)']
            for level,config in cls.levels.items():
                names.append(level.label)
                counts.append(config.count)
                widths.append(config.width)
                groups.append(' | '.join(f'[{g}]' for g in config.groups)
                              or '-')
            UI.columns((names, counts, widths, groups), sep='  ',
                       cols_align='lrrl', header=True)

            if cls.capacity is not None:
                status = check_consistency(cls.mapping(), cls.space())
                if status.consistent:
                    UI.info(status.message, pre='')
                else:
                    UI.warning(status.message, pre='')
            for level,config in cls.levels.items():
                if not config.is_valid:
                    UI.warning(f'{level.label} has unparsable bit groups: '
                               + ', '.join(f'"{g.raw}"' for g in config.groups
                                           if not g.is_valid))
            return


    class Vms:
        ############################################################
        #### BASIC VALUES
        # (base, size) strings as typed by the user
        entries = []

        ############################################################
        #### DERIVED VALUES
        descriptors = []
        palette = None

        @classmethod
        def from_dict(cls, cfg):
            cls.entries = [(vm['base'], vm['size'])
                           for vm in cfg.get('vms', [])]
            cls.palette = Palette(max(len(cls.entries), 8))
            cls.descriptors = parse_vms(cls.entries, cls.palette)
            for vm in cls.descriptors:
                if not vm.is_valid:
                    UI.warning(f'Ignoring {vm.name}: {vm.error}')
            return

        @classmethod
        def valid(cls):
            return [vm for vm in cls.descriptors if vm.is_valid]

        @classmethod
        def describe(cls, decoder=None):
            if len(cls.descriptors) == 0:
                UI.text('No VMs configured.')
                return
            cols = (['VM'], ['Base'], ['End'], ['Size'], ['Color'])
            for vm in cls.descriptors:
                cols[0].append(vm.name)
                if vm.is_valid:
                    cols[1].append(f'0x{vm.base:X}')
                    cols[2].append(f'0x{vm.end:X}')
                    cols[3].append(f'{vm.size} bytes')
                else:
                    cols[1].append(vm.base_text)
                    cols[2].append('-')
                    cols[3].append(f'invalid ({vm.error})')
                cols[4].append(vm.color)
            UI.columns(cols, sep='  ', header=True)

            # where the first and last byte of each VM land
            if decoder is not None:
                for vm in cls.valid():
                    first = decoder(vm.base)
                    last = decoder(vm.end)
                    UI.text(f'{vm.name}: '
                            + ', '.join(f'{l.label}{first[l]}'
                                        for l in Level)
                            + '  ->  '
                            + ', '.join(f'{l.label}{last[l]}'
                                        for l in Level))
            return


    class Plot:
        ############################################################
        #### BASIC VALUES
        width = 8 # image width
        height = 4 # image height
        dpi = 200 # resolution of the image
        format = 'png' # format, usually png or pdf
        img_border_pad = 0.025 # padding around the image
        img_title_vpad = 6 # padding between the plot and its title
        max_cols = 16 # elements per row in the grid
        label_max_count = 256 # above this many elements, drop the labels
        edge_color = '#BBBBBBFF'

        # maximum number of ranges stored per element in a vdata file
        max_export_ranges = 64

        @classmethod
        def from_args(cls, args):
            # assign only if new value is not None
            def assg_val(current, new):
                return new if new is not None else current

            cls.width = assg_val(cls.width, args.plot_width)
            cls.height = assg_val(cls.height, args.plot_height)
            cls.dpi = assg_val(cls.dpi, args.dpi)
            cls.format = assg_val(cls.format, args.format)
            cls.max_cols = assg_val(cls.max_cols, args.max_cols)
            if cls.max_cols < 1:
                UI.error('Argument "-mc/--max-cols" must be at least 1.')
            return

        @classmethod
        def describe(cls):
            attrs = ['width', 'height', 'dpi', 'format', 'max_cols',
                     'label_max_count', 'max_export_ranges']
            vals = [getattr(cls, at) for at in attrs]
            UI.indent_in(title='PLOT SETTINGS')
            UI.columns((attrs, vals), sep=' : ')
            UI.indent_out()
            return


class ConfigFile:
    """JSON description of the memory, checked against schema before any
    value is used."""
    bits_schema = {
        'type' : 'array',
        'items' : {
            'anyOf' : [
                {'type' : 'string'},
                {'type' : 'array',
                 'items' : {'type' : 'integer', 'minimum' : 0}}
            ]
        }
    }
    schema = {
        'type' : 'object',
        'properties' : {
            'capacity' : {'type' : ['string', 'integer']},
            'max_bit_span' : {'type' : 'integer', 'minimum' : 0},
            'levels' : {
                'type' : 'object',
                'additionalProperties' : {
                    'type' : 'object',
                    'properties' : {
                        'count' : {'type' : 'integer', 'minimum' : 0},
                        'bits' : bits_schema
                    },
                    'required' : ['count'],
                    'additionalProperties' : False
                }
            },
            'vms' : {
                'type' : 'array',
                'items' : {
                    'type' : 'object',
                    'properties' : {
                        'base' : {'type' : 'string'},
                        'size' : {'type' : 'string'}
                    },
                    'required' : ['base', 'size']
                }
            }
        },
        'additionalProperties' : False
    }

    @classmethod
    def load(cls, filepath):
        if not os.path.isfile(filepath):
            UI.error(f'While reading "{filepath}":\n'
                     'File does not exist or cannot be read.')
        try:
            with open(filepath, 'r') as f:
                cfg = json.load(f)
        except json.JSONDecodeError as e:
            UI.error(f'While reading "{filepath}". File does not seem to '
                     f'be valid JSON:\n{e}')

        try:
            validate(instance=cfg, schema=cls.schema)
        except ValidationError as e:
            UI.error(f'While reading "{filepath}". Malformed configuration '
                     f'file:\n{e.message}')
        return cfg
