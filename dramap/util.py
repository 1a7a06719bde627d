import sys, json
import argparse # to get command line arguments
import matplotlib.pyplot as plt
from jsonschema import validate, ValidationError # to validate vdata files

from dramap.settings import Settings as st
from dramap.ui import UI

class ViewFile:
    """JSON export of one level view (vdata)."""
    fmt_name = 'vdata'
    ext = 'json'
    schema = {
        'type' : 'object',
        'properties' : {
            'meta'   : {'type' : 'object'},
            'memory' : {'type' : 'object'},
            'vms'    : {'type' : 'array'},
            'view'   : {
                'type' : 'object',
                'properties' : {
                    'path'  : {'type' : 'string'},
                    'level' : {'type' : 'string'},
                    'elements' : {
                        'type' : 'array',
                        'items' : {
                            'type' : 'object',
                            'properties' : {
                                'id'     : {'type' : 'integer'},
                                'name'   : {'type' : 'string'},
                                'status' : {'enum' : ['ok', 'aborted']},
                                'color'  : {'type' : 'string'},
                            },
                            'required' : ['id', 'name', 'status', 'color']
                        }
                    }
                },
                'required' : ['path', 'level', 'elements']
            }
        },
        'required' : ['meta', 'memory', 'vms', 'view']
    }

    @classmethod
    def filename(cls, view_dict):
        path = view_dict['view']['path'].replace('=', '').replace(',', '_')
        prefix = f'{path}.' if path else ''
        return f'{prefix}{cls.fmt_name}_{view_dict["view"]["level"]}.{cls.ext}'

    @classmethod
    def save(cls, data:dict, filename=None):
        filename = filename or cls.filename(data)
        try:
            validate(instance=data, schema=cls.schema)
        except ValidationError as e:
            UI.error(f'The data being saved constitutes a malformed '
                     f'{cls.fmt_name} file:\n{e.message}')
        try:
            with open(filename, 'w') as f:
                json.dump(data, f, indent=1)
        except OSError as e:
            UI.error(f'While trying to save {filename}.\n\n{e}')
        UI.text(f'{cls.fmt_name.ljust(UI.level_name_hpad)}: {filename}')
        return filename

    @classmethod
    def load(cls, filepath):
        if filepath is None:
            UI.error('While reading vdata file. No file path provided.')
        try:
            with open(filepath, 'r') as open_file:
                file_dict = json.load(open_file)
        except (FileNotFoundError, IOError):
            UI.error(f'While reading "{filepath}". File does not exist or '
                     'cannot be read.')
        except json.JSONDecodeError:
            UI.error(f'While reading "{filepath}". File does not seem to '
                     f'be a valid {cls.ext} file.')

        try:
            validate(instance=file_dict, schema=cls.schema)
        except ValidationError as e:
            UI.error(f'While reading "{filepath}". This seems to be a '
                     f'malformed {cls.fmt_name} file:\n{e.message}')
        return file_dict

class PlotFile:
    fmt_name = 'plot'

    @classmethod
    def save(cls, mpl_fig, stem):
        filename = f'{stem}.{st.Plot.format}'
        try:
            mpl_fig.savefig(filename, dpi=st.Plot.dpi, bbox_inches='tight',
                            pad_inches=st.Plot.img_border_pad)
        except (OSError, ValueError) as e:
            UI.error(f'While trying to save {filename}:\n\n{e}')
        finally:
            plt.close(mpl_fig)
        UI.text(f'{cls.fmt_name.ljust(UI.level_name_hpad)}: {filename}')
        return filename

def fmt_ranges(ranges, limit=4):
    """'0x0 - 0x1F, 0x40 - 0x5F, ... (16 ranges)'"""
    shown = []
    for i,r in enumerate(ranges):
        if i == limit:
            break
        shown.append(str(r))
    count = len(ranges)
    text = ', '.join(shown)
    if count > limit:
        text += f', ... ({count} ranges)'
    return text or '(no matching address)'

def command_line_args_parser(argv=None):
    synopsis = ('DRAM Address Mapper, a tool to explore how physical '
                'addresses are spread over a memory hierarchy '
                '(Channel > Rank > Bank > BankGroup > Subarray > Row > '
                'Column).')
    config_fmt = ('config.json\n'
                  '  The configuration file is JSON with this layout:\n'
                  '\n'
                  '   {\n'
                  '     "capacity": "1GB",\n'
                  '     "max_bit_span": 24,\n'
                  '     "levels": {\n'
                  '       "Bank": {"count": 4, "bits": ["5", "6"]},\n'
                  '       "Row" : {"count": 2, "bits": ["0,2"]}\n'
                  '     },\n'
                  '     "vms": [{"base": "0x0", "size": "0x1000"}]\n'
                  '   }\n'
                  '\n'
                  '  Each "bits" entry lists the physical bits XOR-ed into\n'
                  '  one identifier bit, identifier bit 0 first. Levels not\n'
                  '  given keep their default count and have no bits.')

    examples = ('examples:\n'
                '  Decode a physical address:\n'
                '      dramap --mode decode -c mem.json -a 0x60\n'
                '\n'
                '  Ranges of Bank 3 in Rank 1 of Channel 0:\n'
                '      dramap --mode resolve -c mem.json '
                '-p Channel=0,Rank=1,Bank=3\n'
                '\n'
                '  Banks under Channel 0, colored by VM, with a plot:\n'
                '      dramap --mode view-plot -c mem.json -p Channel=0\n'
                '\n'
                '  Plot again a previously exported view:\n'
                '      dramap --mode plot -- Channel0.vdata_Rank.json')

    parser = argparse.ArgumentParser(
        prog='dramap',
        description=synopsis+'\n\n',
        epilog=config_fmt+'\n\n'+examples,
        formatter_class=argparse.RawTextHelpFormatter)

    parser.add_argument(
        '--mode', metavar='MODE', dest='mode',
        choices=['decode', 'resolve', 'view', 'view-plot', 'plot'],
        type=str, default='view',
        help=(
            'Defines the operation mode of the tool:\n'
            'decode    : Identifier of every level for an address (-a).\n'
            'resolve   : Address ranges of a drill-down path (-p).\n'
            'view      : (default) Ranges and VM usage of every element\n'
            '            of the level below a path (-p).\n'
            '              Output: VDATA file if -x is given.\n'
            'view-plot : Like view, and plot the elements.\n'
            '              Output: VDATA and PLOT files.\n'
            'plot      : Plot previously exported views.\n'
            '              Input : list of VDATA files.')
    )

    parser.add_argument(
        '-c', '--config', metavar='CONFIG', dest='config',
        type=str, default=None,
        help='JSON file describing the memory. See "config.json" section.'
    )

    parser.add_argument(
        '-C', '--capacity', metavar='CAPACITY', dest='capacity',
        type=str, default=None,
        help=('Total capacity, overrides the configuration file.\n'
              'Format : <number>[K|M|G][B]\n'
              'Example: 2GB')
    )

    parser.add_argument(
        '-a', '--address', metavar='ADDR', dest='address',
        type=str, default=None,
        help=('Physical address to decode (decode mode).\n'
              'Format : hexadecimal, with or without 0x')
    )

    parser.add_argument(
        '-p', '--path', metavar='PATH', dest='path',
        type=str, default='',
        help=('Drill-down path, from the top of the hierarchy.\n'
              'Format : <Level>=<id>{,<Level>=<id>}\n'
              'Example: Channel=0,Rank=1')
    )

    parser.add_argument(
        '-bs', '--max-bit-span', metavar='SPAN', dest='max_bit_span',
        type=int, default=None,
        help=('Widest distance between the lowest and the highest bit\n'
              'referenced by a path that will be searched. Default: 24')
    )

    parser.add_argument(
        '-x', '--export', dest='export', action='store_true',
        help='Export the view as a VDATA file.'
    )

    parser.add_argument(
        '-pw', '--plot-width', metavar='WIDTH', dest='plot_width',
        type=float, default=None,
        help='Width of the plots.'
    )

    parser.add_argument(
        '-ph', '--plot-height', metavar='HEIGHT', dest='plot_height',
        type=float, default=None,
        help='Height of the plots.'
    )

    parser.add_argument(
        '-dp', '--dpi', metavar='DPI', dest='dpi',
        type=int, default=None,
        help='DPI of the resulting plots.'
    )

    parser.add_argument(
        '-mc', '--max-cols', metavar='COLS', dest='max_cols',
        type=int, default=None,
        help='Elements per row in the plotted grid.'
    )

    parser.add_argument(
        '-fr', '--format', metavar='FORMAT', dest='format',
        choices=['png', 'pdf'], default=None,
        help=('Output format of the plots.\n'
              'Format: pdf | png')
    )

    argv = sys.argv[1:] if argv is None else list(argv)

    # split before and after '--'
    if '--' in argv:
        sep_index = argv.index('--')
        before_double_dash = argv[:sep_index]
        after_double_dash = argv[sep_index + 1:]
    else:
        before_double_dash = argv
        after_double_dash = []

    args = parser.parse_args(before_double_dash)
    args.input_files = after_double_dash
    return args
