#!/usr/bin/python3
from dramap.settings import Settings as st
from dramap.ui import UI
from dramap.util import command_line_args_parser, ViewFile, PlotFile, fmt_ranges
from dramap.mapping import PathConstraint, Level
from dramap.decoder import decode, decode_string
from dramap.resolver import resolve_ranges, Aborted
from dramap.units import parse_hex_address, is_error
from dramap.view import LevelView

def load_settings(args):
    cfg_name = args.config if args.config is not None else 'Defaults'
    UI.indent_in(title=f'MEMORY CONFIGURATION ({cfg_name})')
    st.from_file(args.config)
    st.Memory.from_args(args)
    st.Memory.describe()
    UI.indent_out()
    return

def parse_path(args):
    try:
        return PathConstraint.parse(args.path)
    except ValueError as e:
        UI.error(f'Invalid path "{args.path}": {e}')

def decode_mode(args):
    if args.address is None:
        UI.error('In "decode" mode you must provide an address (-a).')
    address = parse_hex_address(args.address)
    if is_error(address):
        UI.error(f'Invalid address "{args.address}": {address}')

    UI.indent_in(title=f'DECODING 0x{address:X}')
    ids = decode_string(args.address, st.Memory.mapping())
    names = [l.label for l in Level]
    vals = [str(ids[l]) for l in Level]
    UI.columns((names, vals), sep=' : ')
    if st.Memory.capacity is not None and address not in st.Memory.space():
        UI.warning(f'0x{address:X} is beyond the capacity '
                   f'({st.Memory.capacity} bytes).')
    UI.indent_out()
    return ids

def resolve_mode(args):
    path = parse_path(args)
    UI.indent_in(title=f'RESOLVING {path.breadcrumb()}')
    ranges = resolve_ranges(path, st.Memory.mapping(), st.Memory.space(),
                            st.Memory.max_bit_span)
    if isinstance(ranges, Aborted):
        UI.warning(ranges.reason, pre='ABORTED')
    else:
        UI.text(f'{len(ranges)} range(s), {ranges.covered_bytes()} bytes')
        if len(ranges) <= 32:
            for r in ranges:
                UI.text(str(r))
        else:
            UI.text(fmt_ranges(ranges, limit=32))
    UI.indent_out()
    return ranges

def view_mode(args):
    path = parse_path(args)

    UI.indent_in(title='VIRTUAL MACHINES')
    mapping = st.Memory.mapping()
    st.Vms.describe(decoder=lambda a: decode(a, mapping))
    UI.indent_out()

    level = path.view_level()
    UI.indent_in(title=f'{level.label.upper()} VIEW ({path.breadcrumb()})')
    view = LevelView.build(path, mapping, st.Memory.space(),
                           st.Vms.descriptors, st.Memory.max_bit_span)
    view.describe()
    UI.indent_out()

    if args.export or st.mode == 'view-plot':
        UI.indent_in(title='EXPORTING')
        vdata = view.to_dict()
        vdata_name = None
        if args.export:
            vdata_name = ViewFile.save(vdata)
        if st.mode == 'view-plot':
            fig = view.plot()
            if fig is not None:
                stem = (vdata_name or ViewFile.filename(vdata)).\
                    rsplit('.', 1)[0].replace(ViewFile.fmt_name,
                                              PlotFile.fmt_name)
                PlotFile.save(fig, stem)
        UI.indent_out()
    return view

def plot_mode(args):
    vdata_paths = args.input_files
    if len(vdata_paths) == 0:
        UI.error('In "plot" mode you must at least provide one VDATA file.')

    for vd_path in vdata_paths:
        UI.indent_in(title=f'PLOTTING FROM VDATA ({vd_path})')
        view = LevelView.from_dict(ViewFile.load(vd_path))
        fig = view.plot()
        if fig is not None:
            stem = vd_path.rsplit('.', 1)[0].replace(ViewFile.fmt_name,
                                                     PlotFile.fmt_name)
            if stem == vd_path.rsplit('.', 1)[0]:
                stem += f'.{PlotFile.fmt_name}'
            PlotFile.save(fig, stem)
        UI.indent_out()
    return

def mode_dispatcher(argv=None):
    args = command_line_args_parser(argv)
    st.set_mode(args)
    st.Plot.from_args(args)

    if st.mode in ('plot', 'view-plot'):
        st.Plot.describe()

    if st.mode == 'plot':
        plot_mode(args)
    else:
        load_settings(args)
        if st.mode == 'decode':
            decode_mode(args)
        elif st.mode == 'resolve':
            resolve_mode(args)
        elif st.mode in ('view', 'view-plot'):
            view_mode(args)
        else:
            UI.error(f'Invalid mode "{args.mode}"')

    UI.info('Done!', pre='', out='out')
    UI.nl()
    return 0

def main():
    try:
        exit(mode_dispatcher())
    except KeyboardInterrupt:
        UI.indent_set(ind=0)
        UI.info('Process terminated by user.', pre='')
        exit(0)
