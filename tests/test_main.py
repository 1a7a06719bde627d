import json

import pytest

from dramap.main import (mode_dispatcher, load_settings, decode_mode,
                         resolve_mode, view_mode)
from dramap.mapping import Level
from dramap.resolver import AddressRange, Aborted
from dramap.util import command_line_args_parser, fmt_ranges
from dramap.vm import SINGLE, CONFLICT

GB = 1 << 30

CONFIG = {
    'capacity': '1GB',
    'levels': {'Bank': {'count': 4, 'bits': ['5', '6']}},
    'vms': [{'base': '0x0', 'size': '0x1000'},
            {'base': '0x0', 'size': '0x20'}],
}


@pytest.fixture
def config(tmp_path):
    path = tmp_path / 'mem.json'
    path.write_text(json.dumps(CONFIG))
    return str(path)


def run(argv):
    args = command_line_args_parser(argv)
    load_settings(args)
    return args


def test_args_split_on_double_dash() -> None:
    args = command_line_args_parser(['--mode', 'plot', '--', 'a.json',
                                     'b.json'])
    assert args.mode == 'plot'
    assert args.input_files == ['a.json', 'b.json']
    assert command_line_args_parser([]).input_files == []
    assert command_line_args_parser([]).mode == 'view'


def test_decode_mode(config) -> None:
    ids = decode_mode(run(['-c', config, '-a', '0x60']))
    assert ids[Level.BANK] == 3
    assert ids[Level.ROW] == 0
    assert mode_dispatcher(['--mode', 'decode', '-c', config,
                            '-a', '0x60']) == 0


def test_decode_mode_needs_a_valid_address(config) -> None:
    with pytest.raises(SystemExit):
        decode_mode(run(['-c', config]))
    with pytest.raises(SystemExit):
        decode_mode(run(['-c', config, '-a', 'xyz']))


def test_resolve_mode(config) -> None:
    ranges = resolve_mode(run(['-c', config, '-p', 'Bank=3']))
    assert ranges[0] == AddressRange(96, 127)
    assert len(ranges) == GB // 128
    whole = resolve_mode(run(['-c', config, '-C', '4KB']))
    assert list(whole) == [AddressRange(0, 4095)]


def test_resolve_mode_aborts_on_narrow_span(config) -> None:
    result = resolve_mode(run(['-c', config, '-p', 'Bank=1', '-bs', '0']))
    assert isinstance(result, Aborted)


@pytest.mark.parametrize('path', ['Bank', 'Bank=-1', 'Rank=0,Channel=0'])
def test_resolve_mode_rejects_bad_paths(config, path) -> None:
    with pytest.raises(SystemExit):
        resolve_mode(run(['-c', config, '-p', path]))


def test_decoded_identifier_resolves_on_uneven_level(tmp_path) -> None:
    path = tmp_path / 'three_banks.json'
    path.write_text(json.dumps({
        'capacity': '16',
        'levels': {'Bank': {'count': 3, 'bits': ['0', '1']}},
    }))
    cfg = str(path)
    ids = decode_mode(run(['-c', cfg, '-a', '0x3']))
    assert ids[Level.BANK] == 3
    ranges = resolve_mode(run(['-c', cfg, '-p', f'Bank={ids[Level.BANK]}']))
    assert 3 in ranges
    assert len(ranges) == 4
    assert not resolve_mode(run(['-c', cfg, '-p', 'Bank=4']))


def test_view_mode_classifies_banks(config, tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    view = view_mode(run(['-c', config, '-p', 'Channel=0,Rank=0']))
    assert view.level is Level.BANK
    assert [el['usage'] for el in view.elements] == \
        [CONFLICT, SINGLE, SINGLE, SINGLE]
    assert view.elements[0]['desc'] == 'Conflict: Used by 2 VMs'
    assert view.count(CONFLICT) == 1
    # nothing is written without -x
    assert list(tmp_path.glob('*.vdata_*')) == []


def test_view_plot_exports_and_replots(config, tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert mode_dispatcher(['--mode', 'view-plot', '-c', config,
                            '-p', 'Channel=0,Rank=0', '-x', '-dp', '50']) == 0
    vdata = tmp_path / 'Channel0_Rank0.vdata_Bank.json'
    plot = tmp_path / 'Channel0_Rank0.plot_Bank.png'
    assert vdata.is_file()
    assert plot.is_file()

    data = json.loads(vdata.read_text())
    assert data['view']['level'] == 'Bank'
    assert data['view']['breadcrumb'] == 'System > Channel0 > Rank0'
    elements = data['view']['elements']
    assert [el['name'] for el in elements] == ['Bank0', 'Bank1', 'Bank2',
                                               'Bank3']
    assert elements[3]['range_count'] == GB // 128
    assert elements[3]['ranges'][0] == [96, 127]
    assert len(elements[3]['ranges']) == 64
    assert elements[3]['bytes'] == GB // 4
    assert elements[0]['vms'] == [0, 1]
    assert [vm['name'] for vm in data['vms']] == ['VM 1', 'VM 2']
    assert data['memory']['levels']['Bank']['bits'] == ['5', '6']

    plot.unlink()
    assert mode_dispatcher(['--mode', 'plot', '-dp', '50', '--',
                            str(vdata)]) == 0
    assert plot.is_file()


def test_plot_mode_needs_files() -> None:
    with pytest.raises(SystemExit):
        mode_dispatcher(['--mode', 'plot'])


def test_plot_mode_rejects_malformed_vdata(tmp_path) -> None:
    bad = tmp_path / 'x.vdata_Bank.json'
    bad.write_text(json.dumps({'view': {}}))
    with pytest.raises(SystemExit):
        mode_dispatcher(['--mode', 'plot', '--', str(bad)])


def test_fmt_ranges() -> None:
    ranges = [AddressRange(i * 64, i * 64 + 31) for i in range(6)]
    assert fmt_ranges(ranges[:2]) == '0x0 - 0x1F, 0x40 - 0x5F'
    assert fmt_ranges(ranges).endswith(', ... (6 ranges)')
    assert fmt_ranges([]) == '(no matching address)'
