import json

import pytest

from dramap.settings import Settings as st
from dramap.mapping import Level
from dramap.util import command_line_args_parser

GB = 1 << 30


def write_config(tmp_path, cfg, name='mem.json'):
    path = tmp_path / name
    path.write_text(cfg if isinstance(cfg, str) else json.dumps(cfg))
    return str(path)


CONFIG = {
    'capacity': '1GB',
    'max_bit_span': 20,
    'levels': {
        'Bank': {'count': 4, 'bits': ['5', '6']},
        'Row': {'count': 2, 'bits': [[0, 2]]},
        'Column': {'count': 64},
    },
    'vms': [{'base': '0x0', 'size': '0x1000'},
            {'base': 'nope', 'size': '0x10'}],
}


def test_load_config_file(tmp_path) -> None:
    st.from_file(write_config(tmp_path, CONFIG))
    assert st.Memory.capacity == GB
    assert st.Memory.max_bit_span == 20
    mapping = st.Memory.mapping()
    assert [g.positions for g in mapping[Level.BANK].groups] == [(5,), (6,)]
    assert mapping[Level.ROW].groups[0].positions == (0, 2)
    assert mapping[Level.COLUMN].count == 64
    assert mapping[Level.COLUMN].groups[0].is_empty
    assert mapping[Level.SUBARRAY].count == 8
    assert len(st.Vms.descriptors) == 2
    assert [vm.name for vm in st.Vms.valid()] == ['VM 1']
    assert st.Memory.space().max_bit == 30


def test_config_round_trips_through_dict(tmp_path) -> None:
    st.from_file(write_config(tmp_path, CONFIG))
    saved = st.Memory.to_dict()
    assert saved['capacity'] == '1GB'
    assert saved['levels']['Bank'] == {'count': 4, 'bits': ['5', '6']}
    assert saved['levels']['Row'] == {'count': 2, 'bits': ['0,2']}
    again = write_config(tmp_path, {'capacity': saved['capacity'],
                                    'levels': saved['levels']}, 'again.json')
    before = st.Memory.mapping()
    st.from_file(again)
    assert st.Memory.mapping() == before


def test_defaults_without_file() -> None:
    st.from_file(None)
    assert st.Memory.capacity is None
    assert st.Memory.mapping()[Level.COLUMN].count == 32
    assert st.Vms.descriptors == []
    with pytest.raises(SystemExit):
        st.Memory.space()


def test_command_line_overrides(tmp_path) -> None:
    st.from_file(write_config(tmp_path, CONFIG))
    st.Memory.from_args(command_line_args_parser(['-C', '2GB', '-bs', '12']))
    assert st.Memory.capacity == 2 * GB
    assert st.Memory.max_bit_span == 12
    with pytest.raises(SystemExit):
        st.Memory.from_args(command_line_args_parser(['-C', '3TB']))


def test_loading_resets_previous_values(tmp_path) -> None:
    st.from_file(write_config(tmp_path, CONFIG))
    st.from_file(write_config(tmp_path, {'levels': {}}, 'empty.json'))
    assert st.Memory.capacity is None
    assert st.Memory.mapping()[Level.BANK].groups[0].is_empty
    assert st.Vms.descriptors == []


@pytest.mark.parametrize('cfg', [
    {'levels': {'Bank': {'count': 4, 'bits': ['5']}}},
    {'levels': {'Bank': {'count': 'four'}}},
    {'levels': {'Bank': {'bits': ['5', '6']}}},
    {'levels': {'Socket': {'count': 2}}},
    {'capacity': 'abc'},
    {'vms': [{'base': '0x0'}]},
    {'unknown': 1},
    '{"capacity": ',
])
def test_malformed_config_exits(tmp_path, cfg) -> None:
    with pytest.raises(SystemExit):
        st.from_file(write_config(tmp_path, cfg))


def test_missing_config_exits(tmp_path) -> None:
    with pytest.raises(SystemExit):
        st.from_file(str(tmp_path / 'missing.json'))


def test_plot_settings_from_command_line() -> None:
    width, max_cols = st.Plot.width, st.Plot.max_cols
    st.Plot.from_args(command_line_args_parser(['-pw', '5', '-mc', '4']))
    assert st.Plot.width == 5.0
    assert st.Plot.max_cols == 4
    assert st.Plot.height == 4
    st.Plot.describe()
    with pytest.raises(SystemExit):
        st.Plot.from_args(command_line_args_parser(['-mc', '0']))
    st.Plot.width, st.Plot.max_cols = width, max_cols
