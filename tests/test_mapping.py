import pytest

from dramap.mapping import (bit_width, bit_at, Level, BitGroup, LevelConfig,
                            BitMapping, AddressSpace, PathConstraint,
                            DEFAULT_COUNTS, check_consistency)


@pytest.mark.parametrize('count, width', [
    (0, 0), (1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (8, 3), (9, 4),
    (16, 4), (17, 5), (1 << 20, 20), ((1 << 20) + 1, 21),
    (1 << 31, 31), ((1 << 31) + 1, 32),
])
def test_bit_width(count, width) -> None:
    assert bit_width(count) == width


def test_bit_width_is_the_smallest_sufficient_width() -> None:
    for count in range(2, 5000):
        w = bit_width(count)
        assert 2 ** (w - 1) < count <= 2 ** w


def test_bit_at_reads_negative_values_as_zero() -> None:
    assert bit_at(0b100, 2) == 1
    assert bit_at(0b100, 1) == 0
    assert bit_at(-1, 0) == 0
    assert bit_at(1, -1) == 0


def test_level_names() -> None:
    assert [l.label for l in Level] == ['Channel', 'Rank', 'Bank', 'BankGroup',
                                        'Subarray', 'Row', 'Column']
    assert Level.from_name('bankgroup') is Level.BANK_GROUP
    assert Level.from_name(' Bank_Group ') is Level.BANK_GROUP
    assert Level.from_name('COLUMN') is Level.COLUMN
    with pytest.raises(ValueError):
        Level.from_name('Socket')


def test_level_child() -> None:
    assert Level.CHANNEL.child() is Level.RANK
    assert Level.ROW.child() is Level.COLUMN
    assert Level.COLUMN.child() is None


def test_bit_group_parse() -> None:
    assert BitGroup.parse('0,2').positions == (0, 2)
    assert BitGroup.parse(' 5 ').positions == (5,)
    assert BitGroup.parse('1, 3 ,7').positions == (1, 3, 7)
    assert BitGroup.parse('').is_empty
    assert BitGroup.parse('   ').is_empty
    for bad in ('a,1', '1,,2', '-1', '0x3', '1.5'):
        group = BitGroup.parse(bad)
        assert not group.is_valid, bad
        assert group.raw == bad


def test_bit_group_xor() -> None:
    group = BitGroup.parse('0,2')
    assert group.xor(0b001) == 1
    assert group.xor(0b100) == 1
    assert group.xor(0b101) == 0
    assert group.xor(0b010) == 0


def test_bit_group_repeated_position_cancels() -> None:
    group = BitGroup.parse('3,3')
    assert group.mask == 0
    assert group.xor(0b1000) == 0


def test_bit_group_of_rejects_negative_positions() -> None:
    assert BitGroup.of(5, 6).raw == '5,6'
    with pytest.raises(ValueError):
        BitGroup.of(-1)


def test_level_config_group_count_matches_width() -> None:
    assert LevelConfig.empty(4).width == 2
    assert LevelConfig.empty(1).width == 0
    with pytest.raises(ValueError):
        LevelConfig(4, ())
    with pytest.raises(ValueError):
        LevelConfig.from_groups(4, ['5'])
    with pytest.raises(ValueError):
        LevelConfig(-1, ())


def test_level_config_count_change_discards_groups() -> None:
    config = LevelConfig.from_groups(4, ['5', '6'])
    changed = config.with_count(8)
    assert changed.count == 8
    assert changed.groups == (BitGroup(),) * 3
    assert config.groups[0].positions == (5,)


def test_level_config_with_group() -> None:
    config = LevelConfig.empty(4).with_group(0, '7')
    assert config.groups[0].positions == (7,)
    assert config.groups[1].is_empty
    assert not config.with_group(1, 'x').is_valid


def test_level_config_mixed_group_inputs() -> None:
    config = LevelConfig.from_groups(8, ['0,2', [4, 5], BitGroup.of(9)])
    assert [g.positions for g in config.groups] == [(0, 2), (4, 5), (9,)]


def test_bit_mapping_defaults() -> None:
    mapping = BitMapping.default()
    assert len(mapping) == 7
    assert [mapping[l].count for l in Level] == [1, 1, 4, 2, 8, 16, 32]
    assert all(mapping[l].count == DEFAULT_COUNTS[l] for l in mapping)
    assert mapping.total_width == 15


def test_bit_mapping_is_immutable_snapshot() -> None:
    mapping = BitMapping.default()
    changed = mapping.with_level(Level.BANK,
                                 LevelConfig.from_groups(4, ['5', '6']))
    assert mapping[Level.BANK].groups[0].is_empty
    assert changed[Level.BANK].groups[0].positions == (5,)
    assert changed != mapping
    assert changed == BitMapping({Level.BANK:
                                  LevelConfig.from_groups(4, ['5', '6'])})
    with pytest.raises(ValueError):
        BitMapping({'Bank': LevelConfig.empty(4)})


def test_address_space() -> None:
    with pytest.raises(ValueError):
        AddressSpace(0)
    space = AddressSpace(1024)
    assert space.max_bit == 10
    assert space.address_bits == 10
    assert 1023 in space
    assert 1024 not in space
    odd = AddressSpace(1536)
    assert odd.max_bit == 10
    assert odd.address_bits == 11


def test_consistency_check() -> None:
    mapping = BitMapping.default()
    ok = check_consistency(mapping, AddressSpace(32 * 1024))
    assert ok.consistent
    assert ok.mapped_bits == 15
    assert 'Consistent' in ok.message
    bad = check_consistency(mapping, AddressSpace(1 << 30))
    assert not bad.consistent
    assert bad.address_bits == 30
    assert 'Inconsistent' in bad.message


def test_path_parse_and_names() -> None:
    path = PathConstraint.parse('Channel=0,Rank=2')
    assert list(path) == [(Level.CHANNEL, 0), (Level.RANK, 2)]
    assert path.names() == ['Channel0', 'Rank2']
    assert path.breadcrumb() == 'System > Channel0 > Rank2'
    assert str(path) == 'Channel=0,Rank=2'
    assert PathConstraint.parse(str(path)) == path
    assert PathConstraint.parse('bank=0x3')[0] == (Level.BANK, 3)
    assert len(PathConstraint.parse('')) == 0
    assert PathConstraint().breadcrumb() == 'System'


@pytest.mark.parametrize('text', [
    'Rank=0,Channel=1', 'Bank=1,Bank=2', 'Channel=-1', 'Channel', 'Channel=x',
    'Socket=0',
])
def test_path_rejects_malformed_input(text) -> None:
    with pytest.raises(ValueError):
        PathConstraint.parse(text)


def test_path_view_level() -> None:
    assert PathConstraint().view_level() is Level.CHANNEL
    assert PathConstraint.parse('Channel=0').view_level() is Level.RANK
    assert PathConstraint.parse('Channel=0,Rank=1').view_level() is Level.BANK
    assert PathConstraint.parse('Bank=2').view_level() is Level.BANK_GROUP
    assert PathConstraint.parse('Column=3').view_level() is Level.COLUMN


def test_path_extend() -> None:
    path = PathConstraint().extend(Level.CHANNEL, 1).extend(Level.ROW, 4)
    assert path.names() == ['Channel1', 'Row4']
    with pytest.raises(ValueError):
        path.extend(Level.BANK, 0)
