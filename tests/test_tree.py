import pytest

from paracobn import (
    Param, ParamDocument, ParamNode, NodeNotFound, ParamFormatError,
    hash40, parse, serialize, parse_path, format_path,
)


@pytest.fixture
def doc(sample_root, labels):
    return ParamDocument(sample_root, labels, 'fighter_param.prc')


def field_hashes(p):
    return list(p.value)


# =============================================================================
# Paths
# =============================================================================

def test_parse_and_format_path():
    assert parse_path('root') == []
    assert parse_path('root[2][10]') == [2, 10]
    assert format_path([3, 0]) == 'root[3][0]'
    for bad in ('', 'root[', 'root[-1]', 'node[0]', 'root[a]'):
        with pytest.raises(NodeNotFound):
            parse_path(bad)


def test_get_resolves_names(doc):
    assert doc.get('root').name == '0x0'
    assert doc.get('root[0]').name == 'walk_speed'
    assert doc.get('root[2][1]').name == 'kind'
    assert doc.get('root[2][1]').value_string(doc.labels) == 'fighter_param'
    item = doc.get('root[3][2]')
    assert (item.name, item.hash, item.type_name) == ('[2]', 2, 'Byte')


def test_get_missing_node(doc):
    with pytest.raises(NodeNotFound):
        doc.get('root[9]')
    with pytest.raises(NodeNotFound):
        doc.get('root[0][0]')
    with pytest.raises(NodeNotFound):
        doc.get('garbage')


def test_parent_path(doc):
    assert doc.parent_path('root[2][1]') == 'root[2]'
    assert doc.parent_path('root[2]') == 'root'
    assert doc.parent_path('root') is None


def test_paths(doc):
    all_paths = doc.paths()
    assert all_paths[:6] == ['root', 'root[0]', 'root[1]', 'root[2]', 'root[2][0]', 'root[2][1]']
    assert len(all_paths) == 1 + 4 + 2 + 8
    assert doc.paths(expanded={'root'}) == ['root', 'root[0]', 'root[1]', 'root[2]', 'root[3]']


def test_display_tree_is_a_copy(doc, sample_root):
    doc.get('root[0]').value.value = 99.0
    assert doc.root == sample_root


def test_unknown_hash_shows_hex():
    doc = ParamDocument(Param.struct({0xABC: Param.u8(1)}))
    assert doc.get('root[0]').name == '0xABC'


def test_is_expandable(doc):
    assert doc.get('root[2]').is_expandable
    assert not doc.get('root[0]').is_expandable
    doc.update_value('root[3]', Param.list())
    assert doc.get('root[3]').is_expandable


# =============================================================================
# Edits
# =============================================================================

def test_update_value(doc):
    assert doc.update_value('root[0]', Param.f32(2.0))
    assert doc.root.value[hash40('walk_speed')] == Param.f32(2.0)
    assert doc.get('root[0]').value_string() == '2.0'
    assert doc.update_value('root[3][0]', Param.string('changed'))
    assert doc.get('root[3][0]').type_name == 'String'


def test_update_value_keeps_own_copy(doc):
    value = Param.struct({1: Param.u8(1)})
    doc.update_value('root[2]', value)
    value.value[2] = Param.u8(2)
    assert len(doc.root.value[hash40('flags')].value) == 1


def test_update_value_invalid_path(doc):
    assert not doc.update_value('root[9]', Param.u8(1))
    assert not doc.update_value('root[0][0]', Param.u8(1))
    assert not doc.update_value('nonsense', Param.u8(1))


def test_update_root_requires_struct(doc):
    assert not doc.update_value('root', Param.u8(1))
    assert doc.update_value('root', Param.struct({5: Param.u8(5)}))
    assert doc.paths() == ['root', 'root[0]']


def test_update_key_moves_field_to_end(doc):
    h = hash40('run_speed')
    assert doc.update_key('root[0]', 'run_speed', h)
    assert field_hashes(doc.root) == [
        hash40('name'), hash40('flags'), hash40('entries'), h]
    assert doc.get('root[3]').name == 'run_speed'
    assert doc.labels.get_label(h) == 'run_speed'


def test_update_key_with_hex_name_does_not_label(doc):
    assert doc.update_key('root[1]', '0x1234', 0x1234)
    assert doc.labels.get_label(0x1234) is None
    assert doc.get('root[3]').name == '0x1234'


def test_update_key_same_hash_is_allowed(doc):
    h = hash40('name')
    assert doc.update_key('root[1]', 'name', h)
    assert field_hashes(doc.root)[-1] == h


def test_update_key_refuses_collision(doc, sample_root):
    assert not doc.update_key('root[0]', 'name', hash40('name'))
    assert doc.root == sample_root


def test_update_key_refuses_list_items(doc):
    assert not doc.update_key('root[3][0]', 'x', 5)


def test_update_key_on_root_is_display_only(doc, sample_root):
    assert doc.update_key('root', 'fighter_param', hash40('fighter_param'))
    assert doc.get('root').name == 'fighter_param'
    assert doc.to_bytes() == serialize(sample_root)


def test_delete(doc):
    assert doc.delete('root[1]')
    assert hash40('name') not in doc.root.value
    assert len(parse(doc.to_bytes()).value) == 3
    assert doc.delete('root[2][0]')
    assert len(doc.get('root[2]').children) == 7


def test_delete_refuses_root_and_bad_paths(doc):
    assert not doc.delete('root')
    assert not doc.delete('root[9]')
    assert not doc.delete('root[0][0]')


def test_insert_into_struct(doc):
    node = ParamNode('id', hash40('id'), Param.u8(9))
    assert doc.insert('root[2]', node)
    flags = doc.root.value[hash40('flags')]
    # 'id' is taken, so the next free hash is used
    assert field_hashes(flags)[-1] == hash40('id') + 1
    assert flags.value[hash40('id') + 1] == Param.u8(9)


def test_insert_into_list(doc):
    assert doc.insert('root[3]', ParamNode('x', 0, Param.i8(1)))
    assert doc.get('root[3][8]').value == Param.i8(1)


def test_insert_into_root(doc):
    assert doc.insert('root', ParamNode('jump', hash40('jump'), Param.bool_(True)))
    assert doc.get('root[4]').name == '0x' + format(hash40('jump'), 'X')


def test_insert_refuses_scalar_target(doc):
    assert not doc.insert('root[0]', ParamNode('x', 1, Param.u8(1)))
    assert not doc.insert('root[9]', ParamNode('x', 1, Param.u8(1)))


def test_insert_gives_up_after_probe_limit():
    doc = ParamDocument(Param.struct({h: Param.u8(0) for h in range(100, 1101)}))
    assert not doc.insert('root', ParamNode('x', 100, Param.u8(1)))
    doc.delete('root[1000]')
    assert doc.insert('root', ParamNode('x', 100, Param.u8(1)))
    assert field_hashes(doc.root)[-1] == 1100


def test_insert_copies_value(doc):
    node = ParamNode('x', 0, Param.list())
    doc.insert('root[3]', node)
    node.value.value.append(Param.u8(1))
    assert doc.get('root[3][8]').value == Param.list()


def test_rebuild_picks_up_new_labels():
    doc = ParamDocument(Param.struct({hash40('jump'): Param.u8(1)}))
    assert doc.get('root[0]').name.startswith('0x')
    doc.labels.register('jump')
    doc.rebuild()
    assert doc.get('root[0]').name == 'jump'


# =============================================================================
# Open / save
# =============================================================================

def test_open_and_save(tmp_path, sample_root, labels):
    path = tmp_path / 'fighter_param.prc'
    path.write_bytes(serialize(sample_root))

    doc = ParamDocument.open_file(path, labels)
    assert doc.root == sample_root
    assert doc.filename == str(path)
    assert doc.anomalies == []

    doc.update_value('root[1]', Param.string('luigi'))
    out = tmp_path / 'edited.prc'
    n = doc.save(out)
    assert n == out.stat().st_size
    assert parse(out.read_bytes()).value[hash40('name')] == Param.string('luigi')

    doc.save()
    assert path.read_bytes() == out.read_bytes()


def test_open_rejects_bad_data():
    with pytest.raises(ParamFormatError):
        ParamDocument.open(b'not a param file')


def test_open_missing_file(tmp_path):
    with pytest.raises(OSError):
        ParamDocument.open_file(tmp_path / 'missing.prc')


def test_document_root_must_be_struct():
    with pytest.raises(ValueError):
        ParamDocument(Param.list())


def test_open_deeply_nested_document():
    value = Param.u8(1)
    for _ in range(500):
        value = Param.list([value])
    doc = ParamDocument.open(serialize(Param.struct({1: value})))
    leaf = doc.get('root[0]' + '[0]' * 500)
    assert leaf.type_name == 'Byte'
    assert not leaf.children


# =============================================================================
# Pinned values
# =============================================================================

def test_value_at_is_the_canonical_value(doc):
    assert doc.value_at('root') is doc.root
    assert doc.value_at('root[1]') is doc.root.value[hash40('name')]
    with pytest.raises(NodeNotFound):
        doc.value_at('root[9]')
    with pytest.raises(NodeNotFound):
        doc.value_at('root[0][0]')


def test_path_of_follows_reordering_edits(doc):
    name = doc.value_at('root[1]')
    kind = doc.value_at('root[2][1]')
    doc.update_key('root[0]', 'run_speed', hash40('run_speed'))
    assert doc.path_of(name) == 'root[0]'
    assert doc.path_of(kind) == 'root[1][1]'
    doc.delete('root[0]')
    assert doc.path_of(name) is None
    assert doc.path_of(kind) == 'root[0][1]'


def test_update_key_registers_name_in_shared_labels(sample_root, labels):
    doc = ParamDocument(sample_root, labels)
    assert doc.update_key('root[0]', 'dash_speed', 0x1234)
    assert labels.get_label(0x1234) == 'dash_speed'
    assert labels.get_hash('dash_speed') == 0x1234
