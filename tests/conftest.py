import os
import sys

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)
sys.path.insert(0, os.path.join(ROOT, 'tools'))

from paracobn import HashLabels, Param, hash40  # noqa: E402

LABELS = ('fighter_param', 'walk_speed', 'name', 'flags', 'id', 'kind', 'entries')


@pytest.fixture
def labels():
    hl = HashLabels()
    for label in LABELS:
        hl.register(label)
    return hl


@pytest.fixture
def sample_root():
    """Every value type; struct fields in first-seen hash order."""
    h = hash40
    return Param.struct({
        h('walk_speed'): Param.f32(1.5),
        h('name'): Param.string('mario'),
        h('flags'): Param.struct({
            h('id'): Param.u16(7),
            h('kind'): Param.hash(h('fighter_param')),
        }),
        h('entries'): Param.list([
            Param.i8(-3),
            Param.bool_(True),
            Param.u8(200),
            Param.i16(-1000),
            Param.i32(-70000),
            Param.u32(0xDEADBEEF),
            Param.string('mario'),
            Param.string('日本'),
        ]),
    })
