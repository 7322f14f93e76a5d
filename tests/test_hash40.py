import pytest

from paracobn import HashLabels, crc32, hash40


def test_crc32_check_values():
    assert crc32(b"") == 0x00000000
    assert crc32(b"123456789") == 0xCBF43926
    assert crc32("123456789") == 0xCBF43926


def test_hash40_is_length_and_crc():
    assert hash40("123456789") == (9 << 32) | 0xCBF43926
    assert hash40("") == 0
    assert hash40("walk_speed") == hash40("walk_speed")
    assert hash40("walk_speed") >> 32 == len("walk_speed")


def test_hash40_counts_utf8_bytes():
    assert hash40("é") >> 32 == 2


def test_register_is_idempotent():
    hl = HashLabels()
    h1 = hl.register("walk_speed")
    h2 = hl.register("walk_speed")
    assert h1 == h2 == hash40("walk_speed")
    assert len(hl) == 1
    assert hl.get_hash("walk_speed") == h1
    assert hl.get_label(h1) == "walk_speed"


def test_register_for_hash_accepts_any_hash():
    hl = HashLabels()
    hl.register_for_hash(0x1234, "odd_one")
    assert hl.resolve(0x1234) == "odd_one"
    assert hl.get_hash("odd_one") == 0x1234
    with pytest.raises(ValueError):
        hl.register_for_hash(1 << 64, "too_big")


def test_relabel_drops_stale_reverse_entry():
    hl = HashLabels()
    hl.register_for_hash(0x10, "old")
    hl.register_for_hash(0x10, "new")
    assert hl.resolve(0x10) == "new"
    assert hl.get_hash("old") is None
    assert hl.get_hash("new") == 0x10


def test_resolve_exact_beats_fallbacks():
    hl = HashLabels()
    hl.register_for_hash(0x12_3456789A, "full")
    hl.register_for_hash(0x3456789A, "low")
    assert hl.resolve(0x12_3456789A) == "full"


def test_resolve_falls_back_to_32_bit_mask():
    hl = HashLabels()
    hl.register_for_hash(0xCBF43926, "crc_only")
    assert hl.resolve(0x09_CBF43926) == "crc_only"


def test_resolve_fallback_order():
    hl = HashLabels()
    hl.register_for_hash(0x00CD000000001234, "m56")
    hl.register_for_hash(0x1234, "m32")
    assert hl.resolve(0xABCD000000001234) == "m56"


def test_resolve_sign_bit_set():
    hl = HashLabels()
    hl.register_for_hash(0x8000000000000005, "negative")
    assert hl.resolve(5) == "negative"


def test_resolve_unknown_is_hex():
    assert HashLabels().resolve(0xABC) == "0xABC"
    assert HashLabels().resolve(0) == "0x0"


def test_load_skips_malformed_rows():
    hl = HashLabels()
    with pytest.warns(UserWarning):
        n = hl.load("0x1,one\nthree,columns,here\n")
    assert n == 1
    assert hl.errors == 1
    assert hl.resolve(1) == "one"


def test_load_normalises_hash_column():
    hl = HashLabels()
    n = hl.load("0x000000ABC,padded\n0x,zero\nDEF,bare\n0XFF,upper\n")
    assert n == 4
    assert hl.get_label(0xABC) == "padded"
    assert hl.get_label(0) == "zero"
    assert hl.get_label(0xDEF) == "bare"
    assert hl.get_label(0xFF) == "upper"


def test_load_rejects_bad_hex():
    hl = HashLabels()
    with pytest.warns(UserWarning):
        n = hl.load("0xZZ,bad\n,empty\n0x2,good\n")
    assert n == 1
    assert hl.errors == 2


def test_persist_is_sorted_and_reloadable():
    hl = HashLabels()
    hl.register_for_hash(0x20, "b")
    hl.register_for_hash(0x3, "a")
    assert hl.persist() == b"0x3,a\n0x20,b\n"

    again = HashLabels()
    assert again.load(hl.persist().decode()) == 2
    assert again.labels == hl.labels


def test_save_and_load_file(tmp_path):
    hl = HashLabels()
    hl.register("fighter_param")
    path = tmp_path / "ParamLabels.csv"
    hl.save_file(path)

    other = HashLabels()
    assert other.load_file(path) == 1
    assert other.resolve(hash40("fighter_param")) == "fighter_param"


def test_load_file_missing_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        HashLabels().load_file(tmp_path / "nope.csv")


def test_parse_hash_or_label():
    hl = HashLabels()
    hl.register("walk_speed")
    assert hl.parse_hash_or_label("0x10") == 0x10
    assert hl.parse_hash_or_label("walk_speed") == hash40("walk_speed")
    with pytest.raises(KeyError, match=f"0x{hash40('run_speed'):X}"):
        hl.parse_hash_or_label("run_speed")


def test_filter_matches_label_and_hex():
    hl = HashLabels()
    hl.register_for_hash(0xABC, "walk_speed")
    hl.register_for_hash(0x123, "jump")
    assert hl.filter("WALK") == [(0xABC, "walk_speed")]
    assert hl.filter("12") == [(0x123, "jump")]
    assert len(hl.filter("")) == 2
