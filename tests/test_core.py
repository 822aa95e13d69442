import pytest

import packager
from packager import (
    DEFAULT_OPTIONS,
    ConfigError,
    LengthExceededError,
    Options,
    Packager,
    QuantizationRangeError,
    SizeExceededError,
    Vector3,
)
from packager import schema as S

# --- Options ---

def test_builtin_defaults():
    assert DEFAULT_OPTIONS == Options(
        profile="realtime",
        max_array=200000,
        max_string_bytes=1000000,
        max_depth=64,
        fail_on_quant_clamp=False,
        check_integrity=False,
    )
    assert packager.get_default_packager().options == DEFAULT_OPTIONS


def test_initialize_replaces_wholesale():
    packager.initialize({"max_array": 2, "max_depth": 3})
    packager.initialize({"max_depth": 5})
    opts = packager.get_default_packager().options
    assert opts.max_depth == 5
    assert opts.max_array == DEFAULT_OPTIONS.max_array


def test_call_options_overlay_defaults():
    packager.initialize({"max_array": 2, "max_depth": 3})
    eff = packager.get_default_packager().effective_options({"max_depth": 10})
    assert eff.max_array == 2
    assert eff.max_depth == 10
    with pytest.raises(SizeExceededError):
        packager.pack([1, 2, 3])
    assert packager.unpack(packager.pack([1, 2, 3], {"max_array": 3}), {"max_array": 3}) == [1, 2, 3]


def test_camel_case_aliases():
    opts = DEFAULT_OPTIONS.merged({"maxArray": 5, "maxStringBytes": 6, "maxDepth": 7,
                                   "failOnQuantClamp": True, "checkIntegrity": True})
    assert (opts.max_array, opts.max_string_bytes, opts.max_depth) == (5, 6, 7)
    assert opts.fail_on_quant_clamp and opts.check_integrity


def test_options_instance_overrides_everything():
    packager.initialize({"max_array": 2})
    assert packager.get_default_packager().effective_options(Options()) == DEFAULT_OPTIONS


@pytest.mark.parametrize("overrides", [
    {"max_depth": 0},
    {"max_array": -1},
    {"max_string_bytes": 1.5},
    {"max_depth": True},
    {"max_depth": 513},
    {"profile": "fast"},
    {"fail_on_quant_clamp": "yes"},
    {"compression": True},
])
def test_invalid_options(overrides):
    with pytest.raises(ConfigError):
        packager.pack(1, overrides)


def test_options_must_be_mapping():
    with pytest.raises(ConfigError):
        packager.pack(1, ["max_depth", 3])


def test_options_immutable():
    with pytest.raises(AttributeError):
        DEFAULT_OPTIONS.max_depth = 3


def test_lossless_profile_is_strict():
    with pytest.raises(QuantizationRangeError):
        packager.pack(Vector3(0, 9999, 0), {"profile": "lossless"})
    packager.pack(Vector3(0, 9999, 0), {"profile": "datastore"})


def test_profile_does_not_change_wire_bytes():
    value = {"pos": Vector3(1, 2, 3), "n": 4}
    assert packager.pack(value, {"profile": "datastore"}) == packager.pack(value)

# --- Engine handles ---

def test_engines_are_independent():
    small = Packager({"max_string_bytes": 3})
    with pytest.raises(LengthExceededError):
        small.pack("abcd")
    assert packager.unpack(packager.pack("abcd")) == "abcd"
    assert small.unpack(small.pack("abc")) == "abc"


def test_engine_initialize():
    engine = Packager()
    engine.initialize({"max_array": 1})
    with pytest.raises(SizeExceededError):
        engine.pack([1, 2])
    assert packager.get_default_packager().options.max_array == DEFAULT_OPTIONS.max_array


def test_schema_selects_schema_mode():
    sch = S.define_schema("N", 0, S.uint())
    assert packager.pack(5, sch)[:3] == b"PKS"
    assert packager.pack(5)[:3] == b"PKA"
    assert packager.pack(5, None, {"max_depth": 2})[:3] == b"PKA"


def test_options_given_twice():
    with pytest.raises(TypeError):
        packager.pack(1, {"max_depth": 2}, {"max_depth": 3})


def test_schema_mode_uses_merged_options():
    sch = S.define_schema("S", 1, S.string())
    packager.initialize({"max_string_bytes": 2})
    with pytest.raises(LengthExceededError):
        packager.pack("abc", sch)
    assert packager.unpack(packager.pack("abc", sch, {"max_string_bytes": 3}), sch, {"max_string_bytes": 3}) == "abc"

# --- Packet inspection ---

def test_get_packet_info_auto():
    info = packager.get_packet_info(packager.pack({"b": 1, "a": 2}))
    assert info == {
        "mode": "auto",
        "version": 1,
        "flags": 0,
        "check_integrity": False,
        "dictionary": ["a", "b"],
    }


def test_get_packet_info_rejects_unknown_marker():
    with pytest.raises(packager.FormatMismatchError):
        packager.get_packet_info(b"ZZZ\x01\x00")
