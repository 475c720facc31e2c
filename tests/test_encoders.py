import io
import math
from dataclasses import dataclass

import pytest

from jsonwriter.encoders import (
    Base64Encoder,
    Binding,
    BoolEncoder,
    EmptyStructEncoder,
    FloatEncoder,
    IntEncoder,
    OptionalEncoder,
    SliceEncoder,
    StringEncoder,
    StringModeNumberEncoder,
    StringModeStringEncoder,
    StructEncoder,
    StructFieldEncoder,
    build_struct_encoder,
    native_encoder,
    resolve_conflict_binding,
)
from jsonwriter.stream import Stream, StreamConfig, UnsupportedValueError


def render(encoder, value, config=None):
    stream = Stream(config or StreamConfig(), None, 64)
    encoder.encode(value, stream)
    return stream.buffer().decode("utf-8")


def test_write_val_array():
    assert render(SliceEncoder(IntEncoder(64, True)), [1, 2, 3]) == "[1,2,3]"


def test_write_val_empty_array():
    assert render(SliceEncoder(IntEncoder(64, True)), []) == "[]"


def test_nil_slice_is_null():
    assert render(SliceEncoder(IntEncoder(64, True)), None) == "null"


def test_indented_array():
    out = render(SliceEncoder(IntEncoder()), [1, 2, 3], StreamConfig(indention_step=2))
    assert out == "[\n  1,\n  2,\n  3\n]"


def test_array_of_values_in_struct():
    encoder = build_struct_encoder(
        "TestObject",
        [
            Binding(StructFieldEncoder("Field", SliceEncoder(IntEncoder())), ("Field",)),
            Binding(StructFieldEncoder("Field2", StringEncoder()), ("Field2",)),
        ],
    )
    out = render(encoder, {"Field": [1, 2], "Field2": ""})
    assert '"Field":[1,2]' in out
    assert '"Field2":""' in out


@pytest.mark.parametrize(
    "value, expected",
    [(b"\x01\x02\x03", '"AQID"'), (b"", '""'), (None, "null")],
)
def test_encode_byte_array(value, expected):
    assert render(native_encoder("bytes"), value) == expected


def test_base64_is_empty():
    assert Base64Encoder().is_empty(b"")
    assert not Base64Encoder().is_empty(b"a")


def test_lossy_float_marshal():
    assert render(FloatEncoder(64, lossy=True), 0.1234567) == "0.123457"
    assert render(FloatEncoder(32, lossy=True), 0.1234567) == "0.123457"


@pytest.mark.parametrize("bits", [32, 64])
@pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
def test_encode_inf_and_nan_fail(bits, value):
    with pytest.raises(UnsupportedValueError):
        render(FloatEncoder(bits), value)


def test_write_val_int_through_writer():
    buf = io.BytesIO()
    stream = Stream(StreamConfig(), buf, 4096)
    native_encoder("int").encode(1001, stream)
    stream.flush()
    assert buf.getvalue() == b"1001"


def test_write_val_int_optional():
    encoder = OptionalEncoder(IntEncoder())
    assert render(encoder, 1001) == "1001"
    assert render(encoder, None) == "null"
    assert encoder.is_empty(None)
    assert not encoder.is_empty(0)


def test_int_out_of_range_raises():
    with pytest.raises(ValueError):
        render(IntEncoder(8, True), 200)


def test_bool_and_string_encoders():
    assert render(BoolEncoder(), True) == "true"
    assert BoolEncoder().is_empty(False)
    assert render(StringEncoder(), 'a"b') == '"a\\"b"'
    assert StringEncoder().is_empty("")


def test_native_encoder_unknown_kind():
    assert native_encoder("complex128") is None


def test_color_group_struct():
    @dataclass
    class ColorGroup:
        ID: int
        Name: str
        Colors: list

    encoder = build_struct_encoder(
        "ColorGroup",
        [
            Binding(StructFieldEncoder("ID", IntEncoder()), ("ID",)),
            Binding(StructFieldEncoder("Name", StringEncoder()), ("Name",)),
            Binding(StructFieldEncoder("Colors", SliceEncoder(StringEncoder())), ("Colors",)),
        ],
    )
    group = ColorGroup(1, "Reds", ["Crimson", "Red", "Ruby", "Maroon"])
    assert render(encoder, group) == '{"ID":1,"Name":"Reds","Colors":["Crimson","Red","Ruby","Maroon"]}'


def test_omitempty_skips_empty_fields():
    encoder = StructEncoder(
        "T",
        [
            ("a", StructFieldEncoder("a", IntEncoder(), omitempty=True)),
            ("b", StructFieldEncoder("b", StringEncoder(), omitempty=True)),
        ],
    )
    assert render(encoder, {"a": 0, "b": "x"}) == '{"b":"x"}'
    assert render(encoder, {"a": 0, "b": ""}) == "{}"


def test_no_bindings_gives_empty_object():
    encoder = build_struct_encoder("T", [])
    assert isinstance(encoder, EmptyStructEncoder)
    assert render(encoder, object()) == "{}"


def test_struct_error_is_prefixed():
    encoder = StructEncoder("T", [("f", StructFieldEncoder("F", FloatEncoder()))])
    with pytest.raises(UnsupportedValueError, match=r"^T\.F: unsupported value: \+Inf$"):
        render(encoder, {"F": math.inf})


def test_slice_error_is_prefixed():
    with pytest.raises(UnsupportedValueError, match=r"^\[\]float64: unsupported"):
        render(SliceEncoder(FloatEncoder(), "[]float64"), [1.0, math.nan])


def test_resolve_conflict_tagged_wins():
    field = StructFieldEncoder("x", IntEncoder())
    tagged = Binding(field, ("x",), tagged=True, levels=(0, 1))
    plain = Binding(field, ("x",), tagged=False, levels=(0,))
    assert resolve_conflict_binding(plain, tagged) == (True, False)
    assert resolve_conflict_binding(tagged, plain) == (True, False)


def test_resolve_conflict_depth():
    field = StructFieldEncoder("x", IntEncoder())
    shallow = Binding(field, ("x",), levels=(0,))
    deep = Binding(field, ("x",), levels=(0, 1))
    assert resolve_conflict_binding(deep, shallow) == (True, False)
    assert resolve_conflict_binding(shallow, deep) == (False, True)
    assert resolve_conflict_binding(shallow, shallow) == (True, True)


def test_build_struct_drops_ambiguous_fields():
    encoder = build_struct_encoder(
        "T",
        [
            Binding(StructFieldEncoder("a", IntEncoder()), ("x",), levels=(0,)),
            Binding(StructFieldEncoder("b", IntEncoder()), ("x",), levels=(1,)),
            Binding(StructFieldEncoder("c", IntEncoder()), ("y",)),
        ],
    )
    assert render(encoder, {"a": 1, "b": 2, "c": 3}) == '{"y":3}'


def test_build_struct_prefers_shallower_field():
    encoder = build_struct_encoder(
        "T",
        [
            Binding(StructFieldEncoder("deep", IntEncoder()), ("x",), levels=(0, 1)),
            Binding(StructFieldEncoder("top", IntEncoder()), ("x",), levels=(0,)),
        ],
    )
    assert render(encoder, {"deep": 1, "top": 2}) == '{"x":2}'


def test_string_mode_number():
    encoder = StringModeNumberEncoder(IntEncoder())
    assert render(encoder, 42) == '"42"'
    assert encoder.is_empty(0)


def test_string_mode_string():
    encoder = StringModeStringEncoder(StringEncoder(), StreamConfig())
    assert render(encoder, "hi") == '"\\"hi\\""'
    assert encoder.is_empty("")