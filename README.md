# jsonwriter

`jsonwriter` writes JSON text into an in-memory buffer and can pass it on to
any writable binary object. You decide exactly how each value is written:
integers of a fixed width with range checks, 32- and 64-bit floats in their
shortest form or rounded to six fractional digits, plain or HTML-safe string
escaping, and optional indentation. On top of the stream sit small encoder
objects for strings, numbers, booleans, byte strings (as base64), optional
values, sequences and objects.

## Installation

```
pip install jsonwriter
```

To run the test suite:

```
pip install "jsonwriter[test]"
pytest
```

## Writing with a stream

`jsonwriter.stream.Stream(config=None, out=None, buf_size=512)` collects output
in a buffer. `StreamConfig(indention_step=...)` sets the indentation; the
default of `0` writes compact JSON.

```python
from jsonwriter.stream import Stream, StreamConfig

stream = Stream(StreamConfig(indention_step=2))
stream.write_object_start()
stream.write_object_field("hello")
stream.write_int(1)
stream.write_more()
stream.write_object_field("world")
stream.write_int(2)
stream.write_object_end()
print(stream.buffer().decode())
# {
#   "hello": 1,
#   "world": 2
# }
```

Methods of `Stream`:

- Structure: `write_object_start`, `write_object_field`, `write_object_end`,
  `write_empty_object`, `write_array_start`, `write_array_end`,
  `write_empty_array`, `write_more` (the comma between members).
- Literals: `write_nil`, `write_true`, `write_false`, `write_bool`,
  `write_raw` (text or bytes appended as they are).
- Integers: `write_int8`, `write_int16`, `write_int32`, `write_int64`,
  `write_int`, `write_uint8`, `write_uint16`, `write_uint32`, `write_uint64`,
  `write_uint`. A value outside the width's range raises `ValueError`.
- Floats: `write_float32` and `write_float64` write the shortest text that
  reads back as the same value, switching to exponent form below `1e-6` and
  from `1e21` upwards (for example `1e-7`, `1e+21`).
  `write_float32_lossy` and `write_float64_lossy` round to six fractional
  digits, e.g. `0.1234567` becomes `0.123457`. Infinity and NaN raise
  `UnsupportedValueError` (a subclass of `ValueError`).
- Strings: `write_string` escapes quotes, backslashes and control characters;
  `write_string_with_html_escaped` also escapes `<`, `>`, `&`, U+2028 and
  U+2029, and writes `\ufffd` for bytes that are not valid UTF-8.
- Buffer: `buffer()` returns the buffered bytes, `buffered()` their count,
  `available()` the unused room, `set_buffer(buf)` replaces them,
  `reset(out)` empties the buffer and attaches a new writer.

With a writer attached (for instance an `io.BytesIO`), `flush()` hands the
buffered bytes over and empties the buffer; `write(data)` appends bytes and
passes the whole buffer on straight away.

```python
import io
from jsonwriter.stream import Stream

out = io.BytesIO()
stream = Stream(None, out, 4096)
stream.write_true()
stream.write_false()
stream.flush()
assert out.getvalue() == b"truefalse"
```

## Encoding values

The module `jsonwriter.encoders` holds encoder objects. Each is a
`ValueEncoder` with `encode(value, stream)` and `is_empty(value)`.

- `native_encoder(kind)` returns the encoder for one of the kind names
  `string`, `bool`, `int`, `int8`, `int16`, `int32`, `int64`, `uint`, `uint8`,
  `uint16`, `uint32`, `uint64`, `uintptr`, `float32`, `float64` and `bytes`,
  or `None` for any other name.
- `StringEncoder`, `IntEncoder(bits, signed)`, `FloatEncoder(bits, lossy)`,
  `BoolEncoder` and `Base64Encoder` (bytes as a standard base64 string,
  `None` as `null`).
- `OptionalEncoder(value_encoder)` writes `null` for `None`.
- `SliceEncoder(elem_encoder, type_name)` writes a sequence as an array,
  `None` as `null` and an empty sequence as `[]`.
- `StringModeNumberEncoder(elem_encoder)` writes a number inside quotes;
  `StringModeStringEncoder(elem_encoder, config)` writes the element's JSON
  text once more as a JSON string.

Objects are built from `Binding`s. A binding pairs a `StructFieldEncoder(name,
encoder, omitempty)`, which reads the field `name` from a mapping or from an
attribute, with the JSON names it is written under:

```python
from jsonwriter.encoders import (
    Binding, SliceEncoder, StructFieldEncoder, build_struct_encoder, native_encoder,
)
from jsonwriter.stream import Stream

group = build_struct_encoder("ColorGroup", [
    Binding(StructFieldEncoder("ID", native_encoder("int")), ("ID",)),
    Binding(StructFieldEncoder("Name", native_encoder("string")), ("Name",)),
    Binding(
        StructFieldEncoder("Colors", SliceEncoder(native_encoder("string"), "[]string")),
        ("Colors",),
    ),
])

stream = Stream()
group.encode({"ID": 1, "Name": "Reds", "Colors": ["Crimson", "Red"]}, stream)
print(stream.buffer().decode())
# {"ID":1,"Name":"Reds","Colors":["Crimson","Red"]}
```

Fields with `omitempty=True` are left out when their encoder reports them
empty. When two bindings share a JSON name, `resolve_conflict_binding(old,
new)` decides which to drop: a `tagged` binding wins over an untagged one,
otherwise the one with fewer `levels` wins, and equal depth drops both.
`build_struct_encoder` returns an `EmptyStructEncoder` (writing `{}`) when
there are no names at all. Errors raised while encoding a field or element
have the field name or type name put in front of their message.

## What this package does not do

It only writes JSON. It does not parse or decode JSON, and it does not look
at arbitrary Python objects to choose encoders for them: you put the encoder
for each type together yourself from the pieces above. There is no
command-line tool.