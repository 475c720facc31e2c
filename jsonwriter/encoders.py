"""Value encoders that write typed Python values to a JSON stream."""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from jsonwriter.stream import Stream, StreamConfig

__all__ = [
    "ValueEncoder",
    "StringEncoder",
    "IntEncoder",
    "FloatEncoder",
    "BoolEncoder",
    "Base64Encoder",
    "OptionalEncoder",
    "SliceEncoder",
    "Binding",
    "StructFieldEncoder",
    "StructEncoder",
    "EmptyStructEncoder",
    "StringModeNumberEncoder",
    "StringModeStringEncoder",
    "resolve_conflict_binding",
    "build_struct_encoder",
    "native_encoder",
]


def _rewrap(exc: Exception, message: str) -> Exception:
    """Build an exception of the same kind carrying a prefixed message."""
    try:
        return type(exc)(message)
    except Exception:
        return ValueError(message)


class ValueEncoder(ABC):
    """Writes one kind of value to a stream and knows when it is empty."""

    @abstractmethod
    def encode(self, value: Any, stream: Stream) -> None:
        """Write ``value`` to ``stream``."""

    @abstractmethod
    def is_empty(self, value: Any) -> bool:
        """Whether ``value`` counts as empty for ``omitempty`` fields."""


class StringEncoder(ValueEncoder):
    """Encodes text as a quoted JSON string."""

    def encode(self, value: Any, stream: Stream) -> None:
        stream.write_string(value)

    def is_empty(self, value: Any) -> bool:
        return len(value) == 0


class IntEncoder(ValueEncoder):
    """Encodes an integer of a fixed width and signedness."""

    _WIDTHS = (8, 16, 32, 64)

    def __init__(self, bits: int = 64, signed: bool = True) -> None:
        if bits not in self._WIDTHS:
            raise ValueError(f"unsupported integer width: {bits}")
        self.bits = bits
        self.signed = signed

    def encode(self, value: Any, stream: Stream) -> None:
        prefix = "int" if self.signed else "uint"
        getattr(stream, f"write_{prefix}{self.bits}")(value)

    def is_empty(self, value: Any) -> bool:
        return value == 0


class FloatEncoder(ValueEncoder):
    """Encodes a 32- or 64-bit float, optionally rounded to six digits."""

    def __init__(self, bits: int = 64, lossy: bool = False) -> None:
        if bits not in (32, 64):
            raise ValueError(f"unsupported float width: {bits}")
        self.bits = bits
        self.lossy = lossy

    def encode(self, value: Any, stream: Stream) -> None:
        suffix = "_lossy" if self.lossy else ""
        getattr(stream, f"write_float{self.bits}{suffix}")(value)

    def is_empty(self, value: Any) -> bool:
        return value == 0


class BoolEncoder(ValueEncoder):
    """Encodes ``true`` or ``false``."""

    def encode(self, value: Any, stream: Stream) -> None:
        stream.write_bool(bool(value))

    def is_empty(self, value: Any) -> bool:
        return not value


class Base64Encoder(ValueEncoder):
    """Encodes a byte string as a standard base64 JSON string; ``None`` as null."""

    def encode(self, value: Any, stream: Stream) -> None:
        if value is None:
            stream.write_nil()
            return
        stream.write_raw(b'"' + base64.b64encode(bytes(value)) + b'"')

    def is_empty(self, value: Any) -> bool:
        return value is None or len(value) == 0


class OptionalEncoder(ValueEncoder):
    """Encodes ``None`` as null and anything else with the wrapped encoder."""

    def __init__(self, value_encoder: ValueEncoder) -> None:
        self.value_encoder = value_encoder

    def encode(self, value: Any, stream: Stream) -> None:
        if value is None:
            stream.write_nil()
        else:
            self.value_encoder.encode(value, stream)

    def is_empty(self, value: Any) -> bool:
        return value is None


class SliceEncoder(ValueEncoder):
    """Encodes a sequence as a JSON array; ``None`` as null."""

    def __init__(self, elem_encoder: ValueEncoder, type_name: str = "[]") -> None:
        self.elem_encoder = elem_encoder
        self.type_name = type_name

    def encode(self, value: Any, stream: Stream) -> None:
        if value is None:
            stream.write_nil()
            return
        if len(value) == 0:
            stream.write_empty_array()
            return
        try:
            stream.write_array_start()
            for position, item in enumerate(value):
                if position:
                    stream.write_more()
                self.elem_encoder.encode(item, stream)
            stream.write_array_end()
        except ValueError as exc:
            raise _rewrap(exc, f"{self.type_name}: {exc}") from exc

    def is_empty(self, value: Any) -> bool:
        return value is None or len(value) == 0


class StructFieldEncoder(ValueEncoder):
    """Encodes one named field taken from a mapping or an object's attribute."""

    def __init__(self, name: str, encoder: ValueEncoder, omitempty: bool = False) -> None:
        self.name = name
        self.encoder = encoder
        self.omitempty = omitempty

    def _field_value(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return value[self.name]
        return getattr(value, self.name)

    def encode(self, value: Any, stream: Stream) -> None:
        try:
            self.encoder.encode(self._field_value(value), stream)
        except ValueError as exc:
            raise _rewrap(exc, f"{self.name}: {exc}") from exc

    def is_empty(self, value: Any) -> bool:
        return self.encoder.is_empty(self._field_value(value))

    def is_embedded_ptr_nil(self, value: Any) -> bool:
        """Whether the field is an embedded reference that is currently unset."""
        check = getattr(self.encoder, "is_embedded_ptr_nil", None)
        if check is None:
            return False
        return check(self._field_value(value))


@dataclass
class Binding:
    """A struct field together with the JSON names it is written under."""

    encoder: StructFieldEncoder
    to_names: Sequence[str] = ()
    tagged: bool = False
    levels: Sequence[int] = field(default_factory=tuple)


class StructEncoder(ValueEncoder):
    """Encodes an object from an ordered list of ``(json_name, field_encoder)`` pairs."""

    def __init__(self, type_name: str, fields: Sequence[tuple[str, StructFieldEncoder]]) -> None:
        self.type_name = type_name
        self.fields = list(fields)

    def encode(self, value: Any, stream: Stream) -> None:
        try:
            stream.write_object_start()
            first = True
            for to_name, field_encoder in self.fields:
                if field_encoder.omitempty and field_encoder.is_empty(value):
                    continue
                if field_encoder.is_embedded_ptr_nil(value):
                    continue
                if not first:
                    stream.write_more()
                stream.write_object_field(to_name)
                field_encoder.encode(value, stream)
                first = False
            stream.write_object_end()
        except ValueError as exc:
            raise _rewrap(exc, f"{self.type_name}.{exc}") from exc

    def is_empty(self, value: Any) -> bool:
        return False


class EmptyStructEncoder(ValueEncoder):
    """Encodes an object with no exported fields as ``{}``."""

    def encode(self, value: Any, stream: Stream) -> None:
        stream.write_empty_object()

    def is_empty(self, value: Any) -> bool:
        return False


class StringModeNumberEncoder(ValueEncoder):
    """Encodes a number inside quotes, as for the ``string`` field option."""

    def __init__(self, elem_encoder: ValueEncoder) -> None:
        self.elem_encoder = elem_encoder

    def encode(self, value: Any, stream: Stream) -> None:
        stream.write_raw('"')
        self.elem_encoder.encode(value, stream)
        stream.write_raw('"')

    def is_empty(self, value: Any) -> bool:
        return self.elem_encoder.is_empty(value)


class StringModeStringEncoder(ValueEncoder):
    """Encodes a value's JSON text once more as a JSON string."""

    def __init__(self, elem_encoder: ValueEncoder, config: Optional[StreamConfig] = None) -> None:
        self.elem_encoder = elem_encoder
        self.config = config if config is not None else StreamConfig()

    def encode(self, value: Any, stream: Stream) -> None:
        inner = Stream(self.config, None, 512)
        inner.attachment = stream.attachment
        self.elem_encoder.encode(value, inner)
        stream.write_string(inner.buffer())

    def is_empty(self, value: Any) -> bool:
        return self.elem_encoder.is_empty(value)


def resolve_conflict_binding(old: Binding, new: Binding) -> tuple[bool, bool]:
    """Decide which of two bindings for the same JSON name to drop.

    Returns ``(ignore_old, ignore_new)``. A tagged field wins over an untagged
    one; otherwise the shallower field wins, and equal depth drops both.
    """
    if new.tagged and not old.tagged:
        return True, False
    if old.tagged and not new.tagged:
        return True, False
    if len(old.levels) > len(new.levels):
        return True, False
    if len(new.levels) > len(old.levels):
        return False, True
    return True, True


def build_struct_encoder(type_name: str, bindings: Sequence[Binding]) -> ValueEncoder:
    """Build an object encoder from field bindings, resolving name conflicts."""

    @dataclass
    class _Target:
        binding: Binding
        to_name: str
        ignored: bool = False

    ordered: list[_Target] = []
    for binding in bindings:
        for to_name in binding.to_names:
            new = _Target(binding, to_name)
            for old in ordered:
                if old.to_name == to_name:
                    old.ignored, new.ignored = resolve_conflict_binding(old.binding, new.binding)
            ordered.append(new)
    if not ordered:
        return EmptyStructEncoder()
    fields = [(t.to_name, t.binding.encoder) for t in ordered if not t.ignored]
    return StructEncoder(type_name, fields)


_NATIVE_FACTORIES = {
    "string": StringEncoder,
    "int": lambda: IntEncoder(64, True),
    "int8": lambda: IntEncoder(8, True),
    "int16": lambda: IntEncoder(16, True),
    "int32": lambda: IntEncoder(32, True),
    "int64": lambda: IntEncoder(64, True),
    "uint": lambda: IntEncoder(64, False),
    "uint8": lambda: IntEncoder(8, False),
    "uint16": lambda: IntEncoder(16, False),
    "uint32": lambda: IntEncoder(32, False),
    "uint64": lambda: IntEncoder(64, False),
    "uintptr": lambda: IntEncoder(64, False),
    "float32": lambda: FloatEncoder(32),
    "float64": lambda: FloatEncoder(64),
    "bool": BoolEncoder,
    "bytes": Base64Encoder,
}


def native_encoder(kind: str) -> Optional[ValueEncoder]:
    """The encoder for a primitive kind name, or ``None`` if the kind is not primitive."""
    factory = _NATIVE_FACTORIES.get(kind)
    return factory() if factory is not None else None