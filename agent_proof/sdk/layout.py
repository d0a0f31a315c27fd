"""Schema registry model and attestation payload codec.

A schema is an ordered list of (field name, field type). The on-chain schema
account stores the types as one tag byte per field and the names as a
separate list, so the two lists are validated together before anything is
sent to the network. Payloads are encoded field by field in declared order.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Sequence

from construct import (
    Adapter,
    Bytes,
    Construct,
    ConstructError,
    Flag,
    Float32l,
    Float64l,
    Int8sl,
    Int8ul,
    Int16sl,
    Int16ul,
    Int32sl,
    Int32ul,
    Int64sl,
    Int64ul,
    PascalString,
    Struct,
    Terminated,
)
from solders.pubkey import Pubkey

from agent_proof.sdk.errors import ValidationError
from agent_proof.sdk.pda import to_pubkey


class FieldType(IntEnum):
    """Type tags understood by the attestation service."""
    U8 = 0
    U16 = 1
    U32 = 2
    U64 = 3
    I8 = 4
    I16 = 5
    I32 = 6
    I64 = 7
    BOOL = 8
    F32 = 9
    F64 = 10
    PUBKEY = 11  # identity key, 32 raw bytes
    STRING = 12


class PubkeyAdapter(Adapter):
    """32 raw bytes on the wire, base58 string in Python."""

    def _decode(self, obj: bytes, context: Any, path: str) -> str:
        return str(Pubkey.from_bytes(obj))

    def _encode(self, obj: Pubkey | str, context: Any, path: str) -> bytes:
        return bytes(to_pubkey(obj, path or "pubkey"))


class StrictFlag(Adapter):
    """One byte, 0 or 1. Only real booleans are accepted on encode."""

    def _decode(self, obj: bool, context: Any, path: str) -> bool:
        return obj

    def _encode(self, obj: Any, context: Any, path: str) -> bool:
        if not isinstance(obj, bool):
            raise ValidationError("data", f"expected a boolean, got {type(obj).__name__} {obj!r}")
        return obj


PUBKEY = PubkeyAdapter(Bytes(32))
BOOL = StrictFlag(Flag)
BORSH_STRING = PascalString(Int32ul, "utf8")

FIELD_CODECS: dict[FieldType, Construct] = {
    FieldType.U8: Int8ul,
    FieldType.U16: Int16ul,
    FieldType.U32: Int32ul,
    FieldType.U64: Int64ul,
    FieldType.I8: Int8sl,
    FieldType.I16: Int16sl,
    FieldType.I32: Int32sl,
    FieldType.I64: Int64sl,
    FieldType.BOOL: BOOL,
    FieldType.F32: Float32l,
    FieldType.F64: Float64l,
    FieldType.PUBKEY: PUBKEY,
    FieldType.STRING: BORSH_STRING,
}


def strip_container(parsed: Any) -> dict[str, Any]:
    """Drop construct's private keys (``_io`` and friends) from a parse result."""
    return {k: v for k, v in parsed.items() if not k.startswith("_")}


class SchemaLayout:
    """Ordered, immutable field layout of an attestation schema."""

    def __init__(self, field_names: Sequence[str], field_types: Sequence[FieldType | int]):
        if len(field_names) != len(field_types):
            raise ValidationError(
                "field_names",
                f"{len(field_names)} names declared for {len(field_types)} layout types",
                len(field_types),
            )
        if len(set(field_names)) != len(field_names):
            raise ValidationError("field_names", "field names must be unique")
        for name in field_names:
            if not name:
                raise ValidationError("field_names", "field names must not be empty")

        types: list[FieldType] = []
        for raw in field_types:
            try:
                types.append(FieldType(raw))
            except ValueError:
                raise ValidationError("layout", f"unknown field type tag {raw}", max(FieldType))

        self.field_names: tuple[str, ...] = tuple(field_names)
        self.field_types: tuple[FieldType, ...] = tuple(types)
        fields = [name / FIELD_CODECS[ftype] for name, ftype in zip(self.field_names, self.field_types)]
        # Terminated rejects payloads with bytes left over after the last field.
        self._struct = Struct(*fields, Terminated)

    @classmethod
    def from_fields(cls, fields: Sequence[tuple[str, FieldType]]) -> SchemaLayout:
        return cls([name for name, _ in fields], [ftype for _, ftype in fields])

    @classmethod
    def from_bytes(cls, layout: bytes, field_names: Sequence[str]) -> SchemaLayout:
        """Rebuild a layout from the tag bytes stored in a schema account."""
        return cls(field_names, list(layout))

    @property
    def fields(self) -> list[tuple[str, FieldType]]:
        return list(zip(self.field_names, self.field_types))

    def layout_bytes(self) -> bytes:
        return bytes(int(t) for t in self.field_types)

    def encode(self, values: dict[str, Any]) -> bytes:
        """Serialize field values in declared order."""
        missing = [name for name in self.field_names if name not in values]
        if missing:
            raise ValidationError("data", f"missing fields: {', '.join(missing)}")
        extra = sorted(set(values) - set(self.field_names))
        if extra:
            raise ValidationError("data", f"unknown fields: {', '.join(extra)}")

        try:
            return self._struct.build(values)
        except ConstructError as e:
            raise ValidationError("data", f"value does not fit schema layout ({e})")

    def decode(self, data: bytes) -> dict[str, Any]:
        """Deserialize a payload written with this layout."""
        try:
            return strip_container(self._struct.parse(data))
        except ConstructError as e:
            raise ValidationError("data", f"payload does not match schema layout ({e})")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaLayout):
            return NotImplemented
        return self.fields == other.fields

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}:{ftype.name.lower()}" for name, ftype in self.fields)
        return f"SchemaLayout({inner})"
