"""プリミティブスキーマのバイナリエンコーディング

ブローカー標準のプリミティブスキーマと同じ表現を使う。
整数・浮動小数点はビッグエンディアン、DATE / TIMESTAMP はエポックミリ秒の INT64。
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Any, Callable

from .exceptions import PulsarHarnessError, PulsarHarnessErrorCodes
from .models import SchemaType

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class Codec:
    """1 つのスキーマタイプに対応するエンコーダ・デコーダ。"""

    schema_type: SchemaType
    python_type: tuple[type, ...]
    encode_fn: Callable[[Any], bytes]
    decode_fn: Callable[[bytes], Any]

    def encode(self, value: Any) -> bytes:  # noqa: ANN401
        # bool は int のサブクラスなので整数型では明示的に弾く
        if not isinstance(value, self.python_type) or (
            isinstance(value, bool) and bool not in self.python_type
        ):
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.SERIALIZATION_ERROR,
                message=f"{self.schema_type} cannot encode {type(value).__name__}: {value!r}",
            )
        try:
            return self.encode_fn(value)
        except (struct.error, OverflowError, UnicodeEncodeError) as e:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.SERIALIZATION_ERROR,
                message=f"{self.schema_type} cannot encode {value!r}: {e}",
                cause=e,
            ) from e

    def decode(self, data: bytes) -> Any:  # noqa: ANN401
        try:
            return self.decode_fn(data)
        except (struct.error, UnicodeDecodeError) as e:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.SERIALIZATION_ERROR,
                message=f"{self.schema_type} cannot decode {len(data)} bytes: {e}",
                cause=e,
            ) from e


def _struct_codec(schema_type: SchemaType, fmt: str, python_type: tuple[type, ...]) -> Codec:
    packer = struct.Struct(fmt)
    return Codec(
        schema_type=schema_type,
        python_type=python_type,
        encode_fn=packer.pack,
        decode_fn=lambda data: packer.unpack(data)[0],
    )


def _to_millis(value: date) -> int:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return (value - _EPOCH) // timedelta(milliseconds=1)
    return (datetime(value.year, value.month, value.day, tzinfo=UTC) - _EPOCH) // timedelta(
        milliseconds=1
    )


def _from_millis(data: bytes) -> datetime:
    millis: int = struct.unpack(">q", data)[0]
    return _EPOCH + timedelta(milliseconds=millis)


_CODECS: dict[SchemaType, Codec] = {
    SchemaType.BOOLEAN: Codec(
        schema_type=SchemaType.BOOLEAN,
        python_type=(bool,),
        encode_fn=lambda v: b"\x01" if v else b"\x00",
        decode_fn=lambda data: struct.unpack(">?", data)[0],
    ),
    SchemaType.INT8: _struct_codec(SchemaType.INT8, ">b", (int,)),
    SchemaType.INT16: _struct_codec(SchemaType.INT16, ">h", (int,)),
    SchemaType.INT32: _struct_codec(SchemaType.INT32, ">i", (int,)),
    SchemaType.INT64: _struct_codec(SchemaType.INT64, ">q", (int,)),
    SchemaType.FLOAT: _struct_codec(SchemaType.FLOAT, ">f", (float, int)),
    SchemaType.DOUBLE: _struct_codec(SchemaType.DOUBLE, ">d", (float, int)),
    SchemaType.DATE: Codec(
        schema_type=SchemaType.DATE,
        python_type=(date,),
        encode_fn=lambda v: struct.pack(">q", _to_millis(v)),
        decode_fn=lambda data: _from_millis(data).date(),
    ),
    SchemaType.TIMESTAMP: Codec(
        schema_type=SchemaType.TIMESTAMP,
        python_type=(datetime,),
        encode_fn=lambda v: struct.pack(">q", _to_millis(v)),
        decode_fn=_from_millis,
    ),
    SchemaType.STRING: Codec(
        schema_type=SchemaType.STRING,
        python_type=(str,),
        encode_fn=lambda v: v.encode("utf-8"),
        decode_fn=lambda data: data.decode("utf-8"),
    ),
    SchemaType.BYTES: Codec(
        schema_type=SchemaType.BYTES,
        python_type=(bytes, bytearray),
        encode_fn=bytes,
        decode_fn=bytes,
    ),
}


def codec_for(schema_type: SchemaType) -> Codec:
    """プリミティブスキーマのコーデックを返す。AVRO は対象外。"""
    try:
        return _CODECS[schema_type]
    except KeyError:
        raise PulsarHarnessError(
            code=PulsarHarnessErrorCodes.UNSUPPORTED_SCHEMA_TYPE,
            message=f"no primitive codec for {schema_type}",
        ) from None
