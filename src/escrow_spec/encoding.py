"""Call encoding: typed positional arguments and the wire format.

Wire layout (big-endian):

    u8   version
    u8   len(function) || function name (ascii)
    32B  caller
    u8   argument count
    args each as u8 type tag followed by
         uint      16 bytes
         principal 32 bytes
         utf8      u32 length || utf-8 bytes
         bool      u8
         optional  u8 0 (none) | u8 1 || value
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from blake3 import blake3

from .config import MAX_CALL_ARGS, MAX_FUNCTION_NAME_LEN, PRINCIPAL_SIZE, U128_MAX
from .errors import ErrorCode, EngineError
from .types import ContractCall, Function, Value, ValueType

WIRE_VERSION = 0x01

# An optional argument is written as (OPTIONAL, inner type).
ArgSpec = Union[ValueType, tuple[ValueType, ValueType]]

_OPT_UTF8 = (ValueType.OPTIONAL, ValueType.UTF8)

ARG_SIGNATURES: dict[Function, tuple[ArgSpec, ...]] = {
    Function.CREATE_TRANSACTION: (ValueType.PRINCIPAL, ValueType.UINT, ValueType.UTF8),
    Function.CONFIRM_TRANSACTION: (ValueType.UINT,),
    Function.INITIATE_DISPUTE: (ValueType.UINT, ValueType.UTF8),
    Function.RESOLVE_DISPUTE_REFUND: (ValueType.UINT,),
    Function.RESOLVE_DISPUTE_RELEASE: (ValueType.UINT,),
    Function.CREATE_LISTING: (ValueType.UTF8, ValueType.UTF8, ValueType.UINT, ValueType.UINT),
    Function.UPDATE_LISTING: (ValueType.UINT, ValueType.UINT, ValueType.UINT, ValueType.UINT),
    Function.PURCHASE_ITEM: (ValueType.UINT, ValueType.UINT),
    Function.RATE_SELLER: (ValueType.UINT, ValueType.UINT, _OPT_UTF8),
    Function.RATE_BUYER: (ValueType.UINT, ValueType.UINT, _OPT_UTF8),
    Function.GET_TRANSACTION: (ValueType.UINT,),
    Function.IS_DISPUTE_ACTIVE: (ValueType.UINT,),
    Function.GET_LISTING: (ValueType.UINT,),
    Function.GET_USER_REPUTATION: (ValueType.PRINCIPAL,),
    Function.GET_SELLER_RATING: (ValueType.PRINCIPAL,),
    Function.GET_BUYER_RATING: (ValueType.PRINCIPAL,),
    Function.GET_TRANSACTION_RATING: (ValueType.UINT, ValueType.PRINCIPAL),
}


# --- argument unpacking ---


def _check_value(v: Any, expected: ValueType, pos: int) -> Any:
    if not isinstance(v, Value):
        raise EngineError(ErrorCode.INVALID_PAYLOAD, f"argument {pos}: not a typed value")
    if v.type != expected:
        raise EngineError(
            ErrorCode.INVALID_PAYLOAD,
            f"argument {pos}: expected {expected.name.lower()}, got {v.type.name.lower()}",
        )
    if expected == ValueType.UINT:
        if isinstance(v.value, bool) or not isinstance(v.value, int):
            raise EngineError(ErrorCode.INVALID_PAYLOAD, f"argument {pos}: uint must be an integer")
        if v.value < 0 or v.value > U128_MAX:
            raise EngineError(ErrorCode.INVALID_PAYLOAD, f"argument {pos}: uint out of range")
    elif expected == ValueType.PRINCIPAL:
        if not isinstance(v.value, bytes) or len(v.value) != PRINCIPAL_SIZE:
            raise EngineError(ErrorCode.INVALID_PAYLOAD, f"argument {pos}: invalid principal")
    elif expected == ValueType.UTF8:
        if not isinstance(v.value, str):
            raise EngineError(ErrorCode.INVALID_PAYLOAD, f"argument {pos}: invalid utf8")
    return v.value


def unpack_args(call: ContractCall) -> list[Any]:
    """Check `call.args` against the function signature and return plain values."""
    signature = ARG_SIGNATURES.get(call.function)
    if signature is None:
        raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unknown function: {call.function}")
    if len(call.args) != len(signature):
        raise EngineError(
            ErrorCode.INVALID_PAYLOAD,
            f"{call.function.value} takes {len(signature)} arguments, got {len(call.args)}",
        )

    out: list[Any] = []
    for pos, (arg, spec) in enumerate(zip(call.args, signature)):
        if isinstance(spec, tuple):
            _, inner_type = spec
            if not isinstance(arg, Value) or arg.type != ValueType.OPTIONAL:
                raise EngineError(ErrorCode.INVALID_PAYLOAD, f"argument {pos}: expected optional")
            out.append(None if arg.value is None else _check_value(arg.value, inner_type, pos))
        else:
            out.append(_check_value(arg, spec, pos))
    return out


# --- wire format ---


@dataclass
class Writer:
    buf: bytearray

    def write_u8(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(1, "big", signed=False))

    def write_u32(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(4, "big", signed=False))

    def write_u128(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(16, "big", signed=False))

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)


@dataclass
class Reader:
    data: bytes
    pos: int = 0

    def read_bytes(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise EngineError(ErrorCode.INVALID_FORMAT, "unexpected end of input")
        out = self.data[self.pos:self.pos + n]
        self.pos += n
        return out

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_u32(self) -> int:
        return int.from_bytes(self.read_bytes(4), "big")

    def read_u128(self) -> int:
        return int.from_bytes(self.read_bytes(16), "big")

    def at_end(self) -> bool:
        return self.pos == len(self.data)


def _write_value(w: Writer, v: Value) -> None:
    w.write_u8(v.type)
    if v.type == ValueType.UINT:
        if v.value < 0 or v.value > U128_MAX:
            raise EngineError(ErrorCode.INVALID_FORMAT, "uint out of range")
        w.write_u128(v.value)
    elif v.type == ValueType.PRINCIPAL:
        if len(v.value) != PRINCIPAL_SIZE:
            raise EngineError(ErrorCode.INVALID_FORMAT, f"principal must be {PRINCIPAL_SIZE} bytes")
        w.write_bytes(v.value)
    elif v.type == ValueType.UTF8:
        raw = v.value.encode("utf-8")
        w.write_u32(len(raw))
        w.write_bytes(raw)
    elif v.type == ValueType.BOOL:
        w.write_u8(1 if v.value else 0)
    elif v.type == ValueType.OPTIONAL:
        if v.value is None:
            w.write_u8(0)
        else:
            w.write_u8(1)
            _write_value(w, v.value)
    else:
        raise EngineError(ErrorCode.INVALID_FORMAT, f"unknown value type: {v.type}")


def _read_value(r: Reader) -> Value:
    tag = r.read_u8()
    try:
        vt = ValueType(tag)
    except ValueError:
        raise EngineError(ErrorCode.INVALID_FORMAT, f"unknown value tag {tag:#04x}") from None

    if vt == ValueType.UINT:
        return Value.uint(r.read_u128())
    if vt == ValueType.PRINCIPAL:
        return Value.principal(r.read_bytes(PRINCIPAL_SIZE))
    if vt == ValueType.UTF8:
        n = r.read_u32()
        try:
            return Value.utf8(r.read_bytes(n).decode("utf-8"))
        except UnicodeDecodeError:
            raise EngineError(ErrorCode.INVALID_FORMAT, "invalid utf-8 string") from None
    if vt == ValueType.BOOL:
        flag = r.read_u8()
        if flag > 1:
            raise EngineError(ErrorCode.INVALID_FORMAT, "invalid bool")
        return Value.boolean(flag == 1)
    flag = r.read_u8()
    if flag == 0:
        return Value.none()
    if flag != 1:
        raise EngineError(ErrorCode.INVALID_FORMAT, "invalid optional flag")
    return Value.some(_read_value(r))


def encode_call(call: ContractCall) -> bytes:
    name = call.function.value.encode("ascii")
    if len(call.caller) != PRINCIPAL_SIZE:
        raise EngineError(ErrorCode.INVALID_FORMAT, f"caller must be {PRINCIPAL_SIZE} bytes")
    if len(call.args) > MAX_CALL_ARGS:
        raise EngineError(ErrorCode.INVALID_FORMAT, "too many arguments")

    w = Writer(bytearray())
    w.write_u8(WIRE_VERSION)
    w.write_u8(len(name))
    w.write_bytes(name)
    w.write_bytes(call.caller)
    w.write_u8(len(call.args))
    for arg in call.args:
        _write_value(w, arg)
    return bytes(w.buf)


def decode_call(data: bytes) -> ContractCall:
    r = Reader(bytes(data))
    version = r.read_u8()
    if version != WIRE_VERSION:
        raise EngineError(ErrorCode.INVALID_FORMAT, f"unsupported wire version {version}")

    name_len = r.read_u8()
    if name_len == 0 or name_len > MAX_FUNCTION_NAME_LEN:
        raise EngineError(ErrorCode.INVALID_FORMAT, "invalid function name length")
    try:
        name = r.read_bytes(name_len).decode("ascii")
        function = Function(name)
    except (UnicodeDecodeError, ValueError):
        raise EngineError(ErrorCode.UNKNOWN_FUNCTION, "unknown function name") from None

    caller = r.read_bytes(PRINCIPAL_SIZE)
    argc = r.read_u8()
    if argc > MAX_CALL_ARGS:
        raise EngineError(ErrorCode.INVALID_FORMAT, "too many arguments")
    args = [_read_value(r) for _ in range(argc)]

    if not r.at_end():
        raise EngineError(ErrorCode.INVALID_FORMAT, "trailing bytes after call")
    return ContractCall(caller=caller, function=function, args=args)


def call_hash(call: ContractCall) -> bytes:
    return blake3(encode_call(call)).digest()


def optional_utf8(value: Optional[str]) -> Value:
    return Value.none() if value is None else Value.some(Value.utf8(value))
