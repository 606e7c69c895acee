"""
EIP712 helper functions: type schemas, struct hashes and domain separators.

Mirrors what a Solidity verifier computes:
    hashStruct(s) = keccak256(typeHash || encodeData(s))
    domainSeparator = hashStruct(EIP712Domain)
"""

import re
from collections.abc import Mapping
from typing import Any, Dict, List

from eth_abi import encode
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_utils import is_address, keccak, to_bytes, to_checksum_address

from .eip712_config import DOMAIN_FIELDS
from .errors import EncodingError, SchemaError

EIP712_DOMAIN = "EIP712Domain"
EIP191_PREFIX = b"\x19\x01"

_SIZED_TYPE = re.compile(r"^(bytes|uint|int)([1-9][0-9]*)$")


def is_primitive(type_name: str) -> bool:
    """True for the atomic/dynamic Solidity types EIP-712 encodes directly"""
    if type_name in ("address", "bool", "string", "bytes"):
        return True
    match = _SIZED_TYPE.match(type_name)
    if not match:
        return False
    base, size = match.group(1), int(match.group(2))
    if base == "bytes":
        return 1 <= size <= 32
    return size % 8 == 0 and 8 <= size <= 256


def _field_entry(type_name: str, entry) -> Dict[str, str]:
    if not isinstance(entry, Mapping):
        raise SchemaError(f"Field of {type_name} must be a mapping, got {entry!r}")
    for key in ("name", "type"):
        if not isinstance(entry.get(key), str) or not entry[key]:
            raise SchemaError(f"Field of {type_name} needs a non-empty string {key!r}: {entry!r}")
    return {"name": entry["name"], "type": entry["type"]}


class TypeSchema:
    """
    Mapping of struct name -> ordered fields, validated once on construction.

    Fields keep the {"name": ..., "type": ...} shape used by eth_account, so a
    schema can be dropped straight into a full typed-data message.
    """

    def __init__(self, types: Mapping):
        if isinstance(types, TypeSchema):
            types = types.types
        if not isinstance(types, Mapping):
            raise SchemaError(f"Expected a mapping of type names, got {type(types).__name__}")
        self.types: Dict[str, List[Dict[str, str]]] = {}
        for type_name, type_fields in types.items():
            if not isinstance(type_name, str):
                raise SchemaError(f"Invalid struct name {type_name!r}")
            if isinstance(type_fields, (str, bytes, Mapping)) or not hasattr(type_fields, "__iter__"):
                raise SchemaError(f"Fields of {type_name} must be a list of {{name, type}} entries")
            self.types[type_name] = [_field_entry(type_name, f) for f in type_fields]
        self._validate()

    def __contains__(self, type_name):
        return type_name in self.types

    def __getitem__(self, type_name):
        return self.types[type_name]

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {name: [dict(f) for f in fs] for name, fs in self.types.items()}

    def _validate(self):
        for type_name, type_fields in self.types.items():
            if not type_name or is_primitive(type_name):
                raise SchemaError(f"Invalid struct name {type_name!r}")
            seen = set()
            for f in type_fields:
                if f["name"] in seen:
                    raise SchemaError(f"Duplicate field {f['name']!r} in {type_name}")
                seen.add(f["name"])
                field_type = f["type"]
                if "[" in field_type:
                    raise SchemaError(
                        f"Array type {field_type!r} in {type_name} is not supported"
                    )
                if not is_primitive(field_type) and field_type not in self.types:
                    raise SchemaError(
                        f"Type {field_type!r} referenced by {type_name} is not defined"
                    )

        # depth-first walk over struct references, rejecting back edges
        done = set()

        def visit(type_name, path):
            if type_name in done:
                return
            if type_name in path:
                cycle = " -> ".join(path[path.index(type_name):] + [type_name])
                raise SchemaError(f"Cyclic type reference: {cycle}")
            for f in self.types[type_name]:
                if f["type"] in self.types:
                    visit(f["type"], path + [type_name])
            done.add(type_name)

        for type_name in self.types:
            visit(type_name, [])

    def dependencies(self, type_name: str) -> set:
        """All struct types reachable from type_name, excluding itself"""
        if type_name not in self.types:
            raise SchemaError(f"Type {type_name!r} is not defined")
        found = set()
        pending = [type_name]
        while pending:
            for f in self.types[pending.pop()]:
                if f["type"] in self.types and f["type"] not in found:
                    found.add(f["type"])
                    pending.append(f["type"])
        found.discard(type_name)
        return found

    def encode_type(self, type_name: str) -> str:
        """e.g. 'Mail(Person from,Person to,string contents)Person(string name,address wallet)'"""
        ordered = [type_name] + sorted(self.dependencies(type_name))
        parts = []
        for name in ordered:
            members = ",".join(f"{f['type']} {f['name']}" for f in self.types[name])
            parts.append(f"{name}({members})")
        return "".join(parts)

    def hash_type(self, type_name: str) -> bytes:
        return keccak(text=self.encode_type(type_name))


def _as_schema(types) -> TypeSchema:
    return types if isinstance(types, TypeSchema) else TypeSchema(types)


def _as_bytes(name: str, type_: str, value) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value.startswith(("0x", "0X")):
        try:
            return to_bytes(hexstr=value)
        except ValueError as e:
            raise EncodingError(f"Field {name!r}: invalid hex for {type_}") from e
    raise EncodingError(f"Field {name!r}: expected {type_} bytes, got {type(value).__name__}")


def _encode_field(schema: TypeSchema, name: str, type_: str, value):
    """Map one field to the (abi type, abi value) pair of its 32-byte slot"""
    if type_ in schema:
        return "bytes32", hash_struct(schema, type_, value)

    if type_ == "string":
        if not isinstance(value, str):
            raise EncodingError(f"Field {name!r}: expected string, got {type(value).__name__}")
        return "bytes32", keccak(text=value)

    if type_ == "bytes":
        return "bytes32", keccak(_as_bytes(name, type_, value))

    if type_ == "bool":
        if not isinstance(value, bool):
            raise EncodingError(f"Field {name!r}: expected bool, got {type(value).__name__}")
        return type_, value

    if type_ == "address":
        if isinstance(value, (bytes, bytearray)) and len(value) == 20:
            return type_, to_checksum_address(bytes(value))
        if isinstance(value, str) and is_address(value):
            return type_, to_checksum_address(value)
        raise EncodingError(f"Field {name!r}: expected a 20-byte address, got {value!r}")

    base, size = _SIZED_TYPE.match(type_).groups()
    size = int(size)

    if base == "bytes":
        raw = _as_bytes(name, type_, value)
        if len(raw) > size:
            raise EncodingError(f"Field {name!r}: {len(raw)} bytes do not fit in {type_}")
        return type_, raw

    if not isinstance(value, int) or isinstance(value, bool):
        raise EncodingError(f"Field {name!r}: expected integer, got {type(value).__name__}")
    if base == "uint":
        low, high = 0, 2 ** size - 1
    else:
        low, high = -(2 ** (size - 1)), 2 ** (size - 1) - 1
    if not low <= value <= high:
        raise EncodingError(f"Field {name!r}: {value} out of range for {type_}")
    return type_, value


def encode_data(types, primary_type: str, values: Mapping) -> bytes:
    """typeHash followed by the 32-byte encoding of every field, in schema order"""
    schema = _as_schema(types)
    if primary_type not in schema:
        raise SchemaError(f"Type {primary_type!r} is not defined")
    if not isinstance(values, Mapping):
        raise EncodingError(
            f"Expected a mapping of values for {primary_type}, got {type(values).__name__}"
        )

    abi_types = ["bytes32"]
    abi_values: List[Any] = [schema.hash_type(primary_type)]
    for f in schema[primary_type]:
        if f["name"] not in values:
            raise EncodingError(f"Missing value for {primary_type}.{f['name']}")
        abi_type, abi_value = _encode_field(schema, f["name"], f["type"], values[f["name"]])
        abi_types.append(abi_type)
        abi_values.append(abi_value)

    try:
        return encode(abi_types, abi_values)
    except AbiEncodingError as e:
        raise EncodingError(f"Could not encode {primary_type}: {e}") from e


def hash_struct(types, primary_type: str, values: Mapping) -> bytes:
    """Compute the EIP-712 struct hash of values as primary_type"""
    return keccak(encode_data(types, primary_type, values))


def domain_types(domain: Mapping) -> List[Dict[str, str]]:
    """EIP712Domain fields for exactly the keys populated on domain"""
    allowed = {f["name"] for f in DOMAIN_FIELDS}
    for key in domain:
        if key not in allowed:
            raise SchemaError(f"Invalid domain key {key!r}")
    return [dict(f) for f in DOMAIN_FIELDS if f["name"] in domain]


def hash_domain(domain: Mapping) -> bytes:
    """Compute the EIP712 domain separator"""
    schema = TypeSchema({EIP712_DOMAIN: domain_types(domain)})
    return hash_struct(schema, EIP712_DOMAIN, domain)


def eip712_digest(domain_separator: bytes, struct_hash: bytes) -> bytes:
    """Compute the EIP712 digest"""
    if len(domain_separator) != 32 or len(struct_hash) != 32:
        raise EncodingError("Domain separator and struct hash must both be 32 bytes")
    return keccak(EIP191_PREFIX + bytes(domain_separator) + bytes(struct_hash))


def hash_typed_data(full_message: Mapping) -> bytes:
    """Digest to sign for a full message (domain, types, primaryType, message)"""
    types = {k: v for k, v in full_message["types"].items() if k != EIP712_DOMAIN}
    domain_separator = hash_domain(full_message["domain"])
    struct_hash = hash_struct(types, full_message["primaryType"], full_message["message"])
    return eip712_digest(domain_separator, struct_hash)
