"""Struct hashing and domain separators"""

import pytest
from eth_account.messages import encode_typed_data
from eth_utils import keccak

from eip7739.eip712_config import MESSAGE_TYPES, ZERO_SALT
from eip7739.eip712_helpers import (
    TypeSchema,
    domain_types,
    eip712_digest,
    encode_data,
    hash_domain,
    hash_struct,
    hash_typed_data,
    is_primitive,
)
from eip7739.errors import EncodingError, SchemaError

# Example from the EIP-712 specification
MAIL_TYPES = {
    "Person": [
        {"name": "name", "type": "string"},
        {"name": "wallet", "type": "address"},
    ],
    "Mail": [
        {"name": "from", "type": "Person"},
        {"name": "to", "type": "Person"},
        {"name": "contents", "type": "string"},
    ],
}
MAIL_DOMAIN = {
    "name": "Ether Mail",
    "version": "1",
    "chainId": 1,
    "verifyingContract": "0xcccccccccccccccccccccccccccccccccccccccc",
}
MAIL = {
    "from": {"name": "Cow", "wallet": "0xcd2a3d9f938e13cd947ec05abc7fe734df8dd826"},
    "to": {"name": "Bob", "wallet": "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"},
    "contents": "Hello, Bob!",
}

ACCOUNT_DOMAIN = {
    "name": "ContractSigner",
    "version": "1",
    "chainId": 31337,
    "verifyingContract": "0x5fbdb2315678afecb367f032d93f642f64180aa3",
    "salt": ZERO_SALT,
}


def test_mail_encode_type():
    schema = TypeSchema(MAIL_TYPES)
    assert schema.encode_type("Mail") == (
        "Mail(Person from,Person to,string contents)Person(string name,address wallet)"
    )
    assert schema.hash_type("Mail").hex() == (
        "a0cedeb2dc280ba39b857546d74f5549c3a1d7bdc2dd96bf881f76108e23dac2"
    )


def test_mail_reference_vector():
    assert hash_domain(MAIL_DOMAIN).hex() == (
        "f2cee375fa42b42143804025fc449deafd50cc031ca257e0b194a650a912090f"
    )
    assert hash_struct(MAIL_TYPES, "Mail", MAIL).hex() == (
        "c52c0ee5d84264471806290a3f2c4cecfc5490626bf912d01f240d7a274b371e"
    )
    full = {
        "types": MAIL_TYPES,
        "primaryType": "Mail",
        "domain": MAIL_DOMAIN,
        "message": MAIL,
    }
    assert hash_typed_data(full).hex() == (
        "be609aee343fb3c4b28e1df9e632fca64fcfaede20f02e86244efddf30957bd2"
    )


def test_message_type_string():
    assert TypeSchema(MESSAGE_TYPES).encode_type("Message") == "Message(address sender,uint256 num)"


def test_hash_struct_deterministic():
    contents = {"sender": ACCOUNT_DOMAIN["verifyingContract"], "num": 4242}
    first = hash_struct(MESSAGE_TYPES, "Message", contents)
    assert len(first) == 32
    assert first == hash_struct(MESSAGE_TYPES, "Message", dict(contents))
    assert first == hash_struct(TypeSchema(MESSAGE_TYPES), "Message", contents)
    assert first != hash_struct(MESSAGE_TYPES, "Message", {**contents, "num": 4243})


def test_message_hash_matches_abi_encoding():
    sender = ACCOUNT_DOMAIN["verifyingContract"]
    expected = keccak(
        keccak(text="Message(address sender,uint256 num)")
        + bytes(12) + bytes.fromhex(sender[2:])
        + (4242).to_bytes(32, "big")
    )
    assert hash_struct(MESSAGE_TYPES, "Message", {"sender": sender, "num": 4242}) == expected


def test_address_accepts_bytes_and_checksum():
    raw = bytes.fromhex(ACCOUNT_DOMAIN["verifyingContract"][2:])
    lower = hash_struct(MESSAGE_TYPES, "Message", {"sender": ACCOUNT_DOMAIN["verifyingContract"], "num": 1})
    assert hash_struct(MESSAGE_TYPES, "Message", {"sender": raw, "num": 1}) == lower


def test_hash_domain_matches_eth_account():
    full = {
        "types": MESSAGE_TYPES,
        "primaryType": "Message",
        "domain": ACCOUNT_DOMAIN,
        "message": {"sender": ACCOUNT_DOMAIN["verifyingContract"], "num": 7},
    }
    signable = encode_typed_data(full_message=full)
    assert signable.header == hash_domain(ACCOUNT_DOMAIN)
    assert signable.body == hash_struct(MESSAGE_TYPES, "Message", full["message"])


@pytest.mark.parametrize(
    "field, value",
    [
        ("name", "ContractSigner2"),
        ("version", "2"),
        ("chainId", 1),
        ("verifyingContract", "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"),
        ("salt", b"\x00" * 31 + b"\x01"),
    ],
)
def test_hash_domain_sensitive_to_every_field(field, value):
    changed = {**ACCOUNT_DOMAIN, field: value}
    assert hash_domain(changed) != hash_domain(ACCOUNT_DOMAIN)


def test_domain_without_salt_omits_it():
    no_salt = {k: v for k, v in ACCOUNT_DOMAIN.items() if k != "salt"}
    assert [f["name"] for f in domain_types(no_salt)] == [
        "name", "version", "chainId", "verifyingContract",
    ]
    typehash = keccak(text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)")
    assert encode_data({"EIP712Domain": domain_types(no_salt)}, "EIP712Domain", no_salt)[:32] == typehash
    assert hash_domain(no_salt) != hash_domain(ACCOUNT_DOMAIN)


def test_domain_field_order_is_canonical():
    shuffled = dict(reversed(list(ACCOUNT_DOMAIN.items())))
    assert hash_domain(shuffled) == hash_domain(ACCOUNT_DOMAIN)


def test_invalid_domain_key():
    with pytest.raises(SchemaError):
        hash_domain({**ACCOUNT_DOMAIN, "owner": "me"})


def test_primitive_types():
    for type_name in ("address", "bool", "string", "bytes", "bytes1", "bytes32", "uint8", "uint256", "int128"):
        assert is_primitive(type_name)
    for type_name in ("bytes0", "bytes33", "uint7", "uint264", "int0", "Message", "uint08"):
        assert not is_primitive(type_name)


def test_undefined_type_reference():
    with pytest.raises(SchemaError, match="Person"):
        TypeSchema({"Mail": [{"name": "from", "type": "Person"}]})


def test_cyclic_types_rejected():
    with pytest.raises(SchemaError, match="Cyclic"):
        TypeSchema({
            "A": [{"name": "b", "type": "B"}],
            "B": [{"name": "a", "type": "A"}],
        })
    with pytest.raises(SchemaError):
        TypeSchema({"Node": [{"name": "next", "type": "Node"}]})


def test_array_types_rejected():
    with pytest.raises(SchemaError, match="Array"):
        TypeSchema({"Batch": [{"name": "nums", "type": "uint256[]"}]})


def test_duplicate_field_rejected():
    with pytest.raises(SchemaError):
        TypeSchema({"Message": [{"name": "num", "type": "uint256"}, {"name": "num", "type": "uint8"}]})


@pytest.mark.parametrize(
    "types",
    [
        {"Message": [{"name": "num"}]},
        {"Message": [{"type": "uint256"}]},
        {"Message": [{"name": "num", "type": 256}]},
        {"Message": [{"name": "", "type": "uint256"}]},
        {"Message": ["uint256 num"]},
        {"Message": "uint256 num"},
        {"Message": None},
        [("Message", [{"name": "num", "type": "uint256"}])],
        None,
    ],
)
def test_malformed_schema_rejected(types):
    with pytest.raises(SchemaError):
        TypeSchema(types)


def test_unknown_primary_type():
    with pytest.raises(SchemaError):
        hash_struct(MESSAGE_TYPES, "Mail", {})


@pytest.mark.parametrize(
    "contents",
    [
        {"sender": "not an address", "num": 1},
        {"sender": 12345, "num": 1},
        {"sender": b"\x01" * 19, "num": 1},
        {"sender": ACCOUNT_DOMAIN["verifyingContract"], "num": "4242"},
        {"sender": ACCOUNT_DOMAIN["verifyingContract"], "num": True},
        {"sender": ACCOUNT_DOMAIN["verifyingContract"], "num": -1},
        {"sender": ACCOUNT_DOMAIN["verifyingContract"], "num": 2 ** 256},
        {"sender": ACCOUNT_DOMAIN["verifyingContract"]},
    ],
)
def test_value_type_mismatch(contents):
    with pytest.raises(EncodingError):
        hash_struct(MESSAGE_TYPES, "Message", contents)


def test_sized_values():
    types = {
        "Sized": [
            {"name": "small", "type": "int8"},
            {"name": "tag", "type": "bytes4"},
            {"name": "flag", "type": "bool"},
            {"name": "blob", "type": "bytes"},
        ]
    }
    ok = {"small": -128, "tag": "0xdeadbeef", "flag": False, "blob": b"\x01\x02"}
    assert len(hash_struct(types, "Sized", ok)) == 32
    with pytest.raises(EncodingError):
        hash_struct(types, "Sized", {**ok, "small": 128})
    with pytest.raises(EncodingError):
        hash_struct(types, "Sized", {**ok, "tag": b"\x00" * 5})
    with pytest.raises(EncodingError):
        hash_struct(types, "Sized", {**ok, "flag": 1})
    with pytest.raises(EncodingError):
        hash_struct(types, "Sized", {**ok, "blob": "plain text"})


def test_nested_struct_must_be_mapping():
    with pytest.raises(EncodingError):
        hash_struct(MAIL_TYPES, "Mail", {**MAIL, "from": "Cow"})


def test_eip712_digest():
    domain_separator = hash_domain(MAIL_DOMAIN)
    struct_hash = hash_struct(MAIL_TYPES, "Mail", MAIL)
    assert eip712_digest(domain_separator, struct_hash) == keccak(b"\x19\x01" + domain_separator + struct_hash)
    with pytest.raises(EncodingError):
        eip712_digest(domain_separator[:31], struct_hash)
