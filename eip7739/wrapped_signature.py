"""
Encoding and parsing of ERC-7739 wrapped signatures.

Layout (abi.encodePacked, no padding):

    signature || appDomainSeparator (32) || contentsHash (32)
              || contentsDescription (utf-8) || uint16(len(contentsDescription))

The signature is the only field without a known width, so a verifier reads the
payload from the tail: length, description, contents hash, domain separator,
and whatever remains in front is the signature.
"""

from dataclasses import dataclass

from eth_abi.packed import encode_packed
from eth_account import Account
from eth_account.messages import SignableMessage
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import keccak, to_bytes

from .eip712_config import TYPED_DATA_SIGN
from .eip712_helpers import EIP712_DOMAIN, TypeSchema, domain_types, encode_data
from .errors import EncodingError
from .typed_data_sign import typed_data_sign_fields

MAX_DESCRIPTION_LENGTH = 0xFFFF
HASH_LENGTH = 32
LENGTH_SUFFIX = 2
SIGNATURE_LENGTH = 65

PACKED_TYPES = ["bytes", "bytes32", "bytes32", "string", "uint16"]


@dataclass(frozen=True)
class WrappedSignature:
    """The four logical fields carried by an encoded wrapped signature"""

    signature: bytes
    app_domain_separator: bytes
    contents_hash: bytes
    contents_description: str

    @property
    def contents_name(self) -> str:
        return contents_type_name(self.contents_description)


def contents_type_name(description: str) -> str:
    """'Message(address sender,uint256 num)' -> 'Message'"""
    name, paren, _ = description.partition("(")
    if not paren or not name or not description.endswith(")"):
        raise EncodingError(f"Malformed contents description {description!r}")
    return name


def _as_payload(payload) -> bytes:
    if isinstance(payload, str):
        return to_bytes(hexstr=payload)
    return bytes(payload)


def encode_wrapped_signature(
    signature: bytes,
    app_domain_separator: bytes,
    contents_hash: bytes,
    contents_description: str,
    contents_description_length: int = None,
) -> bytes:
    """
    Pack a raw signature with the data an ERC-7739 verifier needs to rebuild the hash.

    Args:
        signature: raw signature bytes over the TypedDataSign digest
        app_domain_separator: 32-byte domain separator of the application
        contents_hash: 32-byte struct hash of the application contents
        contents_description: canonical type string of the contents
        contents_description_length: byte length of the description; computed when omitted

    Returns:
        The encoded signature bytes, passed unmodified as the contract's signature argument
    """
    for label, value in (("app domain separator", app_domain_separator), ("contents hash", contents_hash)):
        if len(value) != HASH_LENGTH:
            raise EncodingError(f"The {label} must be {HASH_LENGTH} bytes, got {len(value)}")
    if not isinstance(contents_description, str):
        raise EncodingError(
            f"Contents description must be str, got {type(contents_description).__name__}"
        )

    description = contents_description.encode("utf-8")
    if contents_description_length is None:
        contents_description_length = len(description)
    elif contents_description_length != len(description):
        raise EncodingError(
            f"Description length {contents_description_length} does not match "
            f"its {len(description)}-byte encoding"
        )
    if contents_description_length > MAX_DESCRIPTION_LENGTH:
        raise EncodingError(
            f"Contents description is {contents_description_length} bytes, "
            f"at most {MAX_DESCRIPTION_LENGTH} fit in the uint16 length suffix"
        )

    return encode_packed(
        PACKED_TYPES,
        [
            bytes(signature),
            bytes(app_domain_separator),
            bytes(contents_hash),
            contents_description,
            contents_description_length,
        ],
    )


def parse_wrapped_signature(payload) -> WrappedSignature:
    """Split an encoded wrapped signature back into its fields, reading from the tail"""
    data = _as_payload(payload)
    if len(data) < LENGTH_SUFFIX + 2 * HASH_LENGTH:
        raise EncodingError(f"Wrapped signature too short: {len(data)} bytes")

    length_start = len(data) - LENGTH_SUFFIX
    description_length = int.from_bytes(data[length_start:], "big")

    description_start = length_start - description_length
    contents_hash_start = description_start - HASH_LENGTH
    domain_start = contents_hash_start - HASH_LENGTH
    if domain_start < 0:
        raise EncodingError(
            f"Description length {description_length} exceeds the {len(data)}-byte payload"
        )

    try:
        description = data[description_start:length_start].decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError("Contents description is not valid UTF-8") from e

    return WrappedSignature(
        signature=data[:domain_start],
        app_domain_separator=data[domain_start:contents_hash_start],
        contents_hash=data[contents_hash_start:description_start],
        contents_description=description,
    )


def typed_data_sign_hash(wrapped: WrappedSignature, account_domain) -> bytes:
    """
    Rebuild hashStruct(TypedDataSign) from a parsed signature and the account's domain.

    The type string is assembled the way the account contract does it: the
    TypedDataSign member list followed verbatim by the contents description.
    """
    sign_fields = typed_data_sign_fields(account_domain, wrapped.contents_name)
    members = ",".join(f"{f['type']} {f['name']}" for f in sign_fields)
    type_string = f"{TYPED_DATA_SIGN}({members}){wrapped.contents_description}"

    domain_schema = TypeSchema({EIP712_DOMAIN: domain_types(account_domain)})
    # drop the EIP712Domain type hash, keep the 32-byte field slots
    encoded_domain = encode_data(domain_schema, EIP712_DOMAIN, account_domain)[HASH_LENGTH:]

    return keccak(keccak(text=type_string) + wrapped.contents_hash + encoded_domain)


def recover_wrapped_signer(payload, account_domain) -> str:
    """Recover the address that produced an encoded wrapped signature"""
    wrapped = parse_wrapped_signature(payload)
    signable = SignableMessage(
        version=b"\x01",
        header=wrapped.app_domain_separator,
        body=typed_data_sign_hash(wrapped, account_domain),
    )
    if len(wrapped.signature) != SIGNATURE_LENGTH:
        raise EncodingError(
            f"Expected a {SIGNATURE_LENGTH}-byte ECDSA signature, got {len(wrapped.signature)} bytes"
        )
    try:
        return Account.recover_message(signable, signature=wrapped.signature)
    except (ValueError, ValidationError, BadSignature) as e:
        raise EncodingError(f"Cannot recover a signer from the signature: {e}") from e
