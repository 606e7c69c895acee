"""
Sign application contents for an ERC-7739 smart account.

hash -> compose -> sign -> encode, all in memory; nothing is persisted.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from eth_account import Account

from .eip712_config import MESSAGE_TYPE_NAME, MESSAGE_TYPES
from .eip712_helpers import TypeSchema, hash_domain, hash_struct
from .typed_data_sign import build_typed_data_sign, contents_description
from .wrapped_signature import encode_wrapped_signature


@dataclass(frozen=True)
class SignedContents:
    """Result of one signing operation"""

    typed_data: Dict[str, Any]
    signature: bytes
    app_domain_separator: bytes
    contents_hash: bytes
    contents_description: str
    encoded_signature: bytes


def sign_typed_data_sign(private_key, typed_data: Mapping) -> bytes:
    """Sign a full TypedDataSign message, returning the 65-byte r || s || v signature"""
    signed = Account.sign_typed_data(private_key, full_message=typed_data)
    return bytes(signed.signature)


def create_wrapped_signature(
    private_key,
    app_domain: Mapping,
    account_domain: Mapping,
    contents: Mapping,
    contents_types=MESSAGE_TYPES,
    contents_type_name: str = MESSAGE_TYPE_NAME,
) -> SignedContents:
    """
    Produce the encoded signature an ERC-7739 account accepts for contents.

    Args:
        private_key: key of the account's owner
        app_domain: EIP-712 domain of the application contract
        account_domain: EIP-712 domain of the smart account
        contents: application message values
        contents_types: schema of the contents
        contents_type_name: primary type of the contents

    Returns:
        SignedContents holding the signed document, both hashes and the encoded signature
    """
    schema = TypeSchema(contents_types)
    typed_data = build_typed_data_sign(
        app_domain, account_domain, contents, schema, contents_type_name
    )
    app_domain_separator = hash_domain(app_domain)
    contents_hash = hash_struct(schema, contents_type_name, contents)
    description = contents_description(schema, contents_type_name)

    signature = sign_typed_data_sign(private_key, typed_data)

    return SignedContents(
        typed_data=typed_data,
        signature=signature,
        app_domain_separator=app_domain_separator,
        contents_hash=contents_hash,
        contents_description=description,
        encoded_signature=encode_wrapped_signature(
            signature, app_domain_separator, contents_hash, description
        ),
    )
