"""
ERC-7739 TypedDataSign envelope.

The application's contents are nested inside a synthetic TypedDataSign struct
that also carries the smart account's own EIP-712 domain fields:

    TypedDataSign(Message contents,string name,string version,uint256 chainId,
                  address verifyingContract,bytes32 salt)Message(...)

The document is signed under the application's domain, so the final digest is
keccak256(0x1901 || appDomainSeparator || hashStruct(TypedDataSign)).
"""

from typing import Any, Dict, List, Mapping

from .eip712_config import MESSAGE_TYPE_NAME, TYPED_DATA_SIGN
from .eip712_helpers import EIP712_DOMAIN, TypeSchema, domain_types
from .errors import SchemaError


def typed_data_sign_fields(account_domain: Mapping, contents_type_name: str = MESSAGE_TYPE_NAME) -> List[Dict[str, str]]:
    """contents first, then the account domain fields that are actually populated"""
    return [{"name": "contents", "type": contents_type_name}] + domain_types(account_domain)


def contents_description(contents_types, contents_type_name: str = MESSAGE_TYPE_NAME) -> str:
    """Canonical type string of the contents, e.g. 'Message(address sender,uint256 num)'"""
    schema = TypeSchema(contents_types)
    return schema.encode_type(contents_type_name)


def build_typed_data_sign(
    app_domain: Mapping,
    account_domain: Mapping,
    contents: Mapping,
    contents_types,
    contents_type_name: str = MESSAGE_TYPE_NAME,
) -> Dict[str, Any]:
    """
    Build the full EIP-712 message a signer signs for an ERC-7739 account.

    Args:
        app_domain: EIP-712 domain of the application contract (signing domain)
        account_domain: EIP-712 domain of the smart account, salt optional
        contents: application message values
        contents_types: schema containing contents_type_name and its dependencies
        contents_type_name: primary type of the contents

    Returns:
        Dict with "types", "primaryType", "domain" and "message", ready for
        eth_account's sign_typed_data(full_message=...).
    """
    schema = TypeSchema(contents_types)
    if contents_type_name not in schema:
        raise SchemaError(f"Contents type {contents_type_name!r} is not defined")
    if TYPED_DATA_SIGN in schema or EIP712_DOMAIN in schema:
        raise SchemaError(f"Contents schema must not define {TYPED_DATA_SIGN} or {EIP712_DOMAIN}")

    sign_fields = typed_data_sign_fields(account_domain, contents_type_name)

    types = {TYPED_DATA_SIGN: sign_fields}
    types.update(schema.to_dict())
    # validates the combined schema
    TypeSchema(types)

    message = {"contents": dict(contents)}
    for f in sign_fields[1:]:
        message[f["name"]] = account_domain[f["name"]]

    return {
        "types": types,
        "primaryType": TYPED_DATA_SIGN,
        "domain": dict(app_domain),
        "message": message,
    }
