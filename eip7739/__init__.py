"""
ERC-7739 wrapped typed-data signatures: TypedDataSign envelopes, struct hashing,
and the packed signature format smart accounts verify.
"""

from .eip712_config import SignerConfig, load_config
from .eip712_helpers import (
    TypeSchema,
    eip712_digest,
    hash_domain,
    hash_struct,
    hash_typed_data,
)
from .errors import (
    ConfigError,
    EncodingError,
    Eip7739Error,
    SchemaError,
    TransactionReverted,
    VerificationMismatch,
)
from .message_board import MessageBoard, submit_and_confirm
from .signer import SignedContents, create_wrapped_signature, sign_typed_data_sign
from .typed_data_sign import build_typed_data_sign, contents_description
from .wrapped_signature import (
    WrappedSignature,
    encode_wrapped_signature,
    parse_wrapped_signature,
    recover_wrapped_signer,
    typed_data_sign_hash,
)

__version__ = "0.1.0"

__all__ = (
    "__version__",
    # Config
    "SignerConfig",
    "load_config",
    # Errors
    "Eip7739Error",
    "ConfigError",
    "SchemaError",
    "EncodingError",
    "VerificationMismatch",
    "TransactionReverted",
    # Hashing
    "TypeSchema",
    "hash_struct",
    "hash_domain",
    "eip712_digest",
    "hash_typed_data",
    # Envelope
    "build_typed_data_sign",
    "contents_description",
    # Wrapped signature
    "WrappedSignature",
    "encode_wrapped_signature",
    "parse_wrapped_signature",
    "typed_data_sign_hash",
    "recover_wrapped_signer",
    # Signing and submission
    "SignedContents",
    "create_wrapped_signature",
    "sign_typed_data_sign",
    "MessageBoard",
    "submit_and_confirm",
)
