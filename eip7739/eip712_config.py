# EIP-712 / ERC-7739 configuration
# Schema constants must match the verifying contracts byte-for-byte.

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from eth_utils import is_address, to_bytes, to_checksum_address

from .errors import ConfigError, EncodingError

# Application contents schema: Message(address sender,uint256 num)
MESSAGE_TYPE_NAME = "Message"
MESSAGE_TYPES = {
    "Message": [
        {"name": "sender", "type": "address"},
        {"name": "num", "type": "uint256"},
    ],
}

# Synthetic top-level type wrapping the contents in the account's domain
TYPED_DATA_SIGN = "TypedDataSign"

# EIP712Domain fields in canonical order
DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
    {"name": "salt", "type": "bytes32"},
]

# solady's EIP712 returns an all-zero salt from eip712Domain()
ZERO_SALT = b"\x00" * 32

# Local anvil deployment
RPC_URL = "http://localhost:8545"
ANVIL_CHAIN_ID = 31337
ANVIL_TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
APP_CONTRACT_ADDRESS = "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"
ACCOUNT_CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"

APP_DOMAIN_NAME = "MessageBoard"
APP_DOMAIN_VERSION = "1"
ACCOUNT_DOMAIN_NAME = "ContractSigner"
ACCOUNT_DOMAIN_VERSION = "1"

# Environment variable -> SignerConfig field
ENV_VARS = {
    "EIP7739_RPC_URL": "rpc_url",
    "EIP7739_PRIVATE_KEY": "private_key",
    "EIP7739_CHAIN_ID": "chain_id",
    "EIP7739_APP_CONTRACT": "app_contract",
    "EIP7739_ACCOUNT_CONTRACT": "account_contract",
    "EIP7739_APP_DOMAIN_NAME": "app_domain_name",
    "EIP7739_APP_DOMAIN_VERSION": "app_domain_version",
    "EIP7739_ACCOUNT_DOMAIN_NAME": "account_domain_name",
    "EIP7739_ACCOUNT_DOMAIN_VERSION": "account_domain_version",
    "EIP7739_ACCOUNT_SALT": "account_salt",
}


def _salt_bytes(value) -> Optional[bytes]:
    if value is None or isinstance(value, bytes):
        return value
    if isinstance(value, str):
        if value.lower() in ("", "none"):
            return None
        try:
            return to_bytes(hexstr=value)
        except ValueError as e:
            raise EncodingError(f"Invalid salt hex {value!r}") from e
    raise EncodingError(f"Unsupported salt value {value!r}")


@dataclass(frozen=True)
class SignerConfig:
    """Everything the signing flow needs about the chain, keys and contracts."""

    rpc_url: str = RPC_URL
    private_key: str = ANVIL_TEST_PRIVATE_KEY
    chain_id: int = ANVIL_CHAIN_ID
    app_contract: str = APP_CONTRACT_ADDRESS
    account_contract: str = ACCOUNT_CONTRACT_ADDRESS
    app_domain_name: str = APP_DOMAIN_NAME
    app_domain_version: str = APP_DOMAIN_VERSION
    account_domain_name: str = ACCOUNT_DOMAIN_NAME
    account_domain_version: str = ACCOUNT_DOMAIN_VERSION
    # None drops salt from the account domain entirely
    account_salt: Optional[bytes] = field(default=ZERO_SALT)

    def __post_init__(self):
        for name in ("app_contract", "account_contract"):
            value = getattr(self, name)
            if not is_address(value):
                raise EncodingError(f"Invalid {name} address {value!r}")
            object.__setattr__(self, name, to_checksum_address(value))
        chain_id = self.chain_id
        try:
            chain_id = int(chain_id, 0) if isinstance(chain_id, str) else int(chain_id)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Invalid chain id {self.chain_id!r}") from e
        if chain_id <= 0 or isinstance(self.chain_id, bool):
            raise EncodingError(f"Invalid chain id {self.chain_id!r}")
        object.__setattr__(self, "chain_id", chain_id)
        salt = _salt_bytes(self.account_salt)
        if salt is not None and len(salt) != 32:
            raise EncodingError(f"Account salt must be 32 bytes, got {len(salt)}")
        object.__setattr__(self, "account_salt", salt)

    def app_domain(self) -> Dict[str, Any]:
        """EIP-712 domain of the application contract"""
        return {
            "name": self.app_domain_name,
            "version": self.app_domain_version,
            "chainId": self.chain_id,
            "verifyingContract": self.app_contract,
        }

    def account_domain(self) -> Dict[str, Any]:
        """EIP-712 domain of the smart account (salt only when configured)"""
        domain = {
            "name": self.account_domain_name,
            "version": self.account_domain_version,
            "chainId": self.chain_id,
            "verifyingContract": self.account_contract,
        }
        if self.account_salt is not None:
            domain["salt"] = self.account_salt
        return domain


def load_config(path=None, env_file=None) -> SignerConfig:
    """
    Build a SignerConfig from defaults, an optional JSON file and the environment.

    Later sources win: defaults < JSON config file < EIP7739_* environment variables.
    """
    load_dotenv(env_file)

    values: Dict[str, Any] = {}
    if path is not None:
        try:
            with open(Path(path), "r") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must hold a JSON object")
        known = {f.name for f in fields(SignerConfig)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        values.update(data)

    for env_name, attr in ENV_VARS.items():
        if env_name in os.environ:
            values[attr] = os.environ[env_name]

    return SignerConfig(**values)
