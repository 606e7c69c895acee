#!/usr/bin/env python3
"""
Sign a MessageBoard message for an ERC-7739 smart account and submit it:
1. Build the TypedDataSign payload
2. Sign it and encode the wrapped signature
3. Send the transaction and read the stored number back
"""

import argparse
import secrets
import sys

from eth_account import Account
from web3 import Web3

from .eip712_config import MESSAGE_TYPE_NAME, MESSAGE_TYPES, load_config
from .errors import ConfigError, Eip7739Error
from .message_board import MessageBoard, submit_and_confirm
from .signer import create_wrapped_signature


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--num", type=int, default=None, help="number to store (random below 10000 by default)")
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument("--env-file", default=None, help=".env file with EIP7739_* variables")
    parser.add_argument("--dry-run", action="store_true", help="print the encoded signature without sending it")
    return parser.parse_args(argv)


def run(config, num, dry_run=False):
    """Run the whole flow for one number, returning the encoded signature"""
    try:
        account = Account.from_key(config.private_key)
    except ValueError as e:
        raise ConfigError(f"Invalid private key: {e}") from e

    contents = {
        "sender": config.account_contract,
        "num": num,
    }

    print("\n🔥 Creating ERC-7739 payload")
    print("=" * 50)
    print(f"Signer: {account.address}")
    print(f"Account contract: {config.account_contract}")
    print(f"App contract: {config.app_contract}")
    print(f"Number: {num}")

    signed = create_wrapped_signature(
        config.private_key,
        config.app_domain(),
        config.account_domain(),
        contents,
        MESSAGE_TYPES,
        MESSAGE_TYPE_NAME,
    )

    print(f"🖊️  Raw signature: 0x{signed.signature.hex()}")
    print(f"App domain separator: 0x{signed.app_domain_separator.hex()}")
    print(f"Contents hash: 0x{signed.contents_hash.hex()}")
    print(f"Contents description: {signed.contents_description}")
    print(f"📨 Encoded signature ({len(signed.encoded_signature)} bytes): 0x{signed.encoded_signature.hex()}")

    if dry_run:
        return signed.encoded_signature

    print("\n🚀 Sending transaction")
    print("=" * 50)
    w3 = Web3(Web3.HTTPProvider(config.rpc_url))
    if not w3.is_connected():
        raise ConnectionError(f"Could not connect to {config.rpc_url}")

    board = MessageBoard(w3, config.app_contract)
    submit_and_confirm(board, account, contents, signed.encoded_signature)
    return signed.encoded_signature


def main(argv=None):
    args = parse_args(argv)
    num = args.num if args.num is not None else secrets.randbelow(10000)

    try:
        config = load_config(args.config, args.env_file)
        run(config, num, dry_run=args.dry_run)
    except (Eip7739Error, ConnectionError) as e:
        print(f"❌ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
