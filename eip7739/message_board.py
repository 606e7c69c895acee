"""
Submit an ERC-7739 wrapped signature to the MessageBoard contract and check the result.
"""

from typing import Any, Dict, Mapping

from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import ContractLogicError

from .errors import TransactionReverted, VerificationMismatch

MESSAGE_BOARD_ABI = [
    {
        "type": "function",
        "name": "send",
        "inputs": [
            {
                "name": "data",
                "type": "tuple",
                "internalType": "struct MessageBoard.Message",
                "components": [
                    {"name": "sender", "type": "address", "internalType": "address"},
                    {"name": "num", "type": "uint256", "internalType": "uint256"},
                ],
            },
            {"name": "_signature", "type": "bytes", "internalType": "bytes"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "numOfSigner",
        "inputs": [{"name": "sender", "type": "address", "internalType": "address"}],
        "outputs": [{"name": "num", "type": "uint256", "internalType": "uint256"}],
        "stateMutability": "view",
    },
]


class MessageBoard:
    """Thin wrapper over the deployed MessageBoard contract"""

    def __init__(self, w3: Web3, address: str):
        self.w3 = w3
        self.address = to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=MESSAGE_BOARD_ABI)

    def send(self, account, contents: Mapping, encoded_signature: bytes) -> Dict[str, Any]:
        """
        Call send(data, _signature) from account and wait for the receipt.

        The call is simulated first so a failing signature check surfaces as
        TransactionReverted before anything is broadcast.
        """
        data = (to_checksum_address(contents["sender"]), contents["num"])
        call = self.contract.functions.send(data, encoded_signature)

        try:
            call.call({"from": account.address})
        except ContractLogicError as e:
            raise TransactionReverted(f"send() reverted in simulation: {e}") from e

        tx = call.build_transaction({
            "from": account.address,
            "nonce": self.w3.eth.get_transaction_count(account.address),
        })
        signed_tx = account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        print(f"📤 Transaction sent: {tx_hash.hex()}")

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] != 1:
            raise TransactionReverted("Something went wrong. Transaction reverted.", tx_hash=tx_hash)

        print(f"✅ Transaction mined in block {receipt['blockNumber']} (gas used: {receipt['gasUsed']:,})")
        return receipt

    def num_of_signer(self, sender: str) -> int:
        """Number last recorded for sender"""
        return self.contract.functions.numOfSigner(to_checksum_address(sender)).call()


def submit_and_confirm(board: MessageBoard, account, contents: Mapping, encoded_signature: bytes) -> int:
    """Send the signed contents and confirm the contract stored the signed number"""
    board.send(account, contents, encoded_signature)

    num = board.num_of_signer(contents["sender"])
    if num != contents["num"]:
        raise VerificationMismatch(contents["num"], num)

    print(f"✅ Number for signer: {num}")
    return num
