from dataclasses import dataclass
from typing import Dict, Any, List


# -----------------------------
# EIP-191: personal_sign message prefix
# -----------------------------

#: Version byte ``E`` prefix applied by ``personal_sign`` before hashing.
EIP191_PREFIX = b"\x19Ethereum Signed Message:\n"


# -----------------------------
# ERC-1271: Contract-based signature validation objects
# -----------------------------

@dataclass
class ERC1271ABI:
    """
    ABI definition for the ERC-1271 ``isValidSignature`` function.

    Encodes the single function entry required to call
    ``isValidSignature(bytes32 _hash, bytes _signature) returns (bytes4)``
    on any contract implementing the ERC-1271 standard.

    Use ``to_dict()`` to obtain the raw ABI entry dict, or ``to_list()``
    to get the full ABI list accepted by ``web3.eth.contract``.
    """

    def to_dict(self) -> Dict[str, Any]:
        """Return the ``isValidSignature`` ABI entry as a dict."""
        return {
            "inputs": [
                {"name": "_hash", "type": "bytes32"},
                {"name": "_signature", "type": "bytes"},
            ],
            "name": "isValidSignature",
            "outputs": [{"name": "magicValue", "type": "bytes4"}],
            "stateMutability": "view",
            "type": "function",
        }

    def to_list(self) -> List[Dict[str, Any]]:
        """Return the full ABI as a list compatible with ``web3.eth.contract``."""
        return [self.to_dict()]


@dataclass
class ERC1271Signature:
    """
    A contract wallet signature check request.

    Plain container for the pieces handed to ``isValidSignature``; used to
    produce structured log context without leaking the full signature.

    Attributes:
        contract: Address of the ERC-1271 wallet contract.
        message_hash: EIP-191 hash of the canonical SIWE text (bytes32).
        signature: Signature bytes exactly as the wallet produced them.
    """

    contract: str
    message_hash: bytes
    signature: bytes

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dict suitable for logging."""
        return {
            "contract": self.contract,
            "message_hash": "0x" + self.message_hash.hex(),
            "signature_length": len(self.signature),
        }
