"""
Abstract Base Classes for Signature Checkers

Defines the capability the verifier needs from the chain when plain
signature recovery does not match: "does this contract account consider this
(hash, signature) pair valid?".

Core Classes:
    - ContractSignatureChecker: Strategy interface implemented by the
      production ERC-1271 checker and by test doubles

Implementations must be safe to call concurrently and must not cache
results across calls.
"""

from abc import ABC, abstractmethod


class ContractSignatureChecker(ABC):
    """
    Abstract strategy for contract-wallet signature validation.

    Smart-contract wallets (Safe, Argent, Coinbase Smart Wallet, ...) hold no
    private key, so a signature made "by" them cannot be recovered with
    ECDSA. Instead the wallet contract exposes a view function that answers
    whether a signature is acceptable for a given message hash.

    Example Implementation:
        class AlwaysValidChecker(ContractSignatureChecker):
            async def is_valid_signature(self, address, message_hash, signature):
                return True
    """

    @abstractmethod
    async def is_valid_signature(
        self,
        address: str,
        message_hash: bytes,
        signature: bytes,
    ) -> bool:
        """
        Ask the account at ``address`` whether ``signature`` is valid for ``message_hash``.

        Args:
            address: EIP-55 checksummed account address.
            message_hash: 32-byte EIP-191 hash of the canonical message text.
            signature: Raw signature bytes exactly as supplied by the wallet.

        Returns:
            bool: ``True`` only when the account accepts the signature.
            Accounts that are not contracts return ``False``.

        Raises:
            ProviderError: If the chain could not be queried. Transport faults
                must not be reported as ``False``.
        """
        pass
