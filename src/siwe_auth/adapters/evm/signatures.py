"""
EVM Off-Chain Signing Utilities

Local EIP-191 (``personal_sign``) signing of SIWE messages. All
cryptographic operations are performed in-process using ``eth_account``; no
RPC calls are made.

Exported helpers
----------------
sign_message
    Render a ``SiweMessage`` canonically and sign it with a private key,
    returning the 65-byte ``r || s || v`` signature as 0x-hex.

sign_text
    Low-level helper that signs arbitrary text the same way. Useful when the
    text was produced elsewhere (e.g. a wallet UI) and must be reproduced
    byte-for-byte.
"""

from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct

from ...schemas.messages import SiweMessage


def sign_text(text: str, private_key: str) -> str:
    """
    EIP-191 sign ``text``.

    Args:
        text:        Exact text to sign.
        private_key: Hex-encoded secp256k1 private key (with or without ``0x``).

    Returns:
        0x-prefixed 132-character hex signature (``r || s || v``, v in {27, 28}).

    Raises:
        ValueError: If ``private_key`` is empty.
    """
    if not private_key:
        raise ValueError("Private key is required for signing.")

    signed = Account.sign_message(encode_defunct(text=text), private_key=private_key)
    return "0x" + bytes(signed.signature).hex()


def sign_message(message: Union[SiweMessage, str], private_key: str) -> str:
    """
    Sign a SIWE message with an EOA private key.

    The canonical text (``message.prepare_message()``) is what gets signed,
    so the signature verifies against any faithful re-rendering of the
    message. The key's address should equal ``message.address``; this
    helper does not enforce it so tests can produce mismatched signatures.

    Args:
        message:     ``SiweMessage`` or its canonical text.
        private_key: Hex-encoded secp256k1 private key.

    Returns:
        0x-prefixed hex signature.

    Example::

        message = SiweMessage(
            domain="example.com",
            address=Account.from_key(key).address,
            uri="https://example.com/login",
            chain_id=1,
            nonce=generate_nonce(),
        )
        signature = sign_message(message, key)
    """
    text = message.prepare_message() if isinstance(message, SiweMessage) else message
    return sign_text(text, private_key)
