from .security import generate_nonce, verify_wallet_login

__all__ = [
    "generate_nonce",
    "verify_wallet_login",
]
