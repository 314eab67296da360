"""
Sign-In with Ethereum (EIP-4361) message authentication.

Parse, render and verify SIWE messages. Verification checks the message
fields against the relying party's expectations and proves authorship by
EIP-191 signature recovery, falling back to an ERC-1271 contract wallet
check through an ``AsyncWeb3`` provider.
"""

from .schemas import (
    SiweError,
    SiweErrorType,
    SiweMessage,
    SiweResponse,
    VerifyOptions,
    VerifyParams,
    WalletVerification,
)
from .engine import (
    ConfigurationError,
    MessageParseError,
    MessageValidationError,
    ProviderError,
    SignatureVerificationError,
    SiweException,
    SiweVerificationError,
    VerificationState,
)
from .parsing import parse_message, render_message, validate_fields
from .adapters import ContractSignatureChecker
from .adapters.evm import (
    ERC1271SignatureChecker,
    SiweSettings,
    build_provider,
    sign_message,
    verify_signature,
)
from .engine.executors import VerificationExecutor, verify_message
from .servers import generate_nonce, verify_wallet_login

__version__ = "0.1.0"

__all__ = [
    "SiweError",
    "SiweErrorType",
    "SiweMessage",
    "SiweResponse",
    "VerifyOptions",
    "VerifyParams",
    "WalletVerification",
    "ConfigurationError",
    "MessageParseError",
    "MessageValidationError",
    "ProviderError",
    "SignatureVerificationError",
    "SiweException",
    "SiweVerificationError",
    "VerificationState",
    "parse_message",
    "render_message",
    "validate_fields",
    "ContractSignatureChecker",
    "ERC1271SignatureChecker",
    "SiweSettings",
    "build_provider",
    "sign_message",
    "verify_signature",
    "VerificationExecutor",
    "verify_message",
    "generate_nonce",
    "verify_wallet_login",
]
