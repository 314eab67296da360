from .exceptions import (
    BlockchainInteractionError,
    ConfigurationError,
    InvalidTransition,
    MessageParseError,
    MessageValidationError,
    ProviderError,
    SignatureVerificationError,
    SiweException,
    SiweVerificationError,
)
from .states import TERMINAL_STATES, VerificationState, VerificationStateMachine

__all__ = [
    "BlockchainInteractionError",
    "ConfigurationError",
    "InvalidTransition",
    "MessageParseError",
    "MessageValidationError",
    "ProviderError",
    "SignatureVerificationError",
    "SiweException",
    "SiweVerificationError",
    "TERMINAL_STATES",
    "VerificationState",
    "VerificationStateMachine",
]
