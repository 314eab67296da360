"""
Exception and Error Definitions Module

Defines the exception hierarchy for message parsing, field validation,
signature verification and chain interaction. All exceptions inherit from
SiweException for unified exception handling.

Exception Hierarchy:
    SiweException (root)
    ├── SiweVerificationError
    │   ├── MessageParseError
    │   ├── MessageValidationError
    │   └── SignatureVerificationError
    ├── BlockchainInteractionError
    │   └── ProviderError
    ├── ConfigurationError
    └── InvalidTransition

Every ``SiweVerificationError`` and ``ProviderError`` carries a ``SiweError``
value so the raised and the returned delivery of a failure are identical.
"""

from typing import Optional, TYPE_CHECKING

from ..schemas.results import SiweError, SiweErrorType

if TYPE_CHECKING:
    from ..schemas.results import SiweResponse


class SiweException(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class to enable unified
    exception handling.
    """
    pass


class SiweVerificationError(SiweException):
    """
    Raised when a message fails verification and exceptions are not suppressed.

    Attributes:
        error: The typed failure (kind, expected, received)
        response: The ``SiweResponse`` that would have been returned, when
            the failure came out of the orchestrator
    """

    def __init__(self, error: SiweError, response: Optional["SiweResponse"] = None) -> None:
        super().__init__(str(error))
        self.error = error
        self.response = response

    @property
    def type(self) -> SiweErrorType:
        return self.error.type


class MessageParseError(SiweVerificationError):
    """
    Raised when text does not follow the EIP-4361 grammar.

    The error kind is always ``UNABLE_TO_PARSE``; ``received`` holds the
    offending line or a short description of what is missing.
    """

    def __init__(self, received: Optional[str] = None, expected: Optional[str] = None) -> None:
        super().__init__(
            SiweError(type=SiweErrorType.UNABLE_TO_PARSE, expected=expected, received=received)
        )


class MessageValidationError(SiweVerificationError):
    """
    Raised when a parsed message fails a field check.

    This includes scenarios such as:
    - Unsupported version tag
    - Malformed address or bad EIP-55 checksum
    - Domain, URI or nonce syntax errors, domain or nonce mismatch
    - Expired, not yet valid or unparseable timestamps
    """
    pass


class SignatureVerificationError(SiweVerificationError):
    """
    Raised when the signature was not produced by the message address.

    This includes scenarios such as:
    - EIP-191 recovery yields another address and no contract check is possible
    - The contract wallet rejects the signature
    - A caller-supplied fallback reports failure
    """
    pass


class BlockchainInteractionError(SiweException):
    """
    Raised when blockchain interaction (RPC call) fails.

    This includes scenarios such as:
    - RPC call timeout
    - Network connectivity issues
    - Contract call revert
    """
    pass


class ProviderError(BlockchainInteractionError):
    """
    Raised when the contract wallet check could not reach a verdict.

    Kept separate from ``SignatureVerificationError``: a provider outage says
    nothing about whether the signature is authentic.

    Attributes:
        error: ``SiweError`` with kind ``PROVIDER_ERROR``
        address: Account that was being checked
    """

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"Contract signature check for {address} failed: {reason}")
        self.address = address
        self.response: Optional["SiweResponse"] = None
        self.error = SiweError(type=SiweErrorType.PROVIDER_ERROR, expected=address, received=reason)


class ConfigurationError(SiweException):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Missing RPC URL when a provider is requested
    - Non-numeric timeout or chain id values in the environment
    """
    pass


class InvalidTransition(SiweException):
    """
    Raised when the verification state machine is asked to move backwards
    or out of a terminal state.

    Attributes:
        current_state: State the machine was in
        target_state: State that was requested
    """

    def __init__(self, current_state, target_state) -> None:
        super().__init__(f"Invalid transition {current_state.value} -> {target_state.value}")
        self.current_state = current_state
        self.target_state = target_state
