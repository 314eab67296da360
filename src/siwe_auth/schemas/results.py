"""
Verification Inputs and Results

Pydantic models describing what a caller hands to the verification pipeline
and what it gets back:

    - SiweErrorType: closed enumeration of failure kinds
    - SiweError: a failure kind plus the expected / received values
    - VerifyParams: per-call expectations (signature, domain, nonce, time)
    - VerifyOptions: per-call collaborators (provider, contract checker,
      fallback) and the exception delivery switch
    - SiweResponse: the outcome of a verification attempt
    - WalletVerification: outcome of the wallet login helper

``VerifyParams`` and ``VerifyOptions`` reject unknown keys so a misspelt
option (``suppress_exception``) fails loudly instead of being ignored.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ConfigDict, Field, field_validator

from ..adapters.bases import ContractSignatureChecker
from .bases import CanonicalModel
from .messages import SiweMessage


class SiweErrorType(str, Enum):
    """
    Enumeration of verification failure kinds.

    The declaration order is the reporting precedence used by the field
    validators. Values are the human-readable descriptions.
    """
    EXPIRED_MESSAGE = "Expired message."
    INVALID_DOMAIN = "Invalid domain."
    DOMAIN_MISMATCH = "Domain does not match provided domain for verification."
    NONCE_MISMATCH = "Nonce does not match provided nonce for verification."
    INVALID_ADDRESS = "Invalid address."
    INVALID_URI = "URI does not conform to RFC 3986."
    INVALID_NONCE = "Nonce size smaller then 8 characters or is not alphanumeric."
    NOT_YET_VALID_MESSAGE = "Message is not valid yet."
    INVALID_SIGNATURE = "Signature does not match address of the message."
    INVALID_TIME_FORMAT = "Invalid time format."
    INVALID_MESSAGE_VERSION = "Invalid message version."
    UNABLE_TO_PARSE = "Unable to parse the message."
    PROVIDER_ERROR = "Unable to verify the contract wallet signature on-chain."


class SiweError(CanonicalModel):
    """
    A single verification failure.

    Attributes:
        type: Failure kind.
        expected: Value the verifier expected, when applicable.
        received: Value found in the message or call, when applicable.
    """
    type: SiweErrorType = Field(..., description="Failure kind")
    expected: Optional[str] = Field(None, description="Expected value for diagnostics")
    received: Optional[str] = Field(None, description="Received value for diagnostics")

    @property
    def message(self) -> str:
        """Human-readable description of the failure kind."""
        return self.type.value

    def __str__(self) -> str:
        details = []
        if self.expected is not None:
            details.append(f"expected {self.expected!r}")
        if self.received is not None:
            details.append(f"received {self.received!r}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class VerifyParams(CanonicalModel):
    """
    Expectations for a single verification call.

    Attributes:
        signature: EIP-191 signature over the canonical text, as 0x-hex or raw bytes.
        domain: Expected domain; compared case-sensitively when given.
        nonce: Expected nonce; compared exactly when given.
        time: Instant to check the validity window against (defaults to now).
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    signature: Union[str, bytes] = Field(..., description="Signature produced by the wallet")
    domain: Optional[str] = Field(None, description="Domain the relying party expects")
    nonce: Optional[str] = Field(None, description="Nonce the relying party issued")
    time: Optional[Union[str, datetime]] = Field(None, description="Verification instant override")

    @field_validator("signature")
    @classmethod
    def _check_signature(cls, value: Union[str, bytes]) -> Union[str, bytes]:
        if not value:
            raise ValueError("'signature' must not be empty")
        return value


VerificationFallback = Callable[..., Awaitable[Any]]


class VerifyOptions(CanonicalModel):
    """
    Collaborators and delivery switch for a single verification call.

    Attributes:
        provider: ``web3.AsyncWeb3`` instance used for the ERC-1271 check.
        contract_checker: Explicit ``ContractSignatureChecker``; takes
            precedence over ``provider``.
        suppress_exceptions: Return failures in ``SiweResponse.error`` instead
            of raising ``SiweVerificationError``.
        verification_fallback: ``async (params, options, message, pending_check)
            -> SiweResponse`` invoked when EIP-191 recovery does not match;
            its response is used verbatim.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", arbitrary_types_allowed=True)

    provider: Optional[Any] = Field(None, description="AsyncWeb3 chain-RPC handle")
    contract_checker: Optional[ContractSignatureChecker] = Field(
        None, alias="contractChecker", description="Contract wallet signature checker"
    )
    suppress_exceptions: bool = Field(False, alias="suppressExceptions", description="Return instead of raise")
    verification_fallback: Optional[VerificationFallback] = Field(
        None, alias="verificationFallback", description="Caller-supplied verification override"
    )


class SiweResponse(CanonicalModel):
    """
    Outcome of a verification attempt.

    ``data`` carries the parsed message even on failure so callers can log
    context; it is ``None`` only when the text could not be parsed.

    Attributes:
        success: Whether every check passed.
        data: The message that was verified.
        error: The first failure, when ``success`` is ``False``.
    """
    success: bool = Field(..., description="Whether verification succeeded")
    data: Optional[SiweMessage] = Field(None, description="Parsed message")
    error: Optional[SiweError] = Field(None, description="First failure encountered")

    def is_success(self) -> bool:
        return self.success and self.error is None


class WalletVerification(CanonicalModel):
    """
    Outcome of ``verify_wallet_login``.

    Attributes:
        verified: The message verified and was signed by the claimed wallet.
        address: EIP-55 address found in the message, when it could be parsed.
    """
    verified: bool = Field(..., description="Whether the wallet login is authentic")
    address: Optional[str] = Field(None, description="Address from the signed message")
