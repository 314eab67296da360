"""
Verification orchestration.

Runs one verification attempt through the state machine:

    PARSING -> VALIDATING -> VERIFYING_SIGNATURE -> SUCCEEDED | FAILED

The first failure ends the attempt. Whether that failure is raised
(``SiweVerificationError`` / ``ProviderError``) or returned in
``SiweResponse.error`` is decided only by ``VerifyOptions.suppress_exceptions``;
the ``SiweError`` value is identical either way.
"""

from typing import Any, Dict, Optional, Union

import structlog
from pydantic import ValidationError

from .exceptions import (
    MessageParseError,
    MessageValidationError,
    ProviderError,
    SiweVerificationError,
)
from .states import VerificationState, VerificationStateMachine
from ..adapters.evm.verifies import verify_signature_response
from ..parsing.grammar import parse_message
from ..parsing.validators import validate_fields
from ..schemas.messages import SiweMessage
from ..schemas.results import SiweError, SiweErrorType, SiweResponse, VerifyOptions, VerifyParams

logger = structlog.get_logger(__name__)

_FAILURE_EVENTS = {
    VerificationState.PARSING: "siwe_parse_failed",
    VerificationState.VALIDATING: "siwe_validation_failed",
    VerificationState.VERIFYING_SIGNATURE: "siwe_signature_rejected",
}

# Nonces are secrets of the login attempt and only appear shortened in logs.
_NONCE_ERRORS = frozenset({SiweErrorType.NONCE_MISMATCH, SiweErrorType.INVALID_NONCE})

MessageInput = Union[str, SiweMessage, Dict[str, Any]]


def _shorten(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value[:4] + "..." if len(value) > 4 else "..."


def _loggable(error: SiweError) -> SiweError:
    if error.type not in _NONCE_ERRORS:
        return error
    return error.model_copy(update={"expected": _shorten(error.expected), "received": _shorten(error.received)})


def _coerce_message(message: MessageInput) -> SiweMessage:
    """Turn text, a field dict or a message object into a ``SiweMessage``."""
    if isinstance(message, SiweMessage):
        return message
    if isinstance(message, dict):
        try:
            return SiweMessage.model_validate(message)
        except ValidationError as exc:
            raise MessageParseError(received=str(exc.errors()[0].get("msg")), expected="valid message fields") from exc
    return parse_message(message)


class VerificationExecutor:
    """Executes one verification attempt with fixed options.

    The executor is stateless between calls; each ``execute`` owns a fresh
    ``VerificationStateMachine``, so one executor may be shared across
    concurrent verifications.
    """

    def __init__(self, options: Optional[VerifyOptions] = None) -> None:
        self.options = options or VerifyOptions()

    async def execute(self, message: MessageInput, params: VerifyParams) -> SiweResponse:
        """
        Parse, validate and verify ``message`` against ``params``.

        Returns:
            SiweResponse: ``success=True`` with the parsed message, or (when
            exceptions are suppressed) the first failure.

        Raises:
            SiweVerificationError: On failure when exceptions are not suppressed.
            ProviderError: When the contract wallet check could not reach the
                chain and exceptions are not suppressed.
        """
        machine = VerificationStateMachine()

        # 1. Parsing
        try:
            parsed = _coerce_message(message)
        except MessageParseError as exc:
            return self._fail(machine, exc, None)

        # 2. Field validation
        machine.advance(VerificationState.VALIDATING)
        error = validate_fields(parsed, params)
        if error is not None:
            return self._fail(machine, MessageValidationError(error), parsed)

        # 3. Signature verification
        machine.advance(VerificationState.VERIFYING_SIGNATURE)
        try:
            response = await verify_signature_response(parsed, params.signature, self.options, params)
        except (SiweVerificationError, ProviderError) as exc:
            return self._fail(machine, exc, parsed)

        machine.advance(VerificationState.SUCCEEDED)
        logger.info("siwe_verified", address=parsed.checksum_address, domain=parsed.domain)
        return response

    def _fail(
        self,
        machine: VerificationStateMachine,
        exc: Union[SiweVerificationError, ProviderError],
        data: Optional[SiweMessage],
    ) -> SiweResponse:
        error: SiweError = exc.error
        event = _FAILURE_EVENTS[machine.state]
        machine.fail(error.type)
        response = SiweResponse(success=False, data=data, error=error)

        logger.warning(
            event,
            error_type=error.type.name,
            error=_loggable(error).to_canonical_json(),
            address=data.address if data is not None else None,
        )

        if self.options.suppress_exceptions:
            return response
        exc.response = response
        raise exc


async def verify_message(
    message: MessageInput,
    params: Union[VerifyParams, Dict[str, Any]],
    options: Optional[Union[VerifyOptions, Dict[str, Any]]] = None,
) -> SiweResponse:
    """
    Verify a SIWE message end to end.

    ``params`` and ``options`` may be passed as models or plain dicts (either
    snake_case or camelCase keys). Malformed ``params`` / ``options``, such
    as an unknown key, raise ``pydantic.ValidationError`` regardless of
    ``suppress_exceptions``: they are caller errors, not verification
    outcomes.

    Args:
        message: Message text, field dict or ``SiweMessage``.
        params: Signature and the relying party's expectations.
        options: Provider, contract checker, fallback and delivery switch.

    Returns:
        SiweResponse

    Raises:
        pydantic.ValidationError: Invalid ``params`` or ``options``.
        SiweVerificationError: Verification failed (exceptions not suppressed).
        ProviderError: Chain unreachable (exceptions not suppressed).

    Example::

        response = await verify_message(
            text,
            {"signature": signature, "domain": "example.com", "nonce": nonce},
            {"provider": w3, "suppressExceptions": True},
        )
        if response.success:
            login(response.data.checksum_address)
    """
    if not isinstance(params, VerifyParams):
        params = VerifyParams.model_validate(params)
    if not isinstance(options, VerifyOptions):
        options = VerifyOptions.model_validate(options or {})
    return await VerificationExecutor(options).execute(message, params)
