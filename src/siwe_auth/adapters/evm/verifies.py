"""
EVM Signature Verification Helpers

Proves that the account named in a SIWE message produced a signature over
its canonical text.

Two paths are tried in order:

1. **EIP-191 recovery** -- the canonical text is hashed the way
   ``personal_sign`` hashes it and the signer is recovered in-process with
   ``eth_account``. A match with the message address (both EIP-55) succeeds
   immediately and touches no network.
2. **Contract wallet check** -- when recovery does not match, the account may
   be a smart-contract wallet. A ``ContractSignatureChecker`` (by default
   ``ERC1271SignatureChecker`` around the caller's ``AsyncWeb3`` provider)
   asks the account's ``isValidSignature`` whether it accepts the signature.
   A caller-supplied ``verification_fallback`` may take over the decision; it
   receives the pending contract check and its response is used verbatim.

A chain call that fails (transport error, timeout) is reported as
``PROVIDER_ERROR`` and never as ``INVALID_SIGNATURE``.
"""

import asyncio
from typing import Optional, Union

import structlog
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_checksum_address
from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..bases import ContractSignatureChecker
from .constants import ERC1271_MAGIC_VALUE
from .standards import ERC1271ABI, ERC1271Signature
from ...engine.exceptions import (
    MessageValidationError,
    ProviderError,
    SignatureVerificationError,
)
from ...schemas.messages import SiweMessage
from ...schemas.results import (
    SiweError,
    SiweErrorType,
    SiweResponse,
    VerifyOptions,
    VerifyParams,
)

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def signature_to_bytes(signature: Union[str, bytes]) -> bytes:
    """
    Normalise a wallet signature to raw bytes.

    Args:
        signature: 0x-prefixed (or bare) hex string, or raw bytes.

    Returns:
        bytes

    Raises:
        ValueError: If ``signature`` is not valid hex.
    """
    if isinstance(signature, (bytes, bytearray)):
        return bytes(signature)
    hex_str = signature[2:] if signature[:2] in ("0x", "0X") else signature
    return bytes.fromhex(hex_str)


def eip191_hash(text: str) -> bytes:
    """
    keccak256 of ``"\\x19Ethereum Signed Message:\\n" + len(text) + text``.

    This is the 32-byte hash ``personal_sign`` signs, and the hash passed to
    ERC-1271 ``isValidSignature``.
    """
    signable = encode_defunct(text=text)
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def recover_address(text: str, signature: bytes) -> Optional[str]:
    """
    Recover the EIP-191 signer of ``text``.

    Returns:
        The EIP-55 signer address, or ``None`` when the signature bytes are
        not a recoverable secp256k1 signature (wrong length, bad ``v``,
        contract wallet blob, ...).
    """
    try:
        recovered = Account.recover_message(encode_defunct(text=text), signature=signature)
    except Exception as exc:
        logger.debug(
            "eip191_recovery_error",
            signature_length=len(signature),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return None
    return to_checksum_address(recovered)


# ---------------------------------------------------------------------------
# ERC-1271 checker
# ---------------------------------------------------------------------------


class ERC1271SignatureChecker(ContractSignatureChecker):
    """
    ``ContractSignatureChecker`` backed by an ``AsyncWeb3`` provider.

    Performs two read-only calls: ``eth_getCode`` to recognise accounts with
    no deployed code (EOAs, undeployed counterfactual wallets), then
    ``isValidSignature(hash, signature)`` compared against ``0x1626ba7e``.

    Contract reverts and undecodable return data count as a rejection.
    Anything else that prevents an answer raises ``ProviderError``.

    Example::

        checker = ERC1271SignatureChecker(AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url)))
        ok = await checker.is_valid_signature(address, eip191_hash(text), signature)
    """

    def __init__(self, w3: AsyncWeb3) -> None:
        self.w3 = w3

    async def is_valid_signature(self, address: str, message_hash: bytes, signature: bytes) -> bool:
        checksummed = to_checksum_address(address)
        request = ERC1271Signature(contract=checksummed, message_hash=message_hash, signature=signature)

        try:
            code = await self.w3.eth.get_code(checksummed)
        except Exception as exc:
            logger.error("erc1271_get_code_error", **request.to_dict(), error=str(exc), error_type=type(exc).__name__)
            raise ProviderError(checksummed, f"eth_getCode failed: {exc}") from exc

        if not code:
            logger.info("erc1271_contract_not_deployed", **request.to_dict())
            return False

        contract = self.w3.eth.contract(address=checksummed, abi=ERC1271ABI().to_list())
        try:
            magic_value = await contract.functions.isValidSignature(message_hash, signature).call()
        except (ContractLogicError, BadFunctionCallOutput) as exc:
            logger.warning("erc1271_call_rejected", **request.to_dict(), error=str(exc), error_type=type(exc).__name__)
            return False
        except Exception as exc:
            logger.error("erc1271_contract_call_error", **request.to_dict(), error=str(exc), error_type=type(exc).__name__)
            raise ProviderError(checksummed, f"isValidSignature call failed: {exc}") from exc

        if isinstance(magic_value, str):
            magic_value = bytes.fromhex(magic_value.removeprefix("0x"))
        elif isinstance(magic_value, int):
            magic_value = magic_value.to_bytes(4, byteorder="big")

        is_valid = bytes(magic_value) == ERC1271_MAGIC_VALUE
        if is_valid:
            logger.info("erc1271_check_passed", **request.to_dict())
        else:
            logger.warning(
                "erc1271_check_failed",
                **request.to_dict(),
                magic_value=bytes(magic_value).hex(),
                expected=ERC1271_MAGIC_VALUE.hex(),
            )
        return is_valid


def resolve_contract_checker(options: VerifyOptions) -> Optional[ContractSignatureChecker]:
    """Explicit ``contract_checker`` first, otherwise an ERC-1271 checker around ``provider``."""
    if options.contract_checker is not None:
        return options.contract_checker
    if options.provider is not None:
        return ERC1271SignatureChecker(options.provider)
    return None


async def check_contract_wallet_signature(
    message: SiweMessage,
    signature: bytes,
    checker: Optional[ContractSignatureChecker],
    recovered: Optional[str] = None,
) -> SiweResponse:
    """
    Run the contract wallet check and fold its outcome into a ``SiweResponse``.

    Never raises for verification outcomes: a rejection is
    ``INVALID_SIGNATURE`` and a provider fault is ``PROVIDER_ERROR``, both
    returned in ``error``. Without a checker the result is
    ``INVALID_SIGNATURE``.
    """
    address = message.checksum_address
    invalid = SiweResponse(
        success=False,
        data=message,
        error=SiweError(type=SiweErrorType.INVALID_SIGNATURE, expected=address, received=recovered),
    )
    if checker is None:
        return invalid

    try:
        is_valid = await checker.is_valid_signature(address, eip191_hash(message.prepare_message()), signature)
    except ProviderError as exc:
        return SiweResponse(success=False, data=message, error=exc.error)
    except Exception as exc:
        logger.error("contract_checker_error", address=address, error=str(exc), error_type=type(exc).__name__)
        return SiweResponse(success=False, data=message, error=ProviderError(address, str(exc)).error)

    if not is_valid:
        return invalid
    return SiweResponse(success=True, data=message)


def _raise_for(response: SiweResponse, address: Optional[str]) -> None:
    error = response.error or SiweError(type=SiweErrorType.INVALID_SIGNATURE, expected=address)
    if error.type == SiweErrorType.PROVIDER_ERROR:
        raise ProviderError(address, error.received or "contract signature check failed")
    raise SignatureVerificationError(error)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


async def verify_signature_response(
    message: SiweMessage,
    signature: Union[str, bytes],
    options: Optional[VerifyOptions] = None,
    params: Optional[VerifyParams] = None,
) -> SiweResponse:
    """
    Prove that ``message.address`` produced ``signature`` over the canonical text.

    Performs the following steps, returning on the first success:

    1. **EIP-191 recovery** of the signer from ``signature``; equal to the
       message address (EIP-55 compare) -> success, no network access.
    2. **Contract wallet check** through ``options.contract_checker`` or an
       ``ERC1271SignatureChecker`` around ``options.provider``, started as
       a task.
    3. **Caller fallback**: when ``options.verification_fallback`` is set it
       is awaited with ``(params, options, message, pending_check)`` and its
       ``SiweResponse`` decides; otherwise the step-2 response decides.

    Args:
        message: Parsed message whose ``address`` must be the signer.
        signature: Wallet signature (hex string or bytes).
        options: Provider / checker / fallback configuration.
        params: Original verification parameters, handed to the fallback.

    Returns:
        SiweResponse: ``success=True``. When a caller fallback decided, this
        is the fallback's own response, unchanged.

    Raises:
        MessageValidationError: If ``message.address`` is not a hex address.
        SignatureVerificationError: ``INVALID_SIGNATURE`` (or the fallback's
            own error kind) when authorship could not be proven.
        ProviderError: When the chain could not be queried.

    Example::

        response = await verify_signature_response(message, signature, VerifyOptions(provider=w3))
    """
    options = options or VerifyOptions()
    address = message.checksum_address
    if address is None:
        raise MessageValidationError(
            SiweError(type=SiweErrorType.INVALID_ADDRESS, expected="0x-prefixed 20-byte hex address", received=message.address)
        )

    try:
        signature_bytes = signature_to_bytes(signature)
    except ValueError:
        logger.warning("siwe_signature_not_hex", address=address)
        raise SignatureVerificationError(
            SiweError(type=SiweErrorType.INVALID_SIGNATURE, expected="hex-encoded signature", received="malformed signature")
        )

    # ---- EOA: EIP-191 recovery ----
    recovered = recover_address(message.prepare_message(), signature_bytes)
    if recovered == address:
        logger.debug("eip191_signature_verified", address=address)
        return SiweResponse(success=True, data=message)

    logger.debug("eip191_recovery_mismatch", address=address, recovered_address=recovered)

    # ---- Contract wallet / caller fallback ----
    checker = resolve_contract_checker(options)
    pending = asyncio.ensure_future(
        check_contract_wallet_signature(message, signature_bytes, checker, recovered)
    )

    if options.verification_fallback is not None:
        fallback_params = params if params is not None else VerifyParams(signature=signature)
        try:
            outcome = await options.verification_fallback(fallback_params, options, message, pending)
        finally:
            if not pending.done():
                pending.cancel()
        response = SiweResponse.model_validate(outcome)
        logger.debug("siwe_verification_fallback_completed", address=address, success=response.success)
    else:
        response = await pending

    if response.success:
        return response
    _raise_for(response, address)


async def verify_signature(
    message: SiweMessage,
    signature: Union[str, bytes],
    options: Optional[VerifyOptions] = None,
    params: Optional[VerifyParams] = None,
) -> str:
    """
    ``verify_signature_response`` returning the EIP-55 address that signed.

    Example::

        address = await verify_signature(message, signature, VerifyOptions(provider=w3))
    """
    await verify_signature_response(message, signature, options, params)
    return message.checksum_address
