import secrets
import string
from typing import Any, Dict, Optional, Union

import structlog
from pydantic import ValidationError

from ..engine.exceptions import SiweException
from ..engine.executors import verify_message
from ..parsing.validators import MIN_NONCE_LENGTH
from ..schemas.results import VerifyOptions, VerifyParams, WalletVerification

logger = structlog.get_logger(__name__)

NONCE_ALPHABET = string.ascii_letters + string.digits
DEFAULT_NONCE_LENGTH = 17


def generate_nonce(length: int = DEFAULT_NONCE_LENGTH) -> str:
    """
    Generate a nonce for a SIWE challenge.

    Args:
        length: Number of characters, at least 8.

    Returns:
        A cryptographically random alphanumeric string.

    Raises:
        ValueError: If ``length`` is below the minimum nonce length.
    """
    if length < MIN_NONCE_LENGTH:
        raise ValueError(f"Nonce length must be at least {MIN_NONCE_LENGTH}, got {length}")
    return ''.join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


async def verify_wallet_login(
    wallet_address: str,
    message: str,
    signature: str,
    options: Optional[Union[VerifyOptions, Dict[str, Any]]] = None,
    **params: Any,
) -> WalletVerification:
    """
    Check a wallet login: the message verifies and was signed by ``wallet_address``.

    The claimed wallet is compared case-insensitively with the message
    address. Failures are reported through ``verified=False`` and never
    raised; ``address`` is only set when the message itself verified.

    Args:
        wallet_address: Address the client claims to log in with.
        message: Message text the wallet signed.
        signature: Wallet signature over ``message``.
        options: Verification options; ``suppress_exceptions`` is forced on.
        **params: Extra expectations (``domain``, ``nonce``, ``time``).

    Returns:
        WalletVerification
    """
    if isinstance(options, VerifyOptions):
        options = options.model_copy(update={"suppress_exceptions": True})
    else:
        data = {key: value for key, value in (options or {}).items() if key != "suppressExceptions"}
        options = VerifyOptions.model_validate({**data, "suppress_exceptions": True})

    try:
        response = await verify_message(message, VerifyParams(signature=signature, **params), options)
    except (SiweException, ValidationError) as exc:
        logger.warning("wallet_login_verification_error", error=str(exc), error_type=type(exc).__name__)
        return WalletVerification(verified=False, address=None)

    if not response.success or response.data is None:
        logger.info(
            "wallet_login_rejected",
            wallet_address=wallet_address,
            error_type=response.error.type.name if response.error else None,
        )
        return WalletVerification(verified=False, address=None)

    signer = response.data.checksum_address
    verified = signer.lower() == wallet_address.strip().lower()
    if not verified:
        logger.info("wallet_login_address_mismatch", wallet_address=wallet_address, signer=signer)
    return WalletVerification(verified=verified, address=signer)
