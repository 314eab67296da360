"""
Field Validators

Pure checks over a parsed ``SiweMessage``. Each check returns ``None`` when
the field is acceptable or the ``SiweError`` describing the first problem it
found. None of them perform I/O or mutate their inputs, so running them
twice on the same message and parameters gives the same answer.

``validate_fields`` applies them in reporting order:

    version -> address -> domain -> URI -> nonce -> time window
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from eth_utils import is_checksum_address

from .grammar import (
    ADDRESS_RE,
    is_valid_authority,
    is_valid_scheme,
    is_valid_uri,
    parse_timestamp,
)
from ..schemas.messages import SiweMessage
from ..schemas.results import SiweError, SiweErrorType, VerifyParams
from ..schemas.versions import SupportedVersions

MIN_NONCE_LENGTH = 8

TimeLike = Union[str, datetime, None]


def check_version(message: SiweMessage) -> Optional[SiweError]:
    """``INVALID_MESSAGE_VERSION`` unless the version tag is ``"1"``."""
    if not SupportedVersions.is_supported(message.version):
        return SiweError(type=SiweErrorType.INVALID_MESSAGE_VERSION, expected="1", received=message.version)
    return None


def check_address(message: SiweMessage) -> Optional[SiweError]:
    """
    ``INVALID_ADDRESS`` unless ``address`` is ``0x`` + 40 hex digits.

    All-lowercase and all-uppercase hex carry no checksum and are accepted;
    mixed case must be a valid EIP-55 checksum.
    """
    address = message.address
    if ADDRESS_RE.fullmatch(address) is None:
        return SiweError(type=SiweErrorType.INVALID_ADDRESS, expected="0x-prefixed 20-byte hex address", received=address)

    digits = address[2:]
    if digits != digits.lower() and digits != digits.upper() and not is_checksum_address(address):
        return SiweError(type=SiweErrorType.INVALID_ADDRESS, expected=message.checksum_address, received=address)
    return None


def check_domain(message: SiweMessage, expected: Optional[str] = None) -> Optional[SiweError]:
    """
    ``INVALID_DOMAIN`` if ``domain`` (or ``scheme``) is not RFC 3986 syntax,
    then ``DOMAIN_MISMATCH`` if an expected domain was given and differs.
    """
    if not is_valid_authority(message.domain):
        return SiweError(type=SiweErrorType.INVALID_DOMAIN, expected="RFC 3986 authority", received=message.domain)
    if message.scheme is not None and not is_valid_scheme(message.scheme):
        return SiweError(type=SiweErrorType.INVALID_DOMAIN, expected="RFC 3986 scheme", received=message.scheme)
    if expected is not None and expected != message.domain:
        return SiweError(type=SiweErrorType.DOMAIN_MISMATCH, expected=expected, received=message.domain)
    return None


def check_uri(message: SiweMessage) -> Optional[SiweError]:
    """``INVALID_URI`` if ``uri`` or any resource is not an RFC 3986 URI."""
    if not is_valid_uri(message.uri):
        return SiweError(type=SiweErrorType.INVALID_URI, expected="RFC 3986 URI", received=message.uri)
    for resource in message.resources or []:
        if not is_valid_uri(resource):
            return SiweError(type=SiweErrorType.INVALID_URI, expected="RFC 3986 URI", received=resource)
    return None


def is_valid_nonce(nonce: str) -> bool:
    """At least eight ASCII letters or digits."""
    return (
        isinstance(nonce, str)
        and len(nonce) >= MIN_NONCE_LENGTH
        and nonce.isascii()
        and nonce.isalnum()
    )


def check_nonce(message: SiweMessage, expected: Optional[str] = None) -> Optional[SiweError]:
    """
    ``NONCE_MISMATCH`` if an expected nonce was given and differs, then
    ``INVALID_NONCE`` unless the nonce has at least eight alphanumerics.

    Uniqueness over time is the relying party's responsibility.
    """
    if expected is not None and expected != message.nonce:
        return SiweError(type=SiweErrorType.NONCE_MISMATCH, expected=expected, received=message.nonce)
    if not is_valid_nonce(message.nonce):
        return SiweError(type=SiweErrorType.INVALID_NONCE, expected=f">= {MIN_NONCE_LENGTH} alphanumeric characters", received=message.nonce)
    return None


def resolve_check_time(time: TimeLike = None) -> datetime:
    """
    Instant the validity window is checked against.

    Naive ``datetime`` values are taken as UTC.

    Raises:
        ValueError: If ``time`` is a string that is not RFC 3339.
    """
    if time is None:
        return datetime.now(timezone.utc)
    if isinstance(time, datetime):
        return time if time.tzinfo is not None else time.replace(tzinfo=timezone.utc)
    return parse_timestamp(time)


def check_time_window(message: SiweMessage, time: TimeLike = None) -> Optional[SiweError]:
    """
    Timestamp syntax and validity window.

    ``INVALID_TIME_FORMAT`` if ``issued_at``, ``expiration_time``,
    ``not_before`` or the ``time`` override is not RFC 3339;
    ``EXPIRED_MESSAGE`` when ``now >= expiration_time``;
    ``NOT_YET_VALID_MESSAGE`` when ``now < not_before``.
    """
    stamps = [
        ("issued_at", message.issued_at),
        ("expiration_time", message.expiration_time),
        ("not_before", message.not_before),
    ]
    parsed = {}
    for name, value in stamps:
        if value is None:
            continue
        try:
            parsed[name] = parse_timestamp(value)
        except ValueError:
            return SiweError(type=SiweErrorType.INVALID_TIME_FORMAT, expected="RFC 3339 date-time", received=value)

    try:
        now = resolve_check_time(time)
    except ValueError:
        return SiweError(type=SiweErrorType.INVALID_TIME_FORMAT, expected="RFC 3339 date-time", received=str(time))

    expiration = parsed.get("expiration_time")
    if expiration is not None and now >= expiration:
        return SiweError(type=SiweErrorType.EXPIRED_MESSAGE, expected=f"before {message.expiration_time}", received=now.isoformat())

    not_before = parsed.get("not_before")
    if not_before is not None and now < not_before:
        return SiweError(type=SiweErrorType.NOT_YET_VALID_MESSAGE, expected=f"at or after {message.not_before}", received=now.isoformat())

    return None


def validate_fields(message: SiweMessage, params: Optional[VerifyParams] = None) -> Optional[SiweError]:
    """
    Run every field check and return the first failure in reporting order.

    Args:
        message: Parsed message.
        params: Optional caller expectations (domain, nonce, time).

    Returns:
        ``None`` when every check passes, otherwise the first ``SiweError``.
    """
    domain = params.domain if params is not None else None
    nonce = params.nonce if params is not None else None
    time = params.time if params is not None else None

    checks: List[Callable[[], Optional[SiweError]]] = [
        lambda: check_version(message),
        lambda: check_address(message),
        lambda: check_domain(message, domain),
        lambda: check_uri(message),
        lambda: check_nonce(message, nonce),
        lambda: check_time_window(message, time),
    ]
    for check in checks:
        error = check()
        if error is not None:
            return error
    return None
