"""
EIP-4361 Message Grammar

Line-oriented parser for the Sign-In with Ethereum text format, plus the
syntax rules (RFC 3986 URIs and authorities, RFC 3339 timestamps) shared
with the field validators.

Parsing is pure: no I/O, no global state, and the same text always yields
the same ``SiweMessage`` or the same ``MessageParseError``.

Exported helpers
----------------
parse_message
    Text -> ``SiweMessage``. Raises ``MessageParseError`` (``UNABLE_TO_PARSE``)
    on any structural deviation; there is no partial recovery.

render_message
    ``SiweMessage`` -> canonical text. ``parse_message(render_message(m)) == m``.

is_valid_uri / is_valid_authority / is_valid_scheme
    RFC 3986 syntax checks.

parse_timestamp
    RFC 3339 ``date-time`` -> timezone-aware ``datetime``.
"""

import ipaddress
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import ValidationError

from ..engine.exceptions import MessageParseError
from ..schemas.messages import (
    SiweMessage,
    HEADER_SUFFIX,
    URI_TAG,
    VERSION_TAG,
    CHAIN_TAG,
    NONCE_TAG,
    ISSUED_AT_TAG,
    EXPIRATION_TAG,
    NOT_BEFORE_TAG,
    REQUEST_ID_TAG,
    RESOURCES_TAG,
    RESOURCE_PREFIX,
)

# ---------------------------------------------------------------------------
# RFC 3986 building blocks
# ---------------------------------------------------------------------------

_UNRESERVED = r"A-Za-z0-9\-._~"
_SUB_DELIMS = r"!$&'()*+,;="
_PCT_ENCODED = r"%[0-9A-Fa-f]{2}"
_PCHAR = rf"(?:[{_UNRESERVED}{_SUB_DELIMS}:@]|{_PCT_ENCODED})"

_SCHEME = r"[A-Za-z][A-Za-z0-9+\-.]*"
_USERINFO = rf"(?:[{_UNRESERVED}{_SUB_DELIMS}:]|{_PCT_ENCODED})*"
_IP_LITERAL = rf"\[(?:[0-9A-Fa-f:.]+|[vV][0-9A-Fa-f]+\.[{_UNRESERVED}{_SUB_DELIMS}:]+)\]"
_REG_NAME = rf"(?:[{_UNRESERVED}{_SUB_DELIMS}]|{_PCT_ENCODED})*"
_HOST = rf"(?:{_IP_LITERAL}|{_REG_NAME})"
_AUTHORITY = rf"(?:{_USERINFO}@)?{_HOST}(?::[0-9]*)?"

_PATH_ABEMPTY = rf"(?:/{_PCHAR}*)*"
_PATH_ABSOLUTE = rf"/(?:{_PCHAR}+(?:/{_PCHAR}*)*)?"
_PATH_ROOTLESS = rf"{_PCHAR}+(?:/{_PCHAR}*)*"
_QUERY = rf"(?:{_PCHAR}|[/?])*"

SCHEME_RE = re.compile(_SCHEME)
AUTHORITY_RE = re.compile(_AUTHORITY)
URI_RE = re.compile(
    rf"{_SCHEME}:(?://{_AUTHORITY}{_PATH_ABEMPTY}|{_PATH_ABSOLUTE}|{_PATH_ROOTLESS}|)"
    rf"(?:\?{_QUERY})?(?:#{_QUERY})?"
)

# RFC 3986 Appendix B, used only to locate the authority component.
_URI_SPLIT_RE = re.compile(r"^(?:[^:/?#]+:)?(?://(?P<authority>[^/?#]*))?")
_IPV6_LITERAL_RE = re.compile(r"\[(?P<address>[0-9A-Fa-f:.]+)\]")

# ---------------------------------------------------------------------------
# RFC 3339 date-time
# ---------------------------------------------------------------------------

DATE_TIME_RE = re.compile(
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})[Tt]"
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})"
)

# ---------------------------------------------------------------------------
# Message lines
# ---------------------------------------------------------------------------

_HEADER_RE = re.compile(
    rf"(?:(?P<scheme>{_SCHEME})://)?(?P<domain>\S+){re.escape(HEADER_SUFFIX)}"
)
ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")
_DIGITS_RE = re.compile(r"[0-9]+")
_ALNUM_RE = re.compile(r"[A-Za-z0-9]+")
_ANY_RE = re.compile(r".+")
_OPTIONAL_ANY_RE = re.compile(r".*")


def _ip_literal_ok(authority: str) -> bool:
    match = _IPV6_LITERAL_RE.search(authority)
    if match is None:
        return True
    try:
        ipaddress.IPv6Address(match.group("address"))
    except ValueError:
        return False
    return True


def is_valid_scheme(value: str) -> bool:
    """RFC 3986 ``scheme``."""
    return isinstance(value, str) and SCHEME_RE.fullmatch(value) is not None


def is_valid_authority(value: str) -> bool:
    """
    RFC 3986 ``authority`` with a non-empty host.

    Accepts ``example.com``, ``localhost:3000``, ``user@host``, ``[::1]:8080``.
    """
    if not isinstance(value, str) or not value:
        return False
    if AUTHORITY_RE.fullmatch(value) is None:
        return False
    host = value.rsplit("@", 1)[-1]
    if host.startswith(":") or host == "":
        return False
    return _ip_literal_ok(value)


def is_valid_uri(value: str) -> bool:
    """RFC 3986 ``URI`` (absolute, scheme required)."""
    if not isinstance(value, str) or URI_RE.fullmatch(value) is None:
        return False
    authority = _URI_SPLIT_RE.match(value).group("authority")
    return authority is None or _ip_literal_ok(authority)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 ``date-time`` into an aware ``datetime``.

    Fractional seconds beyond microseconds are truncated.

    Raises:
        ValueError: If ``value`` is not an RFC 3339 date-time with zone.
    """
    match = DATE_TIME_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Not an RFC 3339 date-time: {value!r}")

    offset = match.group("offset")
    if offset in ("Z", "z"):
        tzinfo = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if minutes > 59:
            raise ValueError(f"Invalid zone offset: {offset!r}")
        tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes))

    fraction = (match.group("fraction") or "")[:6].ljust(6, "0")
    return datetime(
        int(match.group("year")),
        int(match.group("month")),
        int(match.group("day")),
        int(match.group("hour")),
        int(match.group("minute")),
        int(match.group("second")),
        int(fraction),
        tzinfo=tzinfo,
    )


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class _LineReader:
    """Cursor over the message lines."""

    def __init__(self, text: str) -> None:
        self.lines: List[str] = text.split("\n")
        self.index = 0

    def at_end(self) -> bool:
        return self.index >= len(self.lines)

    def peek(self) -> Optional[str]:
        return None if self.at_end() else self.lines[self.index]

    def take(self, expected: str) -> str:
        if self.at_end():
            raise MessageParseError(received="end of message", expected=expected)
        line = self.lines[self.index]
        self.index += 1
        return line

    def blank(self) -> None:
        line = self.take("empty line")
        if line != "":
            raise MessageParseError(received=line, expected="empty line")

    def tagged(self, tag: str, pattern: re.Pattern) -> str:
        line = self.take(tag.strip())
        if not line.startswith(tag):
            raise MessageParseError(received=line, expected=tag.strip())
        value = line[len(tag):]
        if pattern.fullmatch(value) is None:
            raise MessageParseError(received=line, expected=tag.strip())
        return value

    def optional_tagged(self, tag: str, pattern: re.Pattern) -> Optional[str]:
        line = self.peek()
        if line is None or not line.startswith(tag):
            return None
        return self.tagged(tag, pattern)


def parse_message(text: str) -> SiweMessage:
    """
    Parse EIP-4361 text into a ``SiweMessage``.

    The grammar is fixed and ordered: title, address, blank, optional
    statement, blank, the required ``URI`` / ``Version`` / ``Chain ID`` /
    ``Nonce`` / ``Issued At`` lines, then the optional ``Expiration Time``,
    ``Not Before``, ``Request ID`` and ``Resources`` sections in that order.
    Nothing may follow the last section.

    Args:
        text: The exact text the wallet displayed and signed.

    Returns:
        ``SiweMessage`` with every field taken verbatim from the text.

    Raises:
        MessageParseError: On any deviation from the grammar.
    """
    if not isinstance(text, str) or not text:
        raise MessageParseError(received="empty message", expected="EIP-4361 message text")

    reader = _LineReader(text)

    header = reader.take("title line")
    header_match = _HEADER_RE.fullmatch(header)
    if header_match is None:
        raise MessageParseError(received=header, expected="<domain>" + HEADER_SUFFIX)

    address = reader.take("address")
    if ADDRESS_RE.fullmatch(address) is None:
        raise MessageParseError(received=address, expected="0x-prefixed 20-byte hex address")

    reader.blank()
    statement: Optional[str] = None
    if reader.peek() == "":
        reader.blank()
    else:
        statement = reader.take("statement")
        reader.blank()

    uri = reader.tagged(URI_TAG, _ANY_RE)
    version = reader.tagged(VERSION_TAG, _DIGITS_RE)
    chain_id = reader.tagged(CHAIN_TAG, _DIGITS_RE)
    nonce = reader.tagged(NONCE_TAG, _ALNUM_RE)
    issued_at = reader.tagged(ISSUED_AT_TAG, _ANY_RE)
    expiration_time = reader.optional_tagged(EXPIRATION_TAG, _ANY_RE)
    not_before = reader.optional_tagged(NOT_BEFORE_TAG, _ANY_RE)
    request_id = reader.optional_tagged(REQUEST_ID_TAG, _OPTIONAL_ANY_RE)

    resources: Optional[List[str]] = None
    if reader.peek() == RESOURCES_TAG:
        reader.take(RESOURCES_TAG)
        resources = []
        while not reader.at_end():
            resources.append(reader.tagged(RESOURCE_PREFIX, _ANY_RE))

    if not reader.at_end():
        raise MessageParseError(received=reader.peek(), expected="end of message")

    try:
        return SiweMessage(
            scheme=header_match.group("scheme"),
            domain=header_match.group("domain"),
            address=address,
            statement=statement,
            uri=uri,
            version=version,
            chain_id=chain_id,
            nonce=nonce,
            issued_at=issued_at,
            expiration_time=expiration_time,
            not_before=not_before,
            request_id=request_id,
            resources=resources,
        )
    except ValidationError as exc:
        raise MessageParseError(received=str(exc.errors()[0].get("msg")), expected="well-formed fields") from exc


def render_message(message: SiweMessage) -> str:
    """Canonical EIP-4361 text of ``message``."""
    return message.prepare_message()
