"""
SIWE Message Model

Pydantic model for an EIP-4361 (Sign-In with Ethereum) authentication
message and its canonical text rendering.

The model only enforces what the text grammar needs to stay lossless:
required values are non-empty and no value spans more than one line.
Semantic checks (URI syntax, nonce shape, version tag, timestamps, EIP-55
checksums) live in ``siwe_auth.parsing.validators`` so that each failure maps
to its own ``SiweErrorType``.

Canonical layout::

    [scheme://]domain wants you to sign in with your Ethereum account:
    address

    statement

    URI: uri
    Version: 1
    Chain ID: 1
    Nonce: 32891756
    Issued At: 2021-09-30T16:25:24Z
    Expiration Time: ...        (optional)
    Not Before: ...             (optional)
    Request ID: ...             (optional)
    Resources:                  (optional)
    - https://example.com/my-web2-claim.json
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TYPE_CHECKING, Union

from eth_utils import is_hex_address, to_checksum_address
from pydantic import Field, field_validator

from .bases import CanonicalModel
from .versions import MessageVersion

if TYPE_CHECKING:
    from .results import SiweResponse, VerifyOptions, VerifyParams


HEADER_SUFFIX = " wants you to sign in with your Ethereum account:"
URI_TAG = "URI: "
VERSION_TAG = "Version: "
CHAIN_TAG = "Chain ID: "
NONCE_TAG = "Nonce: "
ISSUED_AT_TAG = "Issued At: "
EXPIRATION_TAG = "Expiration Time: "
NOT_BEFORE_TAG = "Not Before: "
REQUEST_ID_TAG = "Request ID: "
RESOURCES_TAG = "Resources:"
RESOURCE_PREFIX = "- "


def utc_now_iso() -> str:
    """Current UTC instant as an RFC 3339 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _reject_line_breaks(name: str, value: str) -> str:
    if "\n" in value or "\r" in value:
        raise ValueError(f"'{name}' must not contain line breaks")
    return value


class SiweMessage(CanonicalModel):
    """
    EIP-4361 authentication message.

    Constructed once per verification attempt, either by parsing the text a
    wallet signed (``SiweMessage.from_text``) or programmatically by the
    relying party before handing it to the wallet. Read-only afterwards.

    ``address`` is stored exactly as supplied because the signature covers
    the rendered text; ``checksum_address`` exposes the EIP-55 form used for
    comparisons and output.

    Attributes:
        scheme: Optional URI scheme of the requesting origin.
        domain: RFC 3986 authority requesting the signing.
        address: Account performing the signing (0x + 40 hex).
        statement: Optional single-line human readable assertion.
        uri: RFC 3986 URI referring to the subject of the signing.
        version: Message version, ``"1"`` for EIP-4361.
        chain_id: EIP-155 chain id, decimal digits.
        nonce: Relying-party token preventing replay (>= 8 alphanumerics).
        issued_at: RFC 3339 time the message was generated.
        expiration_time: Optional RFC 3339 instant from which the message is stale.
        not_before: Optional RFC 3339 instant before which the message is not valid.
        request_id: Optional opaque system-specific identifier.
        resources: Optional ordered list of URIs the user wishes to have resolved.

    Example::

        message = SiweMessage(
            domain="example.com",
            address="0x71C7656EC7ab88b098defB751B7401B5f6d8976F",
            statement="Sign in to Example",
            uri="https://example.com/login",
            chain_id=1,
            nonce="abcd1234efgh",
        )
        text = message.prepare_message()
    """

    scheme: Optional[str] = Field(None, description="URI scheme of the origin of the request")
    domain: str = Field(..., description="RFC 3986 authority requesting the signing")
    address: str = Field(..., description="Account address performing the signing")
    statement: Optional[str] = Field(None, description="Human-readable assertion the user signs")
    uri: str = Field(..., description="RFC 3986 URI referring to the resource of the signing")
    version: str = Field(default=MessageVersion.Version1.value, description="Message version")
    chain_id: str = Field(..., alias="chainId", description="EIP-155 chain id")
    nonce: str = Field(..., description="Randomized token used to prevent replay attacks")
    issued_at: str = Field(default_factory=utc_now_iso, alias="issuedAt", description="RFC 3339 issuance time")
    expiration_time: Optional[str] = Field(None, alias="expirationTime", description="RFC 3339 expiry time")
    not_before: Optional[str] = Field(None, alias="notBefore", description="RFC 3339 validity start time")
    request_id: Optional[str] = Field(None, alias="requestId", description="System-specific request identifier")
    resources: Optional[List[str]] = Field(None, description="Ordered list of resource URIs")

    @field_validator("chain_id", mode="before")
    @classmethod
    def _coerce_chain_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("chain_id")
    @classmethod
    def _check_chain_id(cls, value: str) -> str:
        if not value.isascii() or not value.isdigit():
            raise ValueError(f"'chain_id' must be decimal digits, got: {value!r}")
        return value

    @field_validator("domain", "address", "uri", "version", "nonce", "issued_at")
    @classmethod
    def _check_required(cls, value: str, info) -> str:
        if not value:
            raise ValueError(f"'{info.field_name}' must not be empty")
        return _reject_line_breaks(info.field_name, value)

    @field_validator("scheme", "expiration_time", "not_before")
    @classmethod
    def _check_optional(cls, value: Optional[str], info) -> Optional[str]:
        if value is None:
            return None
        if not value:
            raise ValueError(f"'{info.field_name}' must not be empty when present")
        return _reject_line_breaks(info.field_name, value)

    @field_validator("statement")
    @classmethod
    def _check_statement(cls, value: Optional[str]) -> Optional[str]:
        # An empty statement renders identically to an absent one.
        if not value:
            return None
        return _reject_line_breaks("statement", value)

    @field_validator("request_id")
    @classmethod
    def _check_request_id(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _reject_line_breaks("request_id", value)

    @field_validator("resources")
    @classmethod
    def _check_resources(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        for resource in value:
            if not resource:
                raise ValueError("resources must not contain empty entries")
            _reject_line_breaks("resources", resource)
        return value

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def checksum_address(self) -> Optional[str]:
        """EIP-55 form of ``address``, or ``None`` when it is not a 20-byte hex address."""
        if not is_hex_address(self.address):
            return None
        return to_checksum_address(self.address)

    # ------------------------------------------------------------------
    # Canonical text
    # ------------------------------------------------------------------

    def prepare_message(self) -> str:
        """
        Render the canonical EIP-4361 text.

        This is the exact string shown to the signer and hashed for signature
        verification. ``SiweMessage.from_text(m.prepare_message()) == m`` for
        every valid message.

        Returns:
            str: LF-separated message text without a trailing newline.
        """
        origin = f"{self.scheme}://{self.domain}" if self.scheme else self.domain
        lines = [origin + HEADER_SUFFIX, self.address, ""]
        if self.statement is not None:
            lines.extend([self.statement, ""])
        else:
            lines.append("")

        lines.extend([
            URI_TAG + self.uri,
            VERSION_TAG + self.version,
            CHAIN_TAG + self.chain_id,
            NONCE_TAG + self.nonce,
            ISSUED_AT_TAG + self.issued_at,
        ])
        if self.expiration_time is not None:
            lines.append(EXPIRATION_TAG + self.expiration_time)
        if self.not_before is not None:
            lines.append(NOT_BEFORE_TAG + self.not_before)
        if self.request_id is not None:
            lines.append(REQUEST_ID_TAG + self.request_id)
        if self.resources is not None:
            lines.append(RESOURCES_TAG)
            lines.extend(RESOURCE_PREFIX + resource for resource in self.resources)

        return "\n".join(lines)

    def to_message(self) -> str:
        """Alias of ``prepare_message``."""
        return self.prepare_message()

    @classmethod
    def from_text(cls, text: str) -> "SiweMessage":
        """
        Parse canonical EIP-4361 text.

        Raises:
            MessageParseError: If the text does not follow the grammar.
        """
        from ..parsing.grammar import parse_message

        return parse_message(text)

    async def verify(
        self,
        params: Union["VerifyParams", Dict[str, Any]],
        options: Union["VerifyOptions", Dict[str, Any], None] = None,
    ) -> "SiweResponse":
        """Shortcut for ``siwe_auth.engine.executors.verify_message(self, params, options)``."""
        from ..engine.executors import verify_message

        return await verify_message(self, params, options)
