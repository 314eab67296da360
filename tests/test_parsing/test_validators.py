"""
Field Validator Test Suite

Tests for the per-field checks run after parsing:
- Version, address checksum, domain, URI and nonce rules
- Validity window boundaries
- First-error reporting order

Usage:
    pytest tests/test_parsing/test_validators.py -v
"""

from datetime import datetime, timezone

import pytest

from test_mocks import (
    MOCK_DOMAIN,
    MOCK_NONCE,
    MOCK_OWNER_ADDRESS,
    MOCK_VERIFY_TIME,
    create_full_message,
    create_mock_message,
    flip_checksum_case,
)

from siwe_auth.parsing.validators import (
    check_address,
    check_domain,
    check_nonce,
    check_time_window,
    check_uri,
    check_version,
    is_valid_nonce,
    resolve_check_time,
    validate_fields,
)
from siwe_auth.schemas.results import SiweErrorType, VerifyParams


def _params(**kwargs) -> VerifyParams:
    kwargs.setdefault("signature", "0x00")
    return VerifyParams(**kwargs)


# ========================================================================
# Individual checks
# ========================================================================

class TestVersionAndAddress:
    """Test version and address checks."""

    def test_version_one_accepted(self):
        assert check_version(create_mock_message()) is None

    def test_unsupported_version(self):
        error = check_version(create_mock_message(version="2"))
        assert error.type == SiweErrorType.INVALID_MESSAGE_VERSION
        assert error.received == "2"

    def test_checksum_address_accepted(self):
        assert check_address(create_mock_message()) is None

    def test_lowercase_address_accepted(self):
        assert check_address(create_mock_message(address=MOCK_OWNER_ADDRESS.lower())) is None

    def test_bad_checksum_rejected(self):
        error = check_address(create_mock_message(address=flip_checksum_case(MOCK_OWNER_ADDRESS)))
        assert error.type == SiweErrorType.INVALID_ADDRESS
        assert error.expected == MOCK_OWNER_ADDRESS

    def test_non_hex_address_rejected(self):
        error = check_address(create_mock_message(address="0xnothex"))
        assert error.type == SiweErrorType.INVALID_ADDRESS


class TestDomainAndUri:
    """Test domain and URI checks."""

    def test_domain_matches(self):
        assert check_domain(create_mock_message(), MOCK_DOMAIN) is None

    def test_domain_mismatch(self):
        error = check_domain(create_mock_message(), "evil.example")
        assert error.type == SiweErrorType.DOMAIN_MISMATCH
        assert error.expected == "evil.example"
        assert error.received == MOCK_DOMAIN

    def test_domain_comparison_is_case_sensitive(self):
        error = check_domain(create_mock_message(), MOCK_DOMAIN.upper())
        assert error.type == SiweErrorType.DOMAIN_MISMATCH

    def test_invalid_domain_syntax(self):
        error = check_domain(create_mock_message(domain="exa mple.com"))
        assert error.type == SiweErrorType.INVALID_DOMAIN

    def test_invalid_scheme(self):
        error = check_domain(create_mock_message(scheme="1http"))
        assert error.type == SiweErrorType.INVALID_DOMAIN

    def test_invalid_uri(self):
        error = check_uri(create_mock_message(uri="not a uri"))
        assert error.type == SiweErrorType.INVALID_URI

    def test_invalid_resource(self):
        error = check_uri(create_mock_message(resources=["https://ok.example", "bad resource"]))
        assert error.type == SiweErrorType.INVALID_URI
        assert error.received == "bad resource"


class TestNonce:
    """Test nonce shape and expectation checks."""

    @pytest.mark.parametrize("nonce,valid", [
        ("abcd1234", True),
        ("abc123", False),
        ("abcd-1234", False),
        ("ABCDEFGH", True),
        ("12345678", True),
        ("abcdéfgh", False),
    ])
    def test_nonce_shape(self, nonce, valid):
        assert is_valid_nonce(nonce) is valid

    def test_short_nonce_rejected(self):
        error = check_nonce(create_mock_message(nonce="abc123"))
        assert error.type == SiweErrorType.INVALID_NONCE

    def test_nonce_mismatch(self):
        error = check_nonce(create_mock_message(), "zzzz9999")
        assert error.type == SiweErrorType.NONCE_MISMATCH
        assert error.expected == "zzzz9999"
        assert error.received == MOCK_NONCE

    def test_nonce_mismatch_reported_before_shape(self):
        error = check_nonce(create_mock_message(nonce="abc123"), "zzzz9999")
        assert error.type == SiweErrorType.NONCE_MISMATCH


# ========================================================================
# Validity window
# ========================================================================

class TestTimeWindow:
    """Test expiration and not-before boundaries."""

    EXPIRATION = "2024-06-01T00:00:00Z"
    NOT_BEFORE = "2024-05-01T00:00:00Z"

    def _message(self):
        return create_mock_message(expiration_time=self.EXPIRATION, not_before=self.NOT_BEFORE)

    def test_inside_window(self):
        assert check_time_window(self._message(), "2024-05-15T00:00:00Z") is None

    def test_expired_at_exact_expiration(self):
        error = check_time_window(self._message(), self.EXPIRATION)
        assert error.type == SiweErrorType.EXPIRED_MESSAGE

    def test_valid_one_second_before_expiration(self):
        assert check_time_window(self._message(), "2024-05-31T23:59:59Z") is None

    def test_valid_at_exact_not_before(self):
        assert check_time_window(self._message(), self.NOT_BEFORE) is None

    def test_not_yet_valid_one_second_before(self):
        error = check_time_window(self._message(), "2024-04-30T23:59:59Z")
        assert error.type == SiweErrorType.NOT_YET_VALID_MESSAGE

    def test_datetime_time_override(self):
        error = check_time_window(self._message(), datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert error.type == SiweErrorType.EXPIRED_MESSAGE

    def test_naive_datetime_taken_as_utc(self):
        assert resolve_check_time(datetime(2024, 1, 1)) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_offset_expiration_compared_as_instant(self):
        message = create_mock_message(expiration_time="2024-06-01T02:00:00+02:00")
        error = check_time_window(message, "2024-06-01T00:00:00Z")
        assert error.type == SiweErrorType.EXPIRED_MESSAGE

    def test_invalid_issued_at_format(self):
        error = check_time_window(create_mock_message(issued_at="yesterday"), MOCK_VERIFY_TIME)
        assert error.type == SiweErrorType.INVALID_TIME_FORMAT

    def test_invalid_expiration_format(self):
        error = check_time_window(create_mock_message(expiration_time="2024-06-01"), MOCK_VERIFY_TIME)
        assert error.type == SiweErrorType.INVALID_TIME_FORMAT

    def test_invalid_time_override(self):
        error = check_time_window(self._message(), "not-a-time")
        assert error.type == SiweErrorType.INVALID_TIME_FORMAT

    def test_no_window_fields(self):
        message = create_mock_message(expiration_time=None)
        assert check_time_window(message) is None


# ========================================================================
# Orchestrated validation
# ========================================================================

class TestValidateFields:
    """Test first-error reporting."""

    def test_valid_message(self):
        params = _params(domain=MOCK_DOMAIN, nonce=MOCK_NONCE, time=MOCK_VERIFY_TIME)
        assert validate_fields(create_full_message(), params) is None

    def test_without_params(self):
        assert validate_fields(create_mock_message()) is None

    def test_version_reported_before_nonce(self):
        message = create_mock_message(version="2", nonce="abc123")
        assert validate_fields(message).type == SiweErrorType.INVALID_MESSAGE_VERSION

    def test_domain_reported_before_expiry(self):
        message = create_mock_message(expiration_time="2000-01-01T00:00:00Z")
        error = validate_fields(message, _params(domain="other.example"))
        assert error.type == SiweErrorType.DOMAIN_MISMATCH

    def test_expired_message(self):
        message = create_mock_message(expiration_time="2000-01-01T00:00:00Z")
        assert validate_fields(message).type == SiweErrorType.EXPIRED_MESSAGE

    def test_idempotent(self):
        message = create_mock_message(nonce="abc123")
        params = _params(time=MOCK_VERIFY_TIME)
        assert validate_fields(message, params) == validate_fields(message, params)
