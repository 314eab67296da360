from .grammar import (
    is_valid_authority,
    is_valid_scheme,
    is_valid_uri,
    parse_message,
    parse_timestamp,
    render_message,
)
from .validators import (
    MIN_NONCE_LENGTH,
    check_time_window,
    is_valid_nonce,
    validate_fields,
)

__all__ = [
    "is_valid_authority",
    "is_valid_scheme",
    "is_valid_uri",
    "parse_message",
    "parse_timestamp",
    "render_message",
    "MIN_NONCE_LENGTH",
    "check_time_window",
    "is_valid_nonce",
    "validate_fields",
]
