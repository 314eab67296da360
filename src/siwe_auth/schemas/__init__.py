from .bases import CanonicalModel
from .messages import SiweMessage, utc_now_iso
from .results import (
    SiweError,
    SiweErrorType,
    SiweResponse,
    VerifyOptions,
    VerifyParams,
    WalletVerification,
)
from .versions import MessageVersion, SupportedVersions

__all__ = [
    "CanonicalModel",
    "SiweMessage",
    "utc_now_iso",
    "SiweError",
    "SiweErrorType",
    "SiweResponse",
    "VerifyOptions",
    "VerifyParams",
    "WalletVerification",
    "MessageVersion",
    "SupportedVersions",
]
