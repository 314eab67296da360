from .constants import (
    ERC1271_MAGIC_VALUE,
    SiweSettings,
    build_provider,
)
from .signatures import (
    sign_message,
    sign_text,
)
from .verifies import (
    ERC1271SignatureChecker,
    check_contract_wallet_signature,
    eip191_hash,
    recover_address,
    verify_signature,
    verify_signature_response,
)

__all__ = [
    "ERC1271_MAGIC_VALUE",
    "SiweSettings",
    "build_provider",
    "sign_message",
    "sign_text",
    "ERC1271SignatureChecker",
    "check_contract_wallet_signature",
    "eip191_hash",
    "recover_address",
    "verify_signature",
    "verify_signature_response",
]
