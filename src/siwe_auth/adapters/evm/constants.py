"""
EVM Chain Configuration

ERC-1271 constants and the explicit chain-RPC configuration used to build
the provider for the contract-wallet signature check.

Nothing here runs at import time: the application loads ``SiweSettings``
(optionally from the environment / a ``.env`` file) and passes the provider
it builds into each verification call.
"""

import os
from typing import Any, Dict, Mapping, Optional

import dotenv
from pydantic import BaseModel, Field
from web3 import AsyncWeb3

from ...engine.exceptions import ConfigurationError

# ---------------------------------------------------------------------------
# ERC-1271 constants
# ---------------------------------------------------------------------------

#: Magic value returned by a valid ERC-1271 ``isValidSignature`` call.
ERC1271_MAGIC_VALUE: bytes = b"\x16\x26\xba\x7e"

#: Environment variable names read by ``SiweSettings.from_env``.
RPC_URL_ENV = "SIWE_RPC_URL"
RPC_TIMEOUT_ENV = "SIWE_RPC_TIMEOUT"
CHAIN_ID_ENV = "SIWE_CHAIN_ID"

DEFAULT_REQUEST_TIMEOUT = 10.0


class SiweSettings(BaseModel):
    """Chain-RPC configuration for contract wallet verification."""
    rpc_url: Optional[str] = Field(None, description="JSON-RPC endpoint used for ERC-1271 calls")
    request_timeout: float = Field(DEFAULT_REQUEST_TIMEOUT, gt=0, description="HTTP request timeout (seconds)")
    chain_id: Optional[int] = Field(None, ge=1, description="Chain the RPC endpoint serves")

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "SiweSettings":
        """
        Build settings from environment variables.

        Values from ``env_file`` (or a ``.env`` found from the working
        directory) are overridden by the process environment. ``os.environ``
        itself is never modified.

        Environment Variables:
            - SIWE_RPC_URL: JSON-RPC endpoint
            - SIWE_RPC_TIMEOUT: request timeout in seconds
            - SIWE_CHAIN_ID: chain id the endpoint serves

        Args:
            env_file: Path to a dotenv file.
            environ: Mapping used instead of ``os.environ`` (tests).

        Returns:
            SiweSettings

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed.

        Example:
            # In your .env file:
            # SIWE_RPC_URL="https://mainnet.base.org"

            settings = SiweSettings.from_env()
            provider = build_provider(settings)
        """
        path = env_file or dotenv.find_dotenv(usecwd=True)
        values: Dict[str, Any] = {}
        if path:
            values.update({k: v for k, v in dotenv.dotenv_values(path).items() if v is not None})
        values.update(os.environ if environ is None else environ)

        kwargs: Dict[str, Any] = {}
        if values.get(RPC_URL_ENV):
            kwargs["rpc_url"] = values[RPC_URL_ENV].strip()
        try:
            if values.get(RPC_TIMEOUT_ENV):
                kwargs["request_timeout"] = float(values[RPC_TIMEOUT_ENV])
            if values.get(CHAIN_ID_ENV):
                kwargs["chain_id"] = int(values[CHAIN_ID_ENV])
        except ValueError as e:
            raise ConfigurationError(f"Invalid SIWE environment configuration: {e}") from e

        return cls(**kwargs)


def build_provider(settings: SiweSettings) -> AsyncWeb3:
    """
    Build an ``AsyncWeb3`` HTTP provider from ``settings``.

    Args:
        settings: Chain-RPC configuration.

    Returns:
        AsyncWeb3 instance to pass as ``VerifyOptions.provider``.

    Raises:
        ConfigurationError: If no RPC URL is configured.
    """
    if not settings.rpc_url:
        raise ConfigurationError(
            f"No RPC URL configured; set {RPC_URL_ENV} or pass rpc_url explicitly"
        )
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
        settings.rpc_url,
        request_kwargs={"timeout": settings.request_timeout}
    ))
