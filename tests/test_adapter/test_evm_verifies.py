"""
EVM Signature Verification Test Suite

Tests for the two-path signature verifier:
- EIP-191 recovery for externally owned accounts
- ERC-1271 contract wallet checks through a provider or explicit checker
- Caller-supplied verification fallback
- Provider faults reported separately from invalid signatures

Test Structure:
    - Test fixtures and setup in test_mocks.py
    - Unit tests for hashing, recovery and the ERC-1271 checker
    - End-to-end tests for verify_signature

Usage:
    pytest tests/test_adapter/test_evm_verifies.py -v
"""

import pytest
from eth_utils import keccak
from web3.exceptions import ContractLogicError

from test_mocks import (
    MOCK_CONTRACT_WALLET,
    MOCK_OTHER_ADDRESS,
    MOCK_OTHER_PRIVATE_KEY,
    MOCK_OWNER_ADDRESS,
    MOCK_OWNER_PRIVATE_KEY,
    MockContractChecker,
    MockWeb3Provider,
    create_mock_message,
    create_signed_message,
)

from siwe_auth.adapters.evm.signatures import sign_message, sign_text
from siwe_auth.adapters.evm.standards import EIP191_PREFIX
from siwe_auth.adapters.evm.verifies import (
    ERC1271SignatureChecker,
    check_contract_wallet_signature,
    eip191_hash,
    recover_address,
    signature_to_bytes,
    verify_signature,
)
from siwe_auth.engine.exceptions import (
    MessageValidationError,
    ProviderError,
    SignatureVerificationError,
)
from siwe_auth.schemas.results import (
    SiweError,
    SiweErrorType,
    SiweResponse,
    VerifyOptions,
    VerifyParams,
)


# ========================================================================
# Test Fixtures
# ========================================================================

@pytest.fixture
def signed_message():
    """Message signed by the key of its own address."""
    return create_signed_message()


@pytest.fixture
def contract_wallet_message():
    """Message for a contract wallet, signed by an unrelated EOA key."""
    return create_signed_message(private_key=MOCK_OWNER_PRIVATE_KEY, address=MOCK_CONTRACT_WALLET)


# ========================================================================
# Hashing, signing and recovery
# ========================================================================

class TestSigningPrimitives:
    """Test EIP-191 hashing, signing and recovery."""

    def test_eip191_hash(self):
        """Test the hash matches the personal_sign preimage."""
        text = "hello"
        assert eip191_hash(text) == keccak(EIP191_PREFIX + b"5" + b"hello")

    def test_eip191_hash_uses_byte_length(self):
        """Test multi-byte characters count as UTF-8 bytes."""
        text = "héllo"
        data = text.encode("utf-8")
        assert eip191_hash(text) == keccak(EIP191_PREFIX + str(len(data)).encode() + data)

    def test_sign_text_format(self):
        """Test the signature is 65 bytes of 0x-hex."""
        signature = sign_text("hello", MOCK_OWNER_PRIVATE_KEY)
        assert signature.startswith("0x")
        assert len(signature) == 132

    def test_sign_text_requires_key(self):
        with pytest.raises(ValueError, match="Private key is required"):
            sign_text("hello", "")

    def test_recover_signer(self, signed_message):
        message, signature = signed_message
        recovered = recover_address(message.prepare_message(), signature_to_bytes(signature))
        assert recovered == MOCK_OWNER_ADDRESS

    def test_recover_garbage_returns_none(self):
        assert recover_address("hello", b"\x01\x02\x03") is None

    def test_sign_message_accepts_text(self, signed_message):
        message, signature = signed_message
        assert sign_message(message.prepare_message(), MOCK_OWNER_PRIVATE_KEY) == signature

    def test_signature_to_bytes(self):
        assert signature_to_bytes("0x0a0b") == b"\x0a\x0b"
        assert signature_to_bytes("0a0b") == b"\x0a\x0b"
        assert signature_to_bytes(b"\x0a") == b"\x0a"
        with pytest.raises(ValueError):
            signature_to_bytes("0xzz")


# ========================================================================
# ERC-1271 checker
# ========================================================================

class TestERC1271SignatureChecker:
    """Test the AsyncWeb3-backed contract wallet checker."""

    @pytest.mark.asyncio
    async def test_magic_value_accepted(self):
        w3 = MockWeb3Provider()
        checker = ERC1271SignatureChecker(w3)
        message_hash = eip191_hash("hello")

        assert await checker.is_valid_signature(MOCK_CONTRACT_WALLET, message_hash, b"\x01" * 65)
        w3.eth.get_code.assert_awaited_once_with(MOCK_CONTRACT_WALLET)
        w3.contract.functions.isValidSignature.assert_called_once_with(message_hash, b"\x01" * 65)

    @pytest.mark.asyncio
    async def test_hex_string_magic_value_accepted(self):
        checker = ERC1271SignatureChecker(MockWeb3Provider(magic_value="0x1626ba7e"))
        assert await checker.is_valid_signature(MOCK_CONTRACT_WALLET, eip191_hash("hello"), b"\x01")

    @pytest.mark.asyncio
    async def test_wrong_magic_value_rejected(self):
        checker = ERC1271SignatureChecker(MockWeb3Provider(magic_value=b"\xff\xff\xff\xff"))
        assert not await checker.is_valid_signature(MOCK_CONTRACT_WALLET, eip191_hash("hello"), b"\x01")

    @pytest.mark.asyncio
    async def test_no_code_rejected_without_call(self):
        w3 = MockWeb3Provider(code=b"")
        checker = ERC1271SignatureChecker(w3)
        assert not await checker.is_valid_signature(MOCK_CONTRACT_WALLET, eip191_hash("hello"), b"\x01")
        w3.call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revert_rejected(self):
        checker = ERC1271SignatureChecker(MockWeb3Provider(call_error=ContractLogicError("execution reverted")))
        assert not await checker.is_valid_signature(MOCK_CONTRACT_WALLET, eip191_hash("hello"), b"\x01")

    @pytest.mark.asyncio
    async def test_transport_error_raises_provider_error(self):
        checker = ERC1271SignatureChecker(MockWeb3Provider(code_error=ConnectionError("connection refused")))
        with pytest.raises(ProviderError) as exc_info:
            await checker.is_valid_signature(MOCK_CONTRACT_WALLET, eip191_hash("hello"), b"\x01")
        assert exc_info.value.error.type == SiweErrorType.PROVIDER_ERROR
        assert exc_info.value.address == MOCK_CONTRACT_WALLET

    @pytest.mark.asyncio
    async def test_call_timeout_raises_provider_error(self):
        checker = ERC1271SignatureChecker(MockWeb3Provider(call_error=TimeoutError("timed out")))
        with pytest.raises(ProviderError):
            await checker.is_valid_signature(MOCK_CONTRACT_WALLET, eip191_hash("hello"), b"\x01")


# ========================================================================
# verify_signature
# ========================================================================

class TestVerifySignature:
    """Test end-to-end signature verification."""

    @pytest.mark.asyncio
    async def test_eoa_signature(self, signed_message):
        """Test a matching EIP-191 signature verifies without network access."""
        message, signature = signed_message
        w3 = MockWeb3Provider()

        address = await verify_signature(message, signature, VerifyOptions(provider=w3))

        assert address == MOCK_OWNER_ADDRESS
        w3.eth.get_code.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_eoa_signature_bytes(self, signed_message):
        message, signature = signed_message
        assert await verify_signature(message, signature_to_bytes(signature)) == MOCK_OWNER_ADDRESS

    @pytest.mark.asyncio
    async def test_lowercase_address_returns_checksum(self):
        message, signature = create_signed_message(address=MOCK_OWNER_ADDRESS.lower())
        assert await verify_signature(message, signature) == MOCK_OWNER_ADDRESS

    @pytest.mark.asyncio
    async def test_wrong_signer_without_provider(self):
        """Test a signature by another key fails with INVALID_SIGNATURE."""
        message, signature = create_signed_message(private_key=MOCK_OTHER_PRIVATE_KEY, address=MOCK_OWNER_ADDRESS)

        with pytest.raises(SignatureVerificationError) as exc_info:
            await verify_signature(message, signature)

        assert exc_info.value.error.type == SiweErrorType.INVALID_SIGNATURE
        assert exc_info.value.error.expected == MOCK_OWNER_ADDRESS
        assert exc_info.value.error.received == MOCK_OTHER_ADDRESS

    @pytest.mark.asyncio
    async def test_signature_over_other_text(self):
        message = create_mock_message()
        signature = sign_message(create_mock_message(nonce="zzzz9999"), MOCK_OWNER_PRIVATE_KEY)
        with pytest.raises(SignatureVerificationError):
            await verify_signature(message, signature)

    @pytest.mark.asyncio
    async def test_malformed_signature(self, signed_message):
        message, _ = signed_message
        with pytest.raises(SignatureVerificationError) as exc_info:
            await verify_signature(message, "0xnothex")
        assert exc_info.value.error.type == SiweErrorType.INVALID_SIGNATURE

    @pytest.mark.asyncio
    async def test_invalid_message_address(self):
        message = create_mock_message(address="0xnothex")
        with pytest.raises(MessageValidationError) as exc_info:
            await verify_signature(message, "0x00")
        assert exc_info.value.error.type == SiweErrorType.INVALID_ADDRESS

    @pytest.mark.asyncio
    async def test_contract_wallet_via_checker(self, contract_wallet_message):
        """Test a contract checker accepting the signature."""
        message, signature = contract_wallet_message
        checker = MockContractChecker(result=True)

        address = await verify_signature(message, signature, VerifyOptions(contract_checker=checker))

        assert address == MOCK_CONTRACT_WALLET
        assert checker.calls == [
            (MOCK_CONTRACT_WALLET, eip191_hash(message.prepare_message()), signature_to_bytes(signature))
        ]

    @pytest.mark.asyncio
    async def test_contract_wallet_rejected(self, contract_wallet_message):
        message, signature = contract_wallet_message
        options = VerifyOptions(contract_checker=MockContractChecker(result=False))
        with pytest.raises(SignatureVerificationError) as exc_info:
            await verify_signature(message, signature, options)
        assert exc_info.value.error.type == SiweErrorType.INVALID_SIGNATURE

    @pytest.mark.asyncio
    async def test_contract_wallet_via_provider(self, contract_wallet_message):
        message, signature = contract_wallet_message
        address = await verify_signature(message, signature, VerifyOptions(provider=MockWeb3Provider()))
        assert address == MOCK_CONTRACT_WALLET

    @pytest.mark.asyncio
    async def test_undeployed_contract_is_invalid_signature(self, contract_wallet_message):
        message, signature = contract_wallet_message
        options = VerifyOptions(provider=MockWeb3Provider(code=b""))
        with pytest.raises(SignatureVerificationError):
            await verify_signature(message, signature, options)

    @pytest.mark.asyncio
    async def test_provider_outage_is_provider_error(self, contract_wallet_message):
        """Test an unreachable chain is not reported as an invalid signature."""
        message, signature = contract_wallet_message
        options = VerifyOptions(provider=MockWeb3Provider(code_error=ConnectionError("connection refused")))

        with pytest.raises(ProviderError) as exc_info:
            await verify_signature(message, signature, options)

        assert exc_info.value.error.type == SiweErrorType.PROVIDER_ERROR

    @pytest.mark.asyncio
    async def test_checker_takes_precedence_over_provider(self, contract_wallet_message):
        message, signature = contract_wallet_message
        w3 = MockWeb3Provider()
        options = VerifyOptions(provider=w3, contract_checker=MockContractChecker(result=True))

        assert await verify_signature(message, signature, options) == MOCK_CONTRACT_WALLET
        w3.eth.get_code.assert_not_awaited()


class TestVerificationFallback:
    """Test the caller-supplied fallback."""

    @pytest.mark.asyncio
    async def test_fallback_response_used_verbatim(self, contract_wallet_message):
        message, signature = contract_wallet_message
        seen = {}

        async def fallback(params, options, msg, pending):
            seen["params"] = params
            seen["message"] = msg
            return SiweResponse(success=True, data=msg)

        params = VerifyParams(signature=signature)
        address = await verify_signature(message, signature, VerifyOptions(verification_fallback=fallback), params)

        assert address == MOCK_CONTRACT_WALLET
        assert seen["params"] is params
        assert seen["message"] is message

    @pytest.mark.asyncio
    async def test_fallback_can_await_contract_check(self, contract_wallet_message):
        message, signature = contract_wallet_message
        checker = MockContractChecker(result=True)

        async def fallback(params, options, msg, pending):
            return await pending

        options = VerifyOptions(contract_checker=checker, verification_fallback=fallback)
        assert await verify_signature(message, signature, options) == MOCK_CONTRACT_WALLET
        assert len(checker.calls) == 1

    @pytest.mark.asyncio
    async def test_fallback_failure_kind_preserved(self, contract_wallet_message):
        message, signature = contract_wallet_message

        async def fallback(params, options, msg, pending):
            return SiweResponse(
                success=False,
                data=msg,
                error=SiweError(type=SiweErrorType.NONCE_MISMATCH, expected="a", received="b"),
            )

        with pytest.raises(SignatureVerificationError) as exc_info:
            await verify_signature(message, signature, VerifyOptions(verification_fallback=fallback))
        assert exc_info.value.error.type == SiweErrorType.NONCE_MISMATCH

    @pytest.mark.asyncio
    async def test_fallback_not_called_for_eoa(self, signed_message):
        message, signature = signed_message
        called = []

        async def fallback(*args):
            called.append(args)
            return SiweResponse(success=False)

        await verify_signature(message, signature, VerifyOptions(verification_fallback=fallback))
        assert called == []


class TestCheckContractWalletSignature:
    """Test folding of contract check outcomes into a response."""

    @pytest.mark.asyncio
    async def test_without_checker(self, contract_wallet_message):
        message, signature = contract_wallet_message
        response = await check_contract_wallet_signature(message, signature_to_bytes(signature), None)
        assert not response.success
        assert response.error.type == SiweErrorType.INVALID_SIGNATURE

    @pytest.mark.asyncio
    async def test_provider_error_returned(self, contract_wallet_message):
        message, signature = contract_wallet_message
        checker = MockContractChecker(error=ProviderError(MOCK_CONTRACT_WALLET, "timeout"))

        response = await check_contract_wallet_signature(message, signature_to_bytes(signature), checker)

        assert not response.success
        assert response.data is message
        assert response.error.type == SiweErrorType.PROVIDER_ERROR
        assert response.error.received == "timeout"
