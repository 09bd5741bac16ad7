"""
Tests for ECDSA signing, hashing and key pair persistence.
"""

import pytest

from src.core.keystore import PRIVATE_KEY, PUBLIC_KEY
from src.core.security import (
    SigningService,
    export_private_key,
    export_public_key,
    generate_document_hash,
    generate_signing_key_pair,
    load_private_key,
    load_public_key,
    sign_data,
    verify_signature,
)


class TestSigningPrimitives:
    """Test the stateless signing helpers."""

    def test_sign_and_verify(self):
        pair = generate_signing_key_pair()
        signature = sign_data(pair.private_key, "Notice of Conditional Acceptance")

        assert verify_signature(pair.public_key, "Notice of Conditional Acceptance", signature)

    def test_tampered_data_fails_verification(self):
        pair = generate_signing_key_pair()
        signature = sign_data(pair.private_key, "original")

        assert not verify_signature(pair.public_key, "tampered", signature)

    def test_signature_from_other_key_fails(self):
        signer = generate_signing_key_pair()
        other = generate_signing_key_pair()
        signature = sign_data(signer.private_key, "data")

        assert not verify_signature(other.public_key, "data", signature)

    def test_garbage_signature_fails(self):
        pair = generate_signing_key_pair()
        assert not verify_signature(pair.public_key, "data", "not-a-signature!!")

    def test_public_key_exports_as_spki_pem(self):
        pem = export_public_key(generate_signing_key_pair().public_key)
        assert pem.startswith("-----BEGIN PUBLIC KEY-----")

    def test_pem_round_trip(self):
        pair = generate_signing_key_pair()
        private_key = load_private_key(export_private_key(pair.private_key))
        public_key = load_public_key(export_public_key(pair.public_key))

        assert verify_signature(public_key, "data", sign_data(private_key, "data"))

    def test_document_hash(self):
        assert generate_document_hash("abc") == \
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


class TestSigningService:
    """Test key pair persistence through the key slots."""

    @pytest.mark.asyncio
    async def test_first_sign_generates_and_persists_pair(self, key_store):
        service = SigningService(key_store)
        signature = await service.sign("payload")

        assert await key_store.load_key(PRIVATE_KEY) is not None
        assert (await key_store.load_key(PUBLIC_KEY)).startswith("-----BEGIN PUBLIC KEY-----")
        assert await service.verify("payload", signature)

    @pytest.mark.asyncio
    async def test_pair_is_reused_across_instances(self, key_store):
        first_pem = await SigningService(key_store).public_key_pem()
        second_pem = await SigningService(key_store).public_key_pem()
        assert first_pem == second_pem

    @pytest.mark.asyncio
    async def test_verify_without_keys_is_false(self, key_store):
        assert await SigningService(key_store).verify("payload", "c2ln") is False

    @pytest.mark.asyncio
    async def test_reset_forces_new_pair(self, key_store):
        service = SigningService(key_store)
        old_pem = await service.public_key_pem()
        signature = await service.sign("payload")

        await service.reset()
        assert await key_store.load_key(PUBLIC_KEY) is None

        assert await service.public_key_pem() != old_pem
        assert not await service.verify("payload", signature)
