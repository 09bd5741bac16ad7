"""
Signing service - ECDSA P-256 / SHA-256 signatures and document hashing.
Key handles are persisted as PEM text in the record store key slots.
"""

import base64
import hashlib
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from util.logging import logger
from .keystore import KeyStore, PRIVATE_KEY, PUBLIC_KEY


@dataclass
class SigningKeyPair:
    private_key: ec.EllipticCurvePrivateKey
    public_key: ec.EllipticCurvePublicKey


def generate_signing_key_pair() -> SigningKeyPair:
    private_key = ec.generate_private_key(ec.SECP256R1())
    return SigningKeyPair(private_key=private_key, public_key=private_key.public_key())


def export_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """SubjectPublicKeyInfo PEM ("-----BEGIN PUBLIC KEY-----")."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def export_private_key(private_key: ec.EllipticCurvePrivateKey) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def load_public_key(pem: str) -> ec.EllipticCurvePublicKey:
    return serialization.load_pem_public_key(pem.encode("ascii"))


def load_private_key(pem: str) -> ec.EllipticCurvePrivateKey:
    return serialization.load_pem_private_key(pem.encode("ascii"), password=None)


def sign_data(private_key: ec.EllipticCurvePrivateKey, data: str) -> str:
    """Sign UTF-8 data; returns the base64 DER signature."""
    signature = private_key.sign(data.encode("utf-8"), ec.ECDSA(hashes.SHA256()))
    return base64.b64encode(signature).decode("ascii")


def verify_signature(public_key: ec.EllipticCurvePublicKey, data: str, signature: str) -> bool:
    try:
        public_key.verify(base64.b64decode(signature), data.encode("utf-8"), ec.ECDSA(hashes.SHA256()))
    except (InvalidSignature, ValueError):
        return False
    return True


def generate_document_hash(content: str) -> str:
    """Hex SHA-256 of the UTF-8 content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class SigningService:
    """Signs with the persisted key pair, generating one on first use."""

    def __init__(self, key_store: KeyStore):
        self.key_store = key_store

    async def load_key_pair(self) -> Optional[SigningKeyPair]:
        private_pem = await self.key_store.load_key(PRIVATE_KEY)
        public_pem = await self.key_store.load_key(PUBLIC_KEY)
        if private_pem is None or public_pem is None:
            return None
        return SigningKeyPair(private_key=load_private_key(private_pem), public_key=load_public_key(public_pem))

    async def ensure_key_pair(self) -> SigningKeyPair:
        pair = await self.load_key_pair()
        if pair is not None:
            return pair

        pair = generate_signing_key_pair()
        await self.key_store.save_key(export_private_key(pair.private_key), PRIVATE_KEY)
        await self.key_store.save_key(export_public_key(pair.public_key), PUBLIC_KEY)
        logger.log_operation("keys.generate", "success", {"curve": "P-256"})
        return pair

    async def public_key_pem(self) -> str:
        pair = await self.ensure_key_pair()
        return export_public_key(pair.public_key)

    async def sign(self, data: str) -> str:
        pair = await self.ensure_key_pair()
        return sign_data(pair.private_key, data)

    async def verify(self, data: str, signature: str) -> bool:
        pair = await self.load_key_pair()
        if pair is None:
            return False
        return verify_signature(pair.public_key, data, signature)

    async def reset(self) -> None:
        """Forget the key pair; the next sign() generates a fresh one."""
        await self.key_store.clear_keys()

    @staticmethod
    def hash(content: str) -> str:
        return generate_document_hash(content)
