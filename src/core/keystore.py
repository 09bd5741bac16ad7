"""
Key slots - exactly two named slots (publicKey, privateKey) in the record store.
"""

from typing import Any, Optional

from util.logging import logger
from .db import KEY_STORE, RecordStore

PUBLIC_KEY = "publicKey"
PRIVATE_KEY = "privateKey"
KEY_SLOTS = (PUBLIC_KEY, PRIVATE_KEY)


class KeyStore:
    """Last-write-wins storage for the signing key pair handles."""

    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def _check_slot(slot: str) -> None:
        if slot not in KEY_SLOTS:
            raise ValueError(f"Unknown key slot '{slot}'; expected one of {KEY_SLOTS}")

    async def save_key(self, key: Any, slot: str) -> None:
        self._check_slot(slot)
        await self.store.put(KEY_STORE, slot, key)

    async def load_key(self, slot: str) -> Optional[Any]:
        self._check_slot(slot)
        return await self.store.get(KEY_STORE, slot)

    async def clear_keys(self) -> None:
        """Empty both slots in one transaction."""
        await self.store.clear(KEY_STORE)
        logger.log_operation("keys.clear", "success", {"slots": list(KEY_SLOTS)})
