"""
Local profile/document cache - keyed collections and single-slot records over LocalStorage.

Every collection shares one contract: list(), upsert(record), remove(id).
Malformed input raises MalformedRecordError; storage failures are logged and degrade
to an empty result (reads) or a False return (writes), never an exception.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from util.logging import logger, log_schema_validation_error
from .defaults import DEFAULT_SCRIPTS, DEFAULT_TEMPLATES
from .errors import MalformedRecordError
from .local_storage import LocalStorage
from .schema import (
    CallScript, CommercialInvoice, Creditor, IdentifiedRecord, IdentityProfile,
    InstrumentData, RemedyProcess, Template, UserProfile, VaultDocument, parse_timestamp,
)

# Storage keys
VAULT_KEY = 'verobrix_vault_data'
PROFILE_KEY = 'verobrix_user_profile'
IDENTITY_KEY = 'verobrix_identity_profile'
CREDITORS_KEY = 'verobrix_creditors'
TEMPLATES_KEY = 'verobrix_templates'
CLIPBOARD_KEY = 'verobrix_clipboard_instrument'
SCRIPTS_KEY = 'verobrix_call_scripts'
REMEDY_PROCESS_KEY = 'verobrix_remedy_processes'
INVOICES_KEY = 'verobrix_invoices'

PREPEND = "prepend"
APPEND = "append"

T = TypeVar("T", bound=IdentifiedRecord)
M = TypeVar("M", bound=BaseModel)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _coerce(model: Type[M], record: Union[M, Dict[str, Any]], collection: str) -> M:
    """Validate a dict (or re-check a model) against the collection's record type."""
    if isinstance(record, model):
        return record
    data = record.model_dump(by_alias=True) if isinstance(record, BaseModel) else record
    if not isinstance(data, dict):
        raise MalformedRecordError(collection, [f"expected a mapping, got {type(record).__name__}"])
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        log_schema_validation_error(f"cache.{collection}", errors, data)
        raise MalformedRecordError(collection, errors) from e


def sort_newest_first(records: List[T], timestamp_field: str) -> List[T]:
    """Order by a timestamp attribute, newest first; unparseable stamps sink to the end."""
    def _key(record):
        stamp = parse_timestamp(getattr(record, timestamp_field, None))
        return (stamp is not None, stamp or _EPOCH)

    return sorted(records, key=_key, reverse=True)


class RecordCollection(Generic[T]):
    """
    One keyed collection stored as a JSON list under a single storage key.

    new_records: where records with an unseen id go (PREPEND or APPEND); known ids
    are always replaced in place. timestamp_field: when set, list() returns
    newest-first by that field. defaults: built-in records listed ahead of stored
    ones; their ids can be neither replaced nor removed.
    """

    def __init__(self, storage: LocalStorage, storage_key: str, model: Type[T], *,
                 name: str, new_records: str = PREPEND, timestamp_field: str = None,
                 defaults: Iterable[T] = (), mark_custom: bool = False):
        self.storage = storage
        self.storage_key = storage_key
        self.model = model
        self.name = name
        self.new_records = new_records
        self.timestamp_field = timestamp_field
        self.defaults = list(defaults)
        self.protected_ids = frozenset(record.id for record in self.defaults)
        self.mark_custom = mark_custom

    def _read_raw(self) -> List[Dict[str, Any]]:
        data = self.storage.get_item(self.storage_key)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"expected a list under '{self.storage_key}', found {type(data).__name__}")
        return data

    def list(self) -> List[T]:
        """Return every record (built-ins first where defined, newest-first where time-stamped)."""
        try:
            raw = self._read_raw()
        except Exception as e:
            logger.error(f"Failed to read {self.name} from local storage: {e}")
            raw = []

        records = []
        for entry in raw:
            try:
                records.append(self.model.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable {self.name} entry: {e.error_count()} validation errors")

        if self.timestamp_field:
            records = sort_newest_first(records, self.timestamp_field)
        # Built-ins are shared across caches; hand out copies
        return [record.model_copy(deep=True) for record in self.defaults] + records

    def get(self, record_id: str) -> Optional[T]:
        for record in self.list():
            if record.id == record_id:
                return record
        return None

    def upsert(self, record: Union[T, Dict[str, Any]]) -> bool:
        """Replace the record with the same id in place, or insert it as a new record."""
        record = _coerce(self.model, record, self.name)
        if record.id in self.protected_ids:
            logger.log_cache_operation("upsert", self.name, record.id, status="rejected")
            return False
        if self.mark_custom:
            record = record.model_copy(update={"is_custom": True})

        try:
            raw = self._read_raw()
            stored = record.to_storage()
            position = next(
                (i for i, entry in enumerate(raw) if isinstance(entry, dict) and entry.get("id") == record.id),
                None
            )
            if position is not None:
                raw[position] = stored
            elif self.new_records == PREPEND:
                raw.insert(0, stored)
            else:
                raw.append(stored)
            self.storage.set_item(self.storage_key, raw)
        except Exception as e:
            logger.error(f"Failed to save {self.name} record '{record.id}': {e}")
            return False

        logger.log_cache_operation("upsert", self.name, record.id)
        return True

    def remove(self, record_id: str) -> bool:
        """Delete by id; unknown ids are a no-op. Built-in ids are rejected."""
        if record_id in self.protected_ids:
            logger.log_cache_operation("remove", self.name, record_id, status="rejected")
            return False

        try:
            raw = self._read_raw()
            remaining = [entry for entry in raw if not (isinstance(entry, dict) and entry.get("id") == record_id)]
            if len(remaining) != len(raw):
                self.storage.set_item(self.storage_key, remaining)
        except Exception as e:
            logger.error(f"Failed to remove {self.name} record '{record_id}': {e}")
            return False

        logger.log_cache_operation("remove", self.name, record_id)
        return True


class ProfileCache:
    """All user-owned local collections plus the profile, identity and clipboard slots."""

    def __init__(self, storage: LocalStorage = None):
        self.storage = storage or LocalStorage()

        self.creditors: RecordCollection[Creditor] = RecordCollection(
            self.storage, CREDITORS_KEY, Creditor, name="creditors")
        self.vault: RecordCollection[VaultDocument] = RecordCollection(
            self.storage, VAULT_KEY, VaultDocument, name="vault",
            new_records=APPEND, timestamp_field="date_uploaded")
        self.remedy_processes: RecordCollection[RemedyProcess] = RecordCollection(
            self.storage, REMEDY_PROCESS_KEY, RemedyProcess, name="remedy_processes",
            timestamp_field="start_date")
        self.invoices: RecordCollection[CommercialInvoice] = RecordCollection(
            self.storage, INVOICES_KEY, CommercialInvoice, name="invoices",
            timestamp_field="date")
        self.templates: RecordCollection[Template] = RecordCollection(
            self.storage, TEMPLATES_KEY, Template, name="templates",
            new_records=APPEND, defaults=DEFAULT_TEMPLATES, mark_custom=True)
        self.scripts: RecordCollection[CallScript] = RecordCollection(
            self.storage, SCRIPTS_KEY, CallScript, name="scripts",
            new_records=APPEND, defaults=DEFAULT_SCRIPTS, mark_custom=True)

    # ------------------------------------------------------------------
    # Single-slot helpers
    # ------------------------------------------------------------------
    def _get_slot(self, key: str, model: Type[M]) -> Optional[M]:
        try:
            data = self.storage.get_item(key)
            return model.model_validate(data) if data is not None else None
        except Exception as e:
            logger.error(f"Failed to read '{key}' from local storage: {e}")
            return None

    def _set_slot(self, key: str, model: Type[M], value: Union[M, Dict[str, Any]]) -> bool:
        record = _coerce(model, value, key)
        try:
            self.storage.set_item(key, record.to_storage())
        except Exception as e:
            logger.error(f"Failed to write '{key}' to local storage: {e}")
            return False
        logger.log_cache_operation("save", key)
        return True

    def _clear_slot(self, key: str) -> bool:
        try:
            self.storage.remove_item(key)
        except Exception as e:
            logger.error(f"Failed to clear '{key}' from local storage: {e}")
            return False
        logger.log_cache_operation("clear", key)
        return True

    # ------------------------------------------------------------------
    # User profile
    # ------------------------------------------------------------------
    def get_user_profile(self) -> Optional[UserProfile]:
        return self._get_slot(PROFILE_KEY, UserProfile)

    def save_user_profile(self, profile: Union[UserProfile, Dict[str, Any]]) -> bool:
        return self._set_slot(PROFILE_KEY, UserProfile, profile)

    def clear_user_profile(self) -> bool:
        return self._clear_slot(PROFILE_KEY)

    # ------------------------------------------------------------------
    # Identity profile
    # ------------------------------------------------------------------
    def get_identity_profile(self) -> Optional[IdentityProfile]:
        return self._get_slot(IDENTITY_KEY, IdentityProfile)

    def save_identity_profile(self, profile: Union[IdentityProfile, Dict[str, Any]]) -> bool:
        return self._set_slot(IDENTITY_KEY, IdentityProfile, profile)

    # ------------------------------------------------------------------
    # Clipboard (instrument handoff between views)
    # ------------------------------------------------------------------
    def save_to_clipboard(self, data: Union[InstrumentData, Dict[str, Any]]) -> bool:
        return self._set_slot(CLIPBOARD_KEY, InstrumentData, data)

    def get_from_clipboard(self) -> Optional[InstrumentData]:
        return self._get_slot(CLIPBOARD_KEY, InstrumentData)

    def clear_clipboard(self) -> bool:
        return self._clear_slot(CLIPBOARD_KEY)

    # ------------------------------------------------------------------
    # Vault
    # ------------------------------------------------------------------
    def save_document(self, doc_type: str, name: str, metadata: Dict[str, Any] = None) -> Optional[VaultDocument]:
        """Store a new vault document, minting its id and upload timestamp."""
        document = _coerce(VaultDocument, {
            "id": str(uuid.uuid4()),
            "type": doc_type,
            "name": name,
            "metadata": metadata or {},
            "dateUploaded": datetime.now(timezone.utc).isoformat(),
        }, "vault")
        return document if self.vault.upsert(document) else None
