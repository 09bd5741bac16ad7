"""
Corpus Index - citation-unique, indexed access to legal-reference records.

Ingestion contract for add_items():
  * each item is validated first; malformed items are skipped and reported with
    their batch position (the rest of the batch still commits)
  * all valid items are upserted in ONE transaction keyed on the unique citation
    index; a storage failure rolls back every item of that batch and raises
    StorageUnavailableError
  * a citation already present keeps its surrogate id, every other field is replaced
  * repeated citations inside one batch resolve last-write-wins
"""

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from util.logging import logger, log_schema_validation_error
from .db import CORPUS_STORE, RecordStore
from .errors import MalformedRecordError, UnknownIndexError
from .schema import CorpusItem, CorpusSource

# Public index name -> column
INDEX_COLUMNS = {
    "source": "source",
    "jurisdiction": "jurisdiction",
    "sectionId": "section_id",
    "section_id": "section_id",
    "citation": "citation",
}

_COLUMNS = "id, source, jurisdiction, citation, section_id, title, text, strategic_notes, effective_date"

_UPSERT_SQL = '''
    INSERT INTO legal_corpus
        (source, jurisdiction, citation, section_id, title, text, strategic_notes, effective_date)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(citation) DO UPDATE SET
        source = excluded.source,
        jurisdiction = excluded.jurisdiction,
        section_id = excluded.section_id,
        title = excluded.title,
        text = excluded.text,
        strategic_notes = excluded.strategic_notes,
        effective_date = excluded.effective_date,
        updated_at = CURRENT_TIMESTAMP
'''


@dataclass
class IngestFailure:
    """A batch item rejected by validation."""
    position: int
    citation: Optional[str]
    reason: str


@dataclass
class IngestReport:
    """Outcome of one add_items() batch."""
    added: int = 0
    updated: int = 0
    failures: List[IngestFailure] = field(default_factory=list)

    @property
    def committed(self) -> int:
        return self.added + self.updated

    @property
    def ok(self) -> bool:
        return not self.failures


def _citation_of(raw: Any) -> Optional[str]:
    if isinstance(raw, CorpusItem):
        return raw.citation
    if isinstance(raw, dict):
        citation = raw.get("citation")
        return citation if isinstance(citation, str) else None
    return None


def _row_to_item(row: sqlite3.Row) -> CorpusItem:
    return CorpusItem(
        id=row["id"],
        source=row["source"],
        jurisdiction=row["jurisdiction"],
        citation=row["citation"],
        section_id=row["section_id"],
        title=row["title"],
        text=row["text"],
        strategic_notes=row["strategic_notes"],
        effective_date=row["effective_date"],
    )


class CorpusIndex:
    """Indexed query surface over the legal corpus collection of a RecordStore."""

    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def validate_item(raw: Union[CorpusItem, dict]) -> CorpusItem:
        """Return a validated CorpusItem or raise MalformedRecordError."""
        if isinstance(raw, CorpusItem):
            return raw
        if not isinstance(raw, dict):
            raise MalformedRecordError(CORPUS_STORE, [f"expected a mapping, got {type(raw).__name__}"])
        try:
            return CorpusItem.model_validate(raw)
        except ValidationError as e:
            errors = e.errors(include_url=False)
            log_schema_validation_error("corpus.add_items", errors, raw)
            raise MalformedRecordError(CORPUS_STORE, errors) from e

    async def add_items(self, items: Iterable[Union[CorpusItem, dict]]) -> IngestReport:
        """Upsert a batch of items by citation; see module docstring for the contract."""
        report = IngestReport()
        valid: List[CorpusItem] = []

        for position, raw in enumerate(items):
            try:
                valid.append(self.validate_item(raw))
            except MalformedRecordError as e:
                reasons = "; ".join(
                    f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" if isinstance(err, dict) else str(err)
                    for err in e.errors
                )
                report.failures.append(IngestFailure(position, _citation_of(raw), reasons))

        if valid:
            try:
                report.added, report.updated = await self.store.transaction(
                    lambda conn: self._upsert_all(conn, valid)
                )
            except Exception as e:
                logger.error(f"Corpus ingestion rolled back ({len(valid)} items): {e}")
                raise

        status = "success" if report.ok else "partial"
        logger.log_corpus_ingest(report.added, report.updated, len(report.failures), status)
        return report

    @staticmethod
    def _upsert_all(conn: sqlite3.Connection, items: List[CorpusItem]) -> Tuple[int, int]:
        added = updated = 0
        for item in items:
            existing = conn.execute(
                "SELECT id FROM legal_corpus WHERE citation = ?", (item.citation,)
            ).fetchone()
            conn.execute(_UPSERT_SQL, (
                item.source.value,
                item.jurisdiction.value,
                item.citation,
                item.section_id,
                item.title,
                item.text,
                item.strategic_notes,
                item.effective_date,
            ))
            if existing is None:
                added += 1
            else:
                updated += 1
        return added, updated

    async def query_by_index(self, index_name: str, value: Any) -> List[CorpusItem]:
        """Return every item whose indexed field equals value, ordered by id."""
        column = INDEX_COLUMNS.get(index_name)
        if column is None:
            raise UnknownIndexError(
                f"Unknown corpus index '{index_name}'; expected one of {sorted(INDEX_COLUMNS)}"
            )
        if isinstance(value, Enum):
            value = value.value

        def _query(conn):
            return conn.execute(
                f"SELECT {_COLUMNS} FROM legal_corpus WHERE {column} = ? ORDER BY id", (value,)
            ).fetchall()

        rows = await self.store.read(_query)
        return [_row_to_item(row) for row in rows]

    async def get_all(self, source: Union[CorpusSource, str, None] = None) -> List[CorpusItem]:
        """Return the whole corpus, optionally restricted to one source."""
        if source is not None:
            return await self.query_by_index("source", source)

        rows = await self.store.read(
            lambda conn: conn.execute(f"SELECT {_COLUMNS} FROM legal_corpus ORDER BY id").fetchall()
        )
        return [_row_to_item(row) for row in rows]

    async def get_by_citation(self, citation: str) -> Optional[CorpusItem]:
        """Point lookup through the unique citation index."""
        items = await self.query_by_index("citation", citation.strip())
        return items[0] if items else None

    async def search(self, term: str, source: Union[CorpusSource, str, None] = None) -> List[CorpusItem]:
        """Case-insensitive title/text match, or a section id containing the term."""
        items = await self.get_all(source)
        if not term or not term.strip():
            return items

        needle = term.strip().lower()
        return [
            item for item in items
            if needle in item.title.lower()
            or needle in item.text.lower()
            or (item.section_id is not None and term.strip() in item.section_id)
        ]

    async def count(self) -> int:
        return await self.store.read(
            lambda conn: conn.execute("SELECT COUNT(*) FROM legal_corpus").fetchone()[0]
        )
