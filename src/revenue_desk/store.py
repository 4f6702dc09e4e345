"""Document store holding uploads, raw extractions and transactions."""

from __future__ import annotations

import copy
import json
import uuid
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

from revenue_desk.exceptions import StoreError
from revenue_desk.io import read_json, to_json_text, write_json

UPLOADS = "uploads"
RAW_DATA = "raw_data"
TRANSACTIONS = "transactions"
KINDS: tuple[str, ...] = (UPLOADS, RAW_DATA, TRANSACTIONS)

Document = dict[str, Any]


class DocumentStore(Protocol):
    def insert(self, kind: str, document: Mapping[str, Any]) -> str: ...

    def update(self, kind: str, doc_id: str, fields: Mapping[str, Any]) -> None: ...

    def get(self, kind: str, doc_id: str) -> Document: ...

    def find(
        self, kind: str, where: Callable[[Document], bool] | None = None
    ) -> list[Document]: ...

    def flush(self) -> None: ...


class MemoryStore:
    """Dict-backed store; documents are JSON-normalised on insert."""

    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        self._docs: dict[str, dict[str, Document]] = {kind: {} for kind in KINDS}
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)

    def _collection(self, kind: str) -> dict[str, Document]:
        try:
            return self._docs[kind]
        except KeyError:
            raise StoreError(f"Unknown record kind: {kind!r}") from None

    def insert(self, kind: str, document: Mapping[str, Any]) -> str:
        collection = self._collection(kind)
        doc_id = self._new_id()
        doc = _jsonable(document)
        doc["id"] = doc_id
        collection[doc_id] = doc
        return doc_id

    def update(self, kind: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        doc = self._collection(kind).get(doc_id)
        if doc is None:
            raise StoreError(f"No {kind} record with id {doc_id!r}")
        doc.update(_jsonable(fields))
        doc["id"] = doc_id

    def get(self, kind: str, doc_id: str) -> Document:
        doc = self._collection(kind).get(doc_id)
        if doc is None:
            raise StoreError(f"No {kind} record with id {doc_id!r}")
        return copy.deepcopy(doc)

    def find(
        self, kind: str, where: Callable[[Document], bool] | None = None
    ) -> list[Document]:
        docs = self._collection(kind).values()
        return [copy.deepcopy(d) for d in docs if where is None or where(d)]

    def count(self, kind: str) -> int:
        return len(self._collection(kind))

    def flush(self) -> None:
        return None


class JsonStore(MemoryStore):
    """Store persisted as one ``<kind>.json`` file per record kind."""

    def __init__(self, root: Path, id_factory: Callable[[], str] | None = None) -> None:
        super().__init__(id_factory)
        self.root = Path(root)
        if self.root.exists() and not self.root.is_dir():
            raise StoreError(f"Store path is not a directory: {self.root}")
        for kind in KINDS:
            data = read_json(self.root / f"{kind}.json", default=[])
            if not isinstance(data, list):
                raise StoreError(f"Corrupt store file: {self.root / f'{kind}.json'}")
            self._docs[kind] = {d["id"]: d for d in data}

    def flush(self) -> None:
        for kind in KINDS:
            write_json(self.root / f"{kind}.json", list(self._docs[kind].values()))


def _jsonable(document: Mapping[str, Any]) -> Document:
    # Round-trip through the JSON encoder so stored documents hold plain
    # values (ISO dates, no numpy scalars) whichever store is used.
    return json.loads(to_json_text(dict(document)))
