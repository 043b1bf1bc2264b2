"""Indexed storage for reconciliation records."""

from typing import Callable, Generic, Iterator, Optional, Protocol, TypeVar


class HasId(Protocol):
    id: str


RecordT = TypeVar("RecordT", bound=HasId)


class IndexedCollection(Generic[RecordT]):
    """
    Records kept in insertion order with an id -> position index.

    Iteration walks the backing list directly, which keeps the O(B x A)
    matching passes free of dict overhead.
    """

    def __init__(self, records: Optional[list[RecordT]] = None):
        self._records: list[RecordT] = []
        self._index: dict[str, int] = {}
        for record in records or []:
            self.add(record)

    def add(self, record: RecordT) -> None:
        """Insert a record, replacing any record that has the same id."""
        position = self._index.get(record.id)
        if position is not None:
            self._records[position] = record
            return
        self._index[record.id] = len(self._records)
        self._records.append(record)

    def get(self, record_id: str) -> Optional[RecordT]:
        position = self._index.get(record_id)
        return self._records[position] if position is not None else None

    def values(self) -> list[RecordT]:
        return list(self._records)

    def retain(self, predicate: Callable[[RecordT], bool]) -> int:
        """
        Keep only records satisfying ``predicate``.

        Returns:
            Number of records removed
        """
        kept = [r for r in self._records if predicate(r)]
        removed = len(self._records) - len(kept)
        self._records = kept
        self._index = {r.id: i for i, r in enumerate(kept)}
        return removed

    def clear(self) -> None:
        self._records = []
        self._index = {}

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._index

    def __iter__(self) -> Iterator[RecordT]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)
