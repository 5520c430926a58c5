from __future__ import annotations

from typing import Iterable, Iterator

from .errors import ChainNotTerminated
from .record import Record


class RecordChain:
    """Ordered, owning collection of records of one kind.

    Records are linked through their ``next`` attribute. Iteration follows the
    links and can be restarted any number of times.
    """

    def __init__(self, kind: str | None = None, records: Iterable[Record] = ()) -> None:
        self.kind = kind
        self._head: Record | None = None
        self._tail: Record | None = None
        self._count = 0
        self.extend(records)

    def __iter__(self) -> Iterator[Record]:
        node = self._head
        while node is not None:
            yield node
            node = node.next

    def __len__(self) -> int:
        return self._count

    def __repr__(self) -> str:
        return f"RecordChain(kind={self.kind!r}, records={self._count})"

    @property
    def head(self) -> Record | None:
        return self._head

    @property
    def tail(self) -> Record | None:
        return self._tail

    def append(self, record: Record) -> None:
        if record.released:
            raise ValueError(f"cannot append a released {record.dxftype} record")
        if record.owner is not None:
            raise ValueError(f"{record.dxftype} record already belongs to a chain")
        if record.next is not None:
            raise ChainNotTerminated(f"{record.dxftype} record still links to another record")
        if self.kind is not None and record.dxftype != self.kind:
            raise ValueError(f"cannot append a {record.dxftype} record to a {self.kind} chain")
        record.owner = self
        if self._tail is None:
            self._head = record
        else:
            self._tail.next = record
        self._tail = record
        self._count += 1

    def extend(self, records: Iterable[Record]) -> None:
        for record in records:
            self.append(record)

    def free(self, record: Record) -> None:
        """Release a single record; only the unlinked tail qualifies."""
        if record.owner is not self:
            raise ValueError(f"{record.dxftype} record does not belong to this chain")
        if record.next is not None:
            raise ChainNotTerminated(f"{record.dxftype} record still links to the next record")
        previous = None
        for node in self:
            if node.next is record:
                previous = node
                break
        record.owner = None
        record.release()
        if previous is None:
            self._head = None
        else:
            previous.next = None
        self._tail = previous
        self._count -= 1

    def free_all(self) -> list[Record]:
        """Release every record once, in chain order, and return them.

        Nothing is released unless every record can be.
        """
        records = list(self)
        for record in records:
            if record.owner is not self or record.released:
                raise RuntimeError(f"{record.dxftype} record in {self!r} is no longer owned by it")
        self._head = self._tail = None
        self._count = 0
        for record in records:
            record.next = None
            record.owner = None
            record.release()
        return records
