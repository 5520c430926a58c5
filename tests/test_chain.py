from __future__ import annotations

import pytest

from eztags import ChainNotTerminated, RecordChain
from eztags.kinds import CIRCLE, LINE


def _lines(count: int):
    return [LINE.new_record(handle=index + 1, start=(0.0, 0.0, 0.0), end=(index + 1.0, 0.0, 0.0)) for index in range(count)]


def test_chain_iterates_in_order_and_restarts() -> None:
    records = _lines(3)
    chain = RecordChain("LINE", records)

    assert [record.handle for record in chain] == [1, 2, 3]
    assert [record.handle for record in chain] == [1, 2, 3]
    assert len(chain) == 3
    assert chain.head is records[0]
    assert chain.tail is records[2]
    assert records[0].next is records[1]
    assert all(record.owner is chain for record in records)


def test_empty_chain() -> None:
    chain = RecordChain()

    assert list(chain) == []
    assert chain.head is None
    assert chain.free_all() == []
    assert repr(chain) == "RecordChain(kind=None, records=0)"


def test_free_all_releases_each_record_once_in_order() -> None:
    records = _lines(3)
    chain = RecordChain("LINE", records)

    freed = chain.free_all()

    assert freed == records
    assert [record.handle for record in freed] == [1, 2, 3]
    assert all(record.released for record in freed)
    assert all(record.next is None and record.owner is None for record in freed)
    assert len(chain) == 0
    assert list(chain) == []


def test_free_refuses_record_with_successor() -> None:
    records = _lines(3)
    chain = RecordChain("LINE", records)

    with pytest.raises(ChainNotTerminated):
        chain.free(records[1])

    assert not any(record.released for record in records)
    assert [record.handle for record in chain] == [1, 2, 3]
    assert records[1].dxf["end"] == (2.0, 0.0, 0.0)


def test_free_releases_the_tail() -> None:
    records = _lines(2)
    chain = RecordChain("LINE", records)

    chain.free(records[1])

    assert records[1].released
    assert records[0].next is None
    assert chain.tail is records[0]
    assert len(chain) == 1

    chain.free(records[0])
    assert chain.head is None
    assert len(chain) == 0


def test_owned_record_cannot_be_released_directly() -> None:
    records = _lines(3)
    chain = RecordChain("LINE", records)

    with pytest.raises(ValueError, match="owned by a chain"):
        records[2].release()

    assert not records[2].released
    assert len(chain) == 3
    assert chain.free_all() == records
    assert all(record.released for record in records)


def test_free_all_releases_nothing_when_a_record_was_taken_over() -> None:
    records = _lines(3)
    chain = RecordChain("LINE", records)
    records[1].owner = None

    with pytest.raises(RuntimeError, match="no longer owned"):
        chain.free_all()

    assert len(chain) == 3
    assert [record.handle for record in chain] == [1, 2, 3]
    assert not any(record.released for record in records)


def test_free_rejects_foreign_record() -> None:
    chain = RecordChain("LINE", _lines(1))

    with pytest.raises(ValueError, match="does not belong"):
        chain.free(_lines(1)[0])


def test_append_rejects_wrong_kind_and_shared_records() -> None:
    chain = RecordChain("LINE")
    other = RecordChain("LINE")
    (line,) = _lines(1)
    chain.append(line)

    with pytest.raises(ValueError, match="CIRCLE"):
        chain.append(CIRCLE.new_record())
    with pytest.raises(ValueError, match="already belongs"):
        other.append(line)


def test_append_rejects_linked_or_released_records() -> None:
    first, second = _lines(2)
    first.next = second
    chain = RecordChain()

    with pytest.raises(ChainNotTerminated):
        chain.append(first)

    second.release()
    with pytest.raises(ValueError, match="released"):
        chain.append(second)


def test_untyped_chain_accepts_mixed_kinds() -> None:
    chain = RecordChain(records=[LINE.new_record(), CIRCLE.new_record()])

    assert [record.dxftype for record in chain] == ["LINE", "CIRCLE"]


def test_record_release_rules() -> None:
    first, second = _lines(2)
    first.next = second

    with pytest.raises(ChainNotTerminated, match="LINE 1"):
        first.release()
    assert not first.released

    second.release()
    assert second.dxf == {}
    with pytest.raises(RuntimeError):
        second.release()
