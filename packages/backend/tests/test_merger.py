"""Fragment merger tests.

Learn: Tests cover:
1. Fragments from one sender join in order, no separator
2. Several senders keep first-appearance order
3. Batch-wide last-fragment timestamp
4. Empty batch, empty sender, missing (null) address/body
5. Determinism — same input, same output
"""

from conftest import make_batch

from smsrelay.listener.merger import FragmentMerger, merge_fragments
from smsrelay.schemas.sms import CompletedMessage, FragmentBatch, RawFragment


def test_single_sender_fragments_join():
    """Two fragments from +1555 become one message."""
    batch = make_batch(("+1555", "Hi ", 100), ("+1555", "there", 200))

    result = FragmentMerger().merge(batch)

    assert result == [CompletedMessage(sender="+1555", body="Hi there", timestamp=200)]


def test_interleaved_senders_use_last_timestamp():
    """Senders keep first-appearance order; every message gets the batch's last timestamp."""
    batch = make_batch(("A", "x", 10), ("B", "y", 20), ("A", "z", 30))

    result = FragmentMerger().merge(batch)

    assert result == [
        CompletedMessage(sender="A", body="xz", timestamp=30),
        CompletedMessage(sender="B", body="y", timestamp=30),
    ]


def test_one_message_per_distinct_sender():
    batch = make_batch(
        ("A", "1", 1), ("B", "2", 2), ("C", "3", 3),
        ("B", "4", 4), ("A", "5", 5), ("C", "6", 6),
    )

    result = merge_fragments(batch.fragments)

    assert [m.sender for m in result] == ["A", "B", "C"]
    assert [m.body for m in result] == ["15", "24", "36"]


def test_timestamp_is_last_in_batch_not_max():
    """Out-of-order timestamps: the last fragment wins, not the largest."""
    batch = make_batch(("A", "x", 500), ("A", "y", 100))

    (message,) = FragmentMerger().merge(batch)

    assert message.timestamp == 100


def test_empty_batch_yields_nothing():
    assert FragmentMerger().merge(FragmentBatch()) == []
    assert merge_fragments([]) == []


def test_empty_sender_is_a_valid_group():
    batch = make_batch(("", "anon ", 1), ("X", "named", 2), ("", "again", 3))

    result = FragmentMerger().merge(batch)

    assert result[0] == CompletedMessage(sender="", body="anon again", timestamp=3)
    assert result[1].sender == "X"


def test_empty_bodies_merge_normally():
    batch = make_batch(("A", "", 1), ("A", "", 2))

    assert FragmentMerger().merge(batch) == [
        CompletedMessage(sender="A", body="", timestamp=2),
    ]


def test_null_address_and_body_become_empty():
    """The source may omit address or body on a PDU."""
    batch = FragmentBatch.model_validate({
        "fragments": [
            {"originating_address": None, "body": "hello", "delivery_timestamp": 7},
            {"originating_address": None, "body": None, "delivery_timestamp": 8},
        ],
    })

    assert FragmentMerger().merge(batch) == [
        CompletedMessage(sender="", body="hello", timestamp=8),
    ]


def test_merge_accepts_plain_fragment_list():
    fragments = [RawFragment(originating_address="A", body="x", delivery_timestamp=1)]

    assert FragmentMerger().merge(fragments) == [
        CompletedMessage(sender="A", body="x", timestamp=1),
    ]


def test_merge_is_deterministic_and_pure():
    batch = make_batch(("A", "x", 10), ("B", "y", 20), ("A", "z", 30))
    before = batch.model_dump()
    merger = FragmentMerger()

    first = merger.merge(batch)
    second = merger.merge(batch)

    assert first == second
    assert batch.model_dump() == before


def test_completed_message_event_record():
    message = CompletedMessage(sender="A", body="xz", timestamp=30)

    assert message.to_event() == {
        "type": "sms.received",
        "sender": "A",
        "body": "xz",
        "timestamp": 30,
    }
