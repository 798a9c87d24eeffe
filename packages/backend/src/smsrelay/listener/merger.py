"""Fragment merger — collapse one delivery into completed messages.

Learn: The network splits long SMS into several PDUs, and the source hands
us all of them in one batch. Fragments from the same sender are joined in
arrival order, with no separator. Senders keep the order in which they
first appear in the batch (dicts preserve insertion order).

Timestamp policy: every message in a batch gets the delivery timestamp of
the *last* fragment in the batch, not the last fragment of its own sender.
"""

from typing import Iterable

from smsrelay.schemas.sms import CompletedMessage, FragmentBatch, RawFragment


def merge_fragments(fragments: Iterable[RawFragment]) -> list[CompletedMessage]:
    """Group fragments by sender and join their bodies."""
    bodies: dict[str, list[str]] = {}
    timestamp = 0

    for fragment in fragments:
        bodies.setdefault(fragment.originating_address, []).append(fragment.body)
        timestamp = fragment.delivery_timestamp

    return [
        CompletedMessage(sender=sender, body="".join(parts), timestamp=timestamp)
        for sender, parts in bodies.items()
    ]


class FragmentMerger:
    """Stateless wrapper so the merger can be injected (and swapped in tests)."""

    def merge(self, batch: FragmentBatch | Iterable[RawFragment]) -> list[CompletedMessage]:
        if isinstance(batch, FragmentBatch):
            return merge_fragments(batch.fragments)
        return merge_fragments(batch)
