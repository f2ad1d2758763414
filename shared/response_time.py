"""
Average time between an outbound text and the customer's reply.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

MAX_RESPONSE_SECONDS = 86400

GROUP_COLUMNS = {
    "repair_order": "roId",
    "recipient": "recipientId",
}


@dataclass(frozen=True)
class MessageEvent:
    group_key: Hashable
    sent_date: datetime
    generated_from: Optional[str]
    type: Optional[str]
    has_attachment: bool = False

    @property
    def is_outbound(self) -> bool:
        return self.generated_from == "Comunicator" and self.type == "Not-Pending"

    @property
    def is_inbound(self) -> bool:
        return self.generated_from == "Reply" and self.type == "Reply"


def events_from_rows(rows: Iterable[Mapping[str, Any]], group_by: str = "repair_order") -> List[MessageEvent]:
    """
    Build message events from event query rows.
    Args:
        rows: Rows with sentDate, generatedFrom, type, attachment and the grouping column.
        group_by (str): "repair_order" or "recipient".
    Returns:
        list: Events in row order. The query is expected to sort by (group, sentDate).
    """
    try:
        column = GROUP_COLUMNS[group_by]
    except KeyError:
        raise ValueError(f"Unknown grouping {group_by!r}") from None
    return [
        MessageEvent(
            group_key=row[column],
            sent_date=row["sentDate"],
            generated_from=row.get("generatedFrom"),
            type=row.get("type"),
            has_attachment=row.get("attachment") is not None,
        )
        for row in rows
    ]


def pair_responses(
    events: Iterable[MessageEvent], max_seconds: float = MAX_RESPONSE_SECONDS
) -> Iterator[Tuple[Hashable, float]]:
    """
    Yield (group_key, elapsed_seconds) for every outbound -> inbound response.

    An inbound event only counts when the event right before it in the sequence
    is its group's pending outbound and that outbound carried an attachment.
    Pairs of max_seconds or more are dropped.
    """
    pending: Dict[Hashable, MessageEvent] = {}
    previous = None
    for event in events:
        if event.is_outbound:
            pending[event.group_key] = event
        elif event.is_inbound:
            outbound = pending.get(event.group_key)
            if outbound is not None and previous is outbound and outbound.has_attachment:
                del pending[event.group_key]
                elapsed = (event.sent_date - outbound.sent_date).total_seconds()
                if elapsed < max_seconds:
                    yield event.group_key, elapsed
        previous = event


def average_response_times(
    events: Iterable[MessageEvent],
    per_group: bool = True,
    max_seconds: float = MAX_RESPONSE_SECONDS,
) -> Union[Dict[Hashable, float], Optional[float]]:
    """
    Average response time in seconds.
    Args:
        events: Events sorted ascending by (group_key, sent_date).
        per_group (bool): Average per group key, or across every pair.
        max_seconds: Pairs at or above this duration are not counted.
    Returns:
        dict | float | None: {group_key: average} for groups with at least one pair
        when per_group, otherwise the overall average or None when nothing paired.
    """
    samples: Dict[Hashable, List[float]] = defaultdict(list)
    for group_key, elapsed in pair_responses(events, max_seconds):
        samples[group_key if per_group else None].append(elapsed)

    if per_group:
        return {key: sum(values) / len(values) for key, values in samples.items()}
    values = samples.get(None)
    if not values:
        return None
    return sum(values) / len(values)
