"""Status transition tables by entity type."""

from collections.abc import Iterable, Mapping
from enum import Enum

from charter_api.db.enums import ContactStatus, EmailDeliveryStatus, QuoteStatus


def _value(status: str | Enum) -> str:
    return status.value if isinstance(status, Enum) else status


class TransitionTable:
    """
    Allowed next statuses for one entity type.

    Every status of the enumeration must appear as a key; terminal statuses map
    to an empty tuple. Lookups with a value outside the enumeration raise
    ``KeyError``.
    """

    def __init__(
        self,
        statuses: Iterable[str | Enum],
        transitions: Mapping[str | Enum, Iterable[str | Enum]],
    ) -> None:
        self.statuses: tuple[str, ...] = tuple(_value(s) for s in statuses)
        table = {_value(k): tuple(_value(t) for t in v) for k, v in transitions.items()}

        missing = set(self.statuses) - set(table)
        if missing:
            raise ValueError(f"Transition table missing statuses: {sorted(missing)}")
        for source, targets in table.items():
            unknown = (set(targets) | {source}) - set(self.statuses)
            if unknown:
                raise ValueError(f"Unknown statuses in transition table: {sorted(unknown)}")

        self._table = table

    def allowed_from(self, status: str | Enum) -> list[str]:
        """Legal targets for ``status`` in declaration order."""
        return list(self._table[_value(status)])

    def is_valid_transition(self, from_status: str | Enum, to_status: str | Enum) -> bool:
        target = _value(to_status)
        if target not in self.statuses:
            raise KeyError(target)
        return target in self._table[_value(from_status)]

    def is_terminal(self, status: str | Enum) -> bool:
        return not self._table[_value(status)]

    def terminal_statuses(self) -> list[str]:
        return [s for s in self.statuses if not self._table[s]]

    def as_dict(self) -> dict[str, list[str]]:
        return {status: list(targets) for status, targets in self._table.items()}


# Quotes may skip ahead: any non-terminal status can move to any later stage,
# and every non-terminal status can be cancelled.
QUOTE_STATUS_ORDER: list[QuoteStatus] = [
    QuoteStatus.NEW_REQUEST,
    QuoteStatus.REVIEWING,
    QuoteStatus.QUOTE_SENT,
    QuoteStatus.AWAITING_CONFIRMATION,
    QuoteStatus.CONFIRMED,
    QuoteStatus.PAYMENT_PENDING,
    QuoteStatus.PAID,
    QuoteStatus.COMPLETED,
]


def _forward_transitions(
    order: list[QuoteStatus], cancelled: QuoteStatus
) -> dict[QuoteStatus, list[QuoteStatus]]:
    transitions: dict[QuoteStatus, list[QuoteStatus]] = {}
    for index, status in enumerate(order):
        later = order[index + 1 :]
        transitions[status] = later + [cancelled] if later else []
    transitions[cancelled] = []
    return transitions


QUOTE_TRANSITIONS = TransitionTable(
    QuoteStatus,
    _forward_transitions(QUOTE_STATUS_ORDER, QuoteStatus.CANCELLED),
)

CONTACT_TRANSITIONS = TransitionTable(
    ContactStatus,
    {
        ContactStatus.PENDING: [ContactStatus.RESPONDED, ContactStatus.CLOSED],
        ContactStatus.RESPONDED: [ContactStatus.CLOSED],
        ContactStatus.CLOSED: [],
    },
)

# Delivery records only move forward; bounced/failed/complained are final
# except that a delivered email can still bounce or draw a complaint.
EMAIL_DELIVERY_TRANSITIONS = TransitionTable(
    EmailDeliveryStatus,
    {
        EmailDeliveryStatus.PENDING: [
            EmailDeliveryStatus.SENT,
            EmailDeliveryStatus.DELIVERED,
            EmailDeliveryStatus.BOUNCED,
            EmailDeliveryStatus.FAILED,
            EmailDeliveryStatus.COMPLAINED,
        ],
        EmailDeliveryStatus.SENT: [
            EmailDeliveryStatus.DELIVERED,
            EmailDeliveryStatus.BOUNCED,
            EmailDeliveryStatus.FAILED,
            EmailDeliveryStatus.COMPLAINED,
        ],
        EmailDeliveryStatus.DELIVERED: [
            EmailDeliveryStatus.BOUNCED,
            EmailDeliveryStatus.COMPLAINED,
        ],
        EmailDeliveryStatus.BOUNCED: [],
        EmailDeliveryStatus.FAILED: [],
        EmailDeliveryStatus.COMPLAINED: [],
    },
)

QUOTE_EARLY_STATUSES: frozenset[str] = frozenset(
    {
        QuoteStatus.NEW_REQUEST.value,
        QuoteStatus.REVIEWING.value,
        QuoteStatus.QUOTE_SENT.value,
        QuoteStatus.AWAITING_CONFIRMATION.value,
    }
)

CONTACT_EARLY_STATUSES: frozenset[str] = frozenset({ContactStatus.PENDING.value})
