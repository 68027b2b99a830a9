"""
QDX Ticket Aggregator Module
============================

Holds in-progress tickets keyed by session id and finalizes them when the
session's total record arrives.

Session id:
    "{pos_number}_{ticket_number}" taken from the record tail. Both values are
    stable across every record of one transaction.

Finalization (total record):
1. The session is removed from the map, whatever the outcome
2. Rejected if a loyalty card is required and the ticket has none
3. Rejected if the total's voided-ticket bit is set
4. Rejected if the item count is zero
5. Rejected if the amount exceeds MAX_TICKET_TOTAL (misaligned reads)
6. Otherwise identifiers, totals and purchase time are filled in

Sessions that never see a total stay in the map until the scan ends.
"""

import logging
from typing import Dict, List, Optional

from qdx_reader.fields import TailData, TotalRecord
from qdx_reader.models import Ticket

logger = logging.getLogger(__name__)

# Sanity ceiling in minor units; anything larger is assumed to be bad bits
MAX_TICKET_TOTAL = 1000000


class TicketAggregator:
    """
    Owns every in-progress ticket of one scan.

    Tracks statistics:
    - tickets_created: sessions opened by get_or_create
    - tickets_finalized: total records processed
    - tickets_accepted: tickets returned by finalize
    - rejected_no_loyalty / rejected_voided / rejected_empty / rejected_total
    """

    def __init__(self, loyalty_card_required: bool = True):
        self.loyalty_card_required = loyalty_card_required
        self.tickets: Dict[str, Ticket] = {}
        self.stats = {
            'tickets_created': 0,
            'tickets_finalized': 0,
            'tickets_accepted': 0,
            'rejected_no_loyalty': 0,
            'rejected_voided': 0,
            'rejected_empty': 0,
            'rejected_total': 0
        }
        logger.info(f"TicketAggregator initialized (loyalty card required: {loyalty_card_required})")

    @staticmethod
    def ticket_identifier(tail: TailData) -> str:
        return f"{tail.pos_number}_{tail.ticket_number}"

    def get_or_create(self, session_id: str) -> Ticket:
        """
        Return the in-progress ticket for a session, creating an empty one on
        first reference.
        """
        ticket = self.tickets.get(session_id)
        if ticket is None:
            ticket = Ticket()
            self.tickets[session_id] = ticket
            self.stats['tickets_created'] += 1
            logger.debug(f"Opened session {session_id}")
        return ticket

    def finalize(self, session_id: str, total: TotalRecord, tail: TailData) -> Optional[Ticket]:
        """
        Close a session and return the completed ticket, or None if rejected.

        Args:
            session_id: Session key (see ticket_identifier)
            total: Decoded total record for the session
            tail: Tail of the total record (identifiers + purchase time)

        Returns:
            The completed Ticket, or None if any acceptance rule failed
        """
        ticket = self.tickets.pop(session_id, None)
        if ticket is None:
            ticket = Ticket()
            logger.debug(f"Total for unknown session {session_id}, finalizing empty ticket")
        self.stats['tickets_finalized'] += 1

        if self.loyalty_card_required and not (ticket.loyaltycard or '').strip():
            self.stats['rejected_no_loyalty'] += 1
            logger.debug(f"Rejected {session_id}: no loyalty card")
            return None

        if total.voided_ticket == 1:
            self.stats['rejected_voided'] += 1
            logger.debug(f"Rejected {session_id}: voided ticket")
            return None

        if total.item_count == 0:
            self.stats['rejected_empty'] += 1
            logger.debug(f"Rejected {session_id}: item count is zero")
            return None

        if total.amount > MAX_TICKET_TOTAL:
            self.stats['rejected_total'] += 1
            logger.warning(f"Rejected {session_id}: implausible total {total.amount}")
            return None

        ticket.ticket_id = session_id
        ticket.terminal_id = tail.pos_number
        ticket.transaction_id = tail.ticket_number
        ticket.total = total.amount
        ticket.tax_value = total.tax_value
        ticket.item_count = total.item_count
        ticket.purchase_time = tail.time

        self.stats['tickets_accepted'] += 1
        logger.debug(f"Completed ticket {session_id}: total={ticket.total}, "
                     f"items={ticket.item_count}, lines={len(ticket.line_items)}")
        return ticket

    def pending_ids(self) -> List[str]:
        """Session ids still waiting for a total record."""
        return list(self.tickets.keys())

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.tickets

    def __len__(self) -> int:
        return len(self.tickets)

    def get_stats(self) -> Dict:
        """Get aggregator statistics."""
        return self.stats.copy()

    def reset_stats(self):
        """Reset statistics counters."""
        for key in self.stats:
            self.stats[key] = 0
        logger.info("Aggregator statistics reset")
