"""
QDX Ticket Aggregator Tests
===========================

Test Coverage:
- Session identifier from tail (pos_number + ticket_number)
- get_or_create idempotence
- finalize removes the session exactly once
- Rejection rules: loyalty card, voided, zero items, implausible total
- Accepted ticket field population
- Statistics tracking
"""

import unittest
from datetime import datetime

from qdx_reader.aggregator import MAX_TICKET_TOTAL, TicketAggregator
from qdx_reader.decoder import decode_tail, decode_total
from qdx_reader.models import LineItem
from tests import builders


class TestTicketAggregator(unittest.TestCase):

    def setUp(self):
        self.aggregator = TicketAggregator()
        self.tail = decode_tail(builders.tail(ticket_number=4503, pos_number=12))
        self.session_id = TicketAggregator.ticket_identifier(self.tail)

    def _prepare(self, loyaltycard='LOYAL123'):
        ticket = self.aggregator.get_or_create(self.session_id)
        ticket.loyaltycard = loyaltycard
        ticket.line_items.append(LineItem('00000000012345', 1, 500, 500))
        return ticket

    def test_ticket_identifier(self):
        self.assertEqual(self.session_id, '12_4503')

    def test_get_or_create_is_idempotent(self):
        first = self.aggregator.get_or_create(self.session_id)
        first.line_items.append(LineItem('01', 1, 1, 1))
        second = self.aggregator.get_or_create(self.session_id)

        self.assertIs(first, second)
        self.assertEqual(len(second.line_items), 1)
        self.assertEqual(len(self.aggregator), 1)
        self.assertEqual(self.aggregator.get_stats()['tickets_created'], 1)

    def test_new_ticket_has_empty_collections(self):
        ticket = self.aggregator.get_or_create('1_1')
        self.assertEqual(ticket.line_items, [])
        self.assertEqual(ticket.discounts, [])
        self.assertEqual(ticket.coupons, [])
        self.assertIsNone(ticket.loyaltycard)

    def test_accepted_ticket(self):
        self._prepare()
        total = decode_total(builders.total(item_count=1, amount=500, tax_value=35))

        ticket = self.aggregator.finalize(self.session_id, total, self.tail)

        self.assertIsNotNone(ticket)
        self.assertEqual(ticket.ticket_id, '12_4503')
        self.assertEqual(ticket.terminal_id, 12)
        self.assertEqual(ticket.transaction_id, 4503)
        self.assertEqual(ticket.total, 500)
        self.assertEqual(ticket.tax_value, 35)
        self.assertEqual(ticket.item_count, 1)
        self.assertEqual(ticket.purchase_time, datetime(1999, 12, 31, 23, 59, 58))
        self.assertNotIn(self.session_id, self.aggregator)

    def test_zero_item_count_rejected(self):
        """Session 12_4503 with one line item but item_count=0 is dropped."""
        self._prepare()
        total = decode_total(builders.total(item_count=0))

        self.assertIsNone(self.aggregator.finalize(self.session_id, total, self.tail))
        self.assertNotIn(self.session_id, self.aggregator)
        self.assertEqual(self.aggregator.get_stats()['rejected_empty'], 1)

    def test_implausible_total_rejected(self):
        self._prepare()
        total = decode_total(builders.total(amount=2000000))

        self.assertIsNone(self.aggregator.finalize(self.session_id, total, self.tail))
        self.assertEqual(self.aggregator.get_stats()['rejected_total'], 1)

    def test_total_at_ceiling_accepted(self):
        self._prepare()
        total = decode_total(builders.total(amount=MAX_TICKET_TOTAL))
        self.assertIsNotNone(self.aggregator.finalize(self.session_id, total, self.tail))

    def test_voided_rejected(self):
        self._prepare()
        total = decode_total(builders.total(voided=True, item_count=2))

        self.assertIsNone(self.aggregator.finalize(self.session_id, total, self.tail))
        self.assertEqual(self.aggregator.get_stats()['rejected_voided'], 1)

    def test_missing_loyalty_card_rejected(self):
        for card in (None, '', '   '):
            with self.subTest(card=card):
                self._prepare(loyaltycard=card)
                total = decode_total(builders.total())
                self.assertIsNone(self.aggregator.finalize(self.session_id, total, self.tail))
                self.assertNotIn(self.session_id, self.aggregator)

    def test_loyalty_card_optional(self):
        aggregator = TicketAggregator(loyalty_card_required=False)
        aggregator.get_or_create(self.session_id)
        total = decode_total(builders.total())

        ticket = aggregator.finalize(self.session_id, total, self.tail)
        self.assertIsNotNone(ticket)
        self.assertIsNone(ticket.loyaltycard)

    def test_second_finalize_starts_fresh(self):
        """A repeated total never resurrects the discarded ticket."""
        aggregator = TicketAggregator(loyalty_card_required=False)
        ticket = aggregator.get_or_create(self.session_id)
        ticket.store_id = 'STORE1'
        ticket.line_items.append(LineItem('01', 1, 1, 1))
        total = decode_total(builders.total())

        first = aggregator.finalize(self.session_id, total, self.tail)
        second = aggregator.finalize(self.session_id, total, self.tail)

        self.assertIsNot(first, second)
        self.assertIsNone(second.store_id)
        self.assertEqual(second.line_items, [])
        self.assertEqual(len(aggregator), 0)

    def test_pending_ids_and_stats_reset(self):
        self.aggregator.get_or_create('1_1')
        self.aggregator.get_or_create('2_7')
        self.assertEqual(sorted(self.aggregator.pending_ids()), ['1_1', '2_7'])

        self.aggregator.reset_stats()
        self.assertTrue(all(v == 0 for v in self.aggregator.get_stats().values()))


if __name__ == '__main__':
    unittest.main(verbosity=2)
