"""
QDX Stream Scanner Module
=========================

Reads a QDX transaction log slot by slot and reassembles completed tickets.

Pipeline per 64-byte slot:
1. Decode tail (bytes 44-63) → session id + timestamp
2. Raw record hook (optional, tracing only)
3. Resolve opcode (byte 0, byte 1 for extended records)
4. Decode payload and fold it into the session's ticket
5. On a total record: finalize the session and hand accepted tickets to the sink

A read returning fewer than 64 bytes ends the scan. Errors raised by the byte
source itself propagate to the caller.
"""

import logging
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple, Union

from qdx_reader.aggregator import TicketAggregator
from qdx_reader.config import ScannerConfig
from qdx_reader.decoder import (
    RECORD_SIZE,
    MalformedRecordError,
    decode_slot_tail,
    decode_line_item,
    decode_clubcard,
    decode_payment,
    decode_location,
    decode_total,
    decode_discount,
    decode_coupon,
)
from qdx_reader.dispatch import RecordHandler, build_opcode_table, resolve
from qdx_reader.fields import TailData
from qdx_reader.models import Ticket, LineItem, DiscountItem, CouponItem

logger = logging.getLogger(__name__)

TicketSink = Callable[[Ticket], None]


class StreamScanner:
    """
    Single-pass scanner over a QDX byte source.

    Responsibilities:
    - Sequential 64-byte slot reads until end of stream or stop()
    - Tail decoding and opcode dispatch
    - Folding records into the TicketAggregator
    - Emitting accepted tickets to the sink in stream order
    - Statistics tracking and logging
    """

    def __init__(self, source: Union[str, Path, BinaryIO],
                 config: Optional[ScannerConfig] = None,
                 on_ticket: Optional[TicketSink] = None):
        """
        Args:
            source: Path to a log file, or a binary stream with read(n)
            config: Scanner options (defaults to ScannerConfig())
            on_ticket: Sink for accepted tickets; defaults to collecting them
                       in self.completed
        """
        self.source = source
        self.config = config or ScannerConfig()
        self.on_ticket = on_ticket or self._collect
        self.aggregator = TicketAggregator(self.config.loyalty_card_required)
        self.opcodes = build_opcode_table(self.config.enable_coupons)

        self.completed: List[Ticket] = []
        self.saved: List[Tuple[int, bytes]] = []
        self.done = False
        self.index = -1

        self._handlers = {
            RecordHandler.LINE_ITEM: self._line_item,
            RecordHandler.DISCOUNT: self._discount,
            RecordHandler.PAYMENT: self._payment,
            RecordHandler.TOTAL: self._total,
            RecordHandler.CLUBCARD: self._clubcard,
            RecordHandler.LOCATION: self._location,
            RecordHandler.COUPON: self._coupon,
        }

        self.stats = {
            'slots_read': 0,
            'bytes_read': 0,
            'records_dispatched': 0,
            'records_ignored': 0,
            'malformed_records': 0,
            'tickets_emitted': 0
        }

    def _collect(self, ticket: Ticket):
        self.completed.append(ticket)

    def stop(self):
        """Request the scan to halt before the next read."""
        self.done = True
        logger.info("Stop requested - scan will halt before next slot")

    def scan(self, on_ticket: Optional[TicketSink] = None) -> Optional[List[Tuple[int, bytes]]]:
        """
        Run the scan to completion.

        Args:
            on_ticket: Sink overriding the one given at construction, for this
                       scan only

        Returns:
            Retained (index, slot) pairs when debug is on or the scan was
            stopped, otherwise None

        The stop flag is cleared when the scan returns, so a later scan()
        resumes reading from the current stream position.
        """
        original_sink = self.on_ticket
        if on_ticket is not None:
            self.on_ticket = on_ticket

        try:
            if isinstance(self.source, (str, Path)):
                logger.info(f"Opening {self.source}")
                with open(self.source, 'rb') as stream:
                    self._scan_stream(stream)
            else:
                self._scan_stream(self.source)
        finally:
            self.on_ticket = original_sink
            stopped = self.done
            self.done = False

        logger.info(f"Scan finished: {self.stats['slots_read']:,} slots, "
                    f"{self.stats['tickets_emitted']:,} tickets, "
                    f"{len(self.aggregator):,} sessions without total")

        if self.config.debug or stopped:
            return self.saved
        return None

    def _scan_stream(self, stream: BinaryIO):
        self.index = -1
        while not self.done:
            slot = stream.read(RECORD_SIZE)
            if len(slot) < RECORD_SIZE:
                if slot:
                    logger.debug(f"Discarding {len(slot)} trailing bytes at end of stream")
                break

            self.index += 1
            self.stats['slots_read'] += 1
            self.stats['bytes_read'] += len(slot)
            self.process_slot(slot)

    def process_slot(self, slot: bytes):
        """Decode one 64-byte slot and dispatch it."""
        try:
            tail = decode_slot_tail(slot)
        except MalformedRecordError as e:
            self.stats['malformed_records'] += 1
            logger.warning(f"Slot {self.index}: {e} - skipped")
            return

        if self.config.raw_record_hook is not None:
            self.config.raw_record_hook(slot, tail)
        if self.config.debug:
            self.saved.append((self.index, slot))

        handler = resolve(slot, self.opcodes)
        if handler is None:
            self.stats['records_ignored'] += 1
            return

        try:
            self._handlers[handler](slot, tail)
        except MalformedRecordError as e:
            self.stats['malformed_records'] += 1
            logger.warning(f"Slot {self.index}: {e} - skipped")
            return
        self.stats['records_dispatched'] += 1

    def _ticket(self, tail: TailData) -> Ticket:
        return self.aggregator.get_or_create(self.aggregator.ticket_identifier(tail))

    def _line_item(self, slot: bytes, tail: TailData):
        record = decode_line_item(slot)
        self._ticket(tail).line_items.append(
            LineItem(record.upc, record.quantity, record.price, record.amount, tail.time))

    def _clubcard(self, slot: bytes, tail: TailData):
        self._ticket(tail).loyaltycard = decode_clubcard(slot).card_no

    def _payment(self, slot: bytes, tail: TailData):
        self._ticket(tail).account_number = decode_payment(slot).account

    def _location(self, slot: bytes, tail: TailData):
        self._ticket(tail).store_id = decode_location(slot).store_id

    def _discount(self, slot: bytes, tail: TailData):
        record = decode_discount(slot)
        self._ticket(tail).discounts.append(
            DiscountItem(record.upc, record.quantity, record.price, record.amount,
                         record.type_flags, tail.time))

    def _coupon(self, slot: bytes, tail: TailData):
        record = decode_coupon(slot)
        self._ticket(tail).coupons.append(
            CouponItem(record.code, record.quantity, record.amount, tail.time))

    def _total(self, slot: bytes, tail: TailData):
        total = decode_total(slot)
        ticket = self.aggregator.finalize(self.aggregator.ticket_identifier(tail), total, tail)
        if ticket is not None:
            self.stats['tickets_emitted'] += 1
            self.on_ticket(ticket)

    def get_stats(self) -> Dict:
        """Get scanner statistics."""
        return self.stats.copy()

    def reset_stats(self):
        """Reset statistics counters."""
        for key in self.stats:
            self.stats[key] = 0
        self.aggregator.reset_stats()
        logger.info("Scanner statistics reset")

    def log_statistics(self):
        """Log scanner and aggregator statistics."""
        logger.info("=" * 70)
        logger.info("QDX SCAN STATISTICS")
        logger.info("=" * 70)
        logger.info(f"Slots Read:           {self.stats['slots_read']:,}")
        logger.info(f"Bytes Read:           {self.stats['bytes_read']:,}")
        logger.info(f"Records Dispatched:   {self.stats['records_dispatched']:,}")
        logger.info(f"Records Ignored:      {self.stats['records_ignored']:,}")
        logger.info(f"Malformed Records:    {self.stats['malformed_records']:,}")
        logger.info(f"Tickets Emitted:      {self.stats['tickets_emitted']:,}")
        logger.info(f"Open Sessions:        {len(self.aggregator):,}")
        logger.info("-" * 70)
        logger.info("Aggregator:")
        for key, value in self.aggregator.get_stats().items():
            logger.info(f"  {key}: {value:,}")
        logger.info("=" * 70)
