"""
QDX Ticket Saver Module
=======================

Writes finalized tickets to CSV.

Output formats:

Ticket CSV (one row per ticket):
- Header row with the Ticket field names
- Line items, discounts and coupons flattened to ';'-separated entries
  (upc:quantity:price:amount for line items, the same plus the type flags
  for discounts, code:quantity:amount for coupons)

Line item report (one row per line item, '|' delimited by default):
    store_id|ticket_id|card_id|date|upc|quantity|price|cc|total
"""

import csv
import logging
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Union

from qdx_reader.models import Ticket

logger = logging.getLogger(__name__)

TICKET_FIELDS = [f.name for f in fields(Ticket)]
LINE_ITEM_FIELDS = ['store_id', 'ticket_id', 'card_id', 'date', 'upc',
                    'quantity', 'price', 'cc', 'total']


def default_output_path(input_path: Union[str, Path]) -> Path:
    """Input path with its extension replaced by .csv."""
    return Path(input_path).with_suffix('.csv')


class TicketSaver:
    """
    Saves finalized tickets to CSV files.

    Tracks statistics:
    - files_saved: CSV files written
    - rows_written: data rows written (headers excluded)
    - io_errors: file I/O errors encountered
    """

    def __init__(self, output_dir: Union[str, Path, None] = None, delimiter: str = '|'):
        """
        Args:
            output_dir: Directory for relative filenames (default: current directory)
            delimiter: Column separator for the line item report
        """
        self.output_dir = Path(output_dir) if output_dir else None
        self.delimiter = delimiter
        self.stats = {
            'files_saved': 0,
            'rows_written': 0,
            'io_errors': 0
        }
        logger.info(f"TicketSaver initialized - output dir: {self.output_dir or '.'}")

    def _resolve(self, filename: Union[str, Path]) -> Path:
        path = Path(filename)
        if self.output_dir and not path.is_absolute():
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / path
        return path

    def save_tickets_csv(self, tickets: List[Ticket], filename: Union[str, Path]) -> bool:
        """
        Save one row per ticket, header taken from the Ticket fields.

        Returns:
            True if save successful, False if an I/O error occurred
        """
        path = self._resolve(filename)
        try:
            with open(path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                writer.writerow(TICKET_FIELDS)
                for ticket in tickets:
                    writer.writerow(self._ticket_row(ticket))
                    self.stats['rows_written'] += 1

            self.stats['files_saved'] += 1
            logger.info(f"Saved {len(tickets)} tickets to CSV: {path}")
            return True

        except OSError as e:
            logger.error(f"Error saving tickets to {path}: {e}", exc_info=True)
            self.stats['io_errors'] += 1
            return False

    def save_line_items_csv(self, tickets: Iterable[Ticket], filename: Union[str, Path]) -> bool:
        """
        Save the line item report, one row per line item.

        Returns:
            True if save successful, False if an I/O error occurred
        """
        path = self._resolve(filename)
        count = 0
        try:
            with open(path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=LINE_ITEM_FIELDS, delimiter=self.delimiter)
                writer.writeheader()
                for row in self.line_item_rows(tickets):
                    writer.writerow(row)
                    count += 1

            self.stats['rows_written'] += count
            self.stats['files_saved'] += 1
            logger.info(f"Saved {count} line items to CSV: {path}")
            return True

        except OSError as e:
            logger.error(f"Error saving line items to {path}: {e}", exc_info=True)
            self.stats['io_errors'] += 1
            return False

    @staticmethod
    def line_item_rows(tickets: Iterable[Ticket]) -> Iterable[Dict]:
        for ticket in tickets:
            for item in ticket.line_items:
                yield {
                    'store_id': ticket.store_id,
                    'ticket_id': ticket.ticket_id,
                    'card_id': ticket.loyaltycard,
                    'date': _format_time(item.datetime),
                    'upc': item.upc,
                    'quantity': item.quantity,
                    'price': item.price,
                    'cc': ticket.account_number,
                    'total': ticket.total,
                }

    @staticmethod
    def _ticket_row(ticket: Ticket) -> List:
        row = []
        for name in TICKET_FIELDS:
            value = getattr(ticket, name)
            if name == 'line_items':
                value = ';'.join(f"{i.upc}:{i.quantity}:{i.price}:{i.amount}" for i in value)
            elif name == 'discounts':
                value = ';'.join(f"{d.upc}:{d.quantity}:{d.price}:{d.amount}:{d.discount_type}" for d in value)
            elif name == 'coupons':
                value = ';'.join(f"{c.coupon_code}:{c.quantity}:{c.amount}" for c in value)
            elif isinstance(value, datetime):
                value = _format_time(value)
            row.append('' if value is None else value)
        return row

    def get_stats(self) -> dict:
        """Get saver statistics."""
        return self.stats.copy()

    def reset_stats(self):
        """Reset all statistics counters to zero."""
        for key in self.stats:
            self.stats[key] = 0
        logger.debug("TicketSaver stats reset")


def _format_time(value) -> str:
    if value is None:
        return ''
    return value.strftime('%Y-%m-%d %H:%M:%S')
