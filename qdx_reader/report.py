"""
Ticket summaries with pandas.

Builds a line-item DataFrame from finalized tickets (or from a saved line item
report) and rolls it up per store.
"""

import logging
from pathlib import Path
from typing import Iterable, Union

import pandas as pd

from qdx_reader.models import Ticket
from qdx_reader.saver import LINE_ITEM_FIELDS, TicketSaver

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ['tickets', 'line_items', 'quantity', 'revenue']


def line_items_frame(tickets: Iterable[Ticket]) -> pd.DataFrame:
    """One row per line item, same columns as the line item report."""
    return pd.DataFrame(list(TicketSaver.line_item_rows(tickets)), columns=LINE_ITEM_FIELDS)


def load_line_items(path: Union[str, Path], delimiter: str = '|') -> pd.DataFrame:
    df = pd.read_csv(path, sep=delimiter, dtype={'upc': str, 'store_id': str, 'cc': str},
                     low_memory=False)
    logger.info(f"Loaded {len(df):,} line items from {path}")
    return df


def store_summary(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Per-store totals: distinct tickets, line items, units sold and revenue.

    Revenue sums each ticket total once, in minor units.
    """
    if frame.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS, index=pd.Index([], name='store_id'))

    per_ticket = frame.drop_duplicates(['store_id', 'ticket_id'])
    summary = pd.DataFrame({
        'tickets': frame.groupby('store_id')['ticket_id'].nunique(),
        'line_items': frame.groupby('store_id').size(),
        'quantity': frame.groupby('store_id')['quantity'].sum(),
        'revenue': per_ticket.groupby('store_id')['total'].sum(),
    })
    return summary[SUMMARY_COLUMNS].sort_index()
