"""
QDX Opcode Dispatch
===================

Maps the leading byte(s) of a record to the handler responsible for it.

The table is two-level: the primary key is byte 0 as a two-digit hex code,
the value is either a ``RecordHandler`` or a nested table keyed by byte 1.
Codes compare case-insensitively. Opcodes without an entry are expected (the
log carries many record types we do not need) and resolve to ``None``.

Known primary opcodes:
    01  line item
    02  department item   (not handled)
    03  discount
    04  payment
    05  total
    06  tax               (not handled)
    08  coupon            (off unless enabled)
    21  ticket frame      (not handled)
    50  transaction frame (not handled)
    60  extended records: 1B clubcard, 31 location
"""

import logging
from enum import Enum
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class RecordHandler(Enum):
    LINE_ITEM = 'line_item'
    DISCOUNT = 'discount'
    PAYMENT = 'payment'
    TOTAL = 'total'
    CLUBCARD = 'clubcard'
    LOCATION = 'location'
    COUPON = 'coupon'


OpcodeTable = Dict[str, Union[RecordHandler, Dict[str, RecordHandler]]]

DEFAULT_OPCODES: OpcodeTable = {
    '01': RecordHandler.LINE_ITEM,
    '03': RecordHandler.DISCOUNT,
    '04': RecordHandler.PAYMENT,
    '05': RecordHandler.TOTAL,
    '60': {
        '1B': RecordHandler.CLUBCARD,
        '31': RecordHandler.LOCATION,
    },
}

COUPON_OPCODE = '08'


def build_opcode_table(enable_coupons: bool = False) -> OpcodeTable:
    """
    Return a fresh copy of the default table.

    Coupon records are decoded only when ``enable_coupons`` is set.
    """
    table: OpcodeTable = {}
    for code, entry in DEFAULT_OPCODES.items():
        table[code] = dict(entry) if isinstance(entry, dict) else entry
    if enable_coupons:
        table[COUPON_OPCODE] = RecordHandler.COUPON
        logger.info(f"Coupon dispatch enabled (opcode {COUPON_OPCODE})")
    return table


def _lookup(table: dict, code: str):
    code = code.upper()
    for key, value in table.items():
        if key.upper() == code:
            return value
    return None


def resolve(slot: bytes, table: Optional[OpcodeTable] = None) -> Optional[RecordHandler]:
    """
    Resolve the handler for a slot, or None if the opcode is not in the table.
    """
    if table is None:
        table = DEFAULT_OPCODES
    if not slot:
        return None

    entry = _lookup(table, slot[0:1].hex())
    if isinstance(entry, RecordHandler):
        return entry
    if isinstance(entry, dict):
        if len(slot) < 2:
            return None
        subentry = _lookup(entry, slot[1:2].hex())
        if isinstance(subentry, RecordHandler):
            return subentry
    return None
