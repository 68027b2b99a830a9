"""
QDX Record Fields
=================

Typed structures for the fixed-layout records found in a QDX transaction log.

Every physical record is a 64-byte slot:
- Bytes 0-43:  type-tagged payload (opcode at byte 0)
- Bytes 44-63: tail block (ticket/POS identifiers + BCD timestamp)

All multi-byte integers are Little-Endian. Flag bytes whose individual bits are
documented are exposed as named bits (MSB first); the rest are kept as raw
integers until their meaning is confirmed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class BcdDateTime:
    """
    Packed BCD timestamp (6 bytes, 12 nibbles).

    Byte layout (high nibble first):
        YY MM DD hh mm ss

    Decoded year is ``year1 * 10 + 1900 + year2``. Every other component is
    ``tens * 10 + ones``.

    The decoded ``time`` is computed on first access and cached until the
    backing bytes are cleared or re-populated. Digits that do not form a valid
    date fall back to the wall-clock time at decode and log a warning.
    """

    SIZE = 6

    def __init__(self, raw: bytes = b'\x00' * 6):
        self._raw = b''
        self._datetime: Optional[datetime] = None
        self.populate(raw)

    def populate(self, raw: bytes):
        """Replace the backing bytes and drop the cached timestamp."""
        if len(raw) < self.SIZE:
            raise ValueError(f"BCD timestamp needs {self.SIZE} bytes, got {len(raw)}")
        self._raw = bytes(raw[:self.SIZE])
        self._datetime = None

    def clear(self):
        """Reset to all-zero digits and drop the cached timestamp."""
        self.populate(b'\x00' * self.SIZE)

    @property
    def raw(self) -> bytes:
        return self._raw

    @property
    def digits(self) -> Tuple[int, ...]:
        """The 12 nibbles in wire order."""
        out = []
        for byte in self._raw:
            out.append(byte >> 4)
            out.append(byte & 0x0F)
        return tuple(out)

    def components(self) -> Tuple[int, int, int, int, int, int]:
        """(year, month, day, hour, minute, second) before validation."""
        d = self.digits
        return (
            d[0] * 10 + 1900 + d[1],
            d[2] * 10 + d[3],
            d[4] * 10 + d[5],
            d[6] * 10 + d[7],
            d[8] * 10 + d[9],
            d[10] * 10 + d[11],
        )

    @property
    def is_cached(self) -> bool:
        return self._datetime is not None

    @property
    def time(self) -> datetime:
        if self._datetime is None:
            try:
                self._datetime = datetime(*self.components())
            except ValueError:
                logger.warning(f"Bad BcdDateTime: {self!r} - using current time")
                self._datetime = datetime.now()
        return self._datetime

    def __repr__(self):
        return f"BcdDateTime(raw={self._raw.hex()}, components={self.components()})"


@dataclass(frozen=True)
class TailData:
    """Trailing 20-byte metadata block present on every record."""
    seq2: int
    flag: int
    external_pos_number: int
    flag_options: int
    ticket_number: int
    raw_datetime: BcdDateTime
    options: int
    cashier_number: int
    pos_number: int
    seq_no: int
    pc_no_tv_no: int
    unused_zero: int  # reserved

    @property
    def time(self) -> datetime:
        return self.raw_datetime.time


@dataclass(frozen=True)
class LineItemRecord:
    opcode: int
    code: bytes
    flag1: int
    flag2: int
    flag3: int
    flag4: int
    flag5: int
    department_number: int
    multi_sell_unit: int
    return_type: int
    tax_pointer: int
    quantity: int
    price: int
    amount: int
    no_tax_price: int
    no_tax_amount: int
    return_surcharge_percent: float
    product_code: int
    flags: int

    @property
    def upc(self) -> str:
        return self.code.hex()


@dataclass(frozen=True)
class ClubcardRecord:
    opcode: int
    function: int
    flag1: int
    scheme_no: int
    card_no: str
    # remaining bytes of the layout are not decoded


@dataclass(frozen=True)
class PaymentRecord:
    opcode: int
    media: int
    flag1: int
    flag2: int
    flag3: int
    flag4: int
    type_field: int
    amount: int
    foreign_amount: int
    foreign_rate: int
    issue_date: int  # storage format unknown, kept opaque
    account_number: bytes

    @property
    def account(self) -> str:
        """Masked account identifier: hex of the final two bytes (last 4 digits)."""
        return self.account_number[-2:].hex()


@dataclass(frozen=True)
class LocationRecord:
    opcode: int
    subopcode: int
    flag1: int
    store_id: str


@dataclass(frozen=True)
class TotalRecord:
    opcode: int
    # Flag 1
    ticket_total: int
    voided_ticket: int
    saved_ticket: int
    recalled_transaction: int
    drive_off: int
    quick_store: int
    pc_info: int
    tender_purchase: int

    flag2: int
    ticket_number: int
    tax_value: int
    item_count: int
    amount: int


@dataclass(frozen=True)
class DiscountRecord:
    """
    Discount applied to an item, department or the whole ticket.

    Flag bytes are kept raw; documented bits (MSB first):
        flag_1: info_transaction, non_merchandise, subtract, cancel, negative,
                upcharge, additive, delivery_charges
        flag_2: manual, type_percent, cost_plus, fs_payment, store_promotion,
                total_transaction_discount, plu_transaction_discount,
                department_transaction_discount
        flag_3: promotion, reduction, offer, multi_saver, ext_promotion,
                not_net_promotion, member_discount, discount_flag
        flag_4: points_given, customer_account_discount, ext_trs,
                automatic_discount, delayed_promotion, report_as_tender,
                not_used_optnot_net_fx, staff_discount
    """
    opcode: int
    item_code: bytes
    department_number: int
    flag_1: bytes
    flag_2: bytes
    flag_3: bytes
    discount_type: int
    percent: float
    return_type: int
    tax_pointer_or_discount_item: int
    quantity: int
    price: int
    amount: int
    flag_4: bytes
    multiple_selling_unit: int
    tender: int
    no_tax_amount: int
    return_surcharge_percentage: float

    @property
    def upc(self) -> str:
        return self.item_code.hex()

    @property
    def type_flags(self) -> str:
        # all four flag bytes rolled up, usable as a discount type key
        return (self.flag_1 + self.flag_2 + self.flag_3 + self.flag_4).hex()


@dataclass(frozen=True)
class CouponRecord:
    opcode: int

    # Flag 1
    subtract: int
    cancel: int
    suppress_bonus_coupon: int
    ext_coupon_information_transaction: int
    department_net: int
    bonus_coupon_followed: int
    cost_plus: int
    chained_previous_item: int

    # Flag 2
    store_coupon: int
    vendor_coupon: int
    bonus_coupon: int
    upc5_coupon: int
    fs_payment: int
    discount_allowed: int
    manual_entered_amount: int
    manual_entered_department: int

    quantity: int
    amount: int
    tender_number: int
    tender_type: int
    coupon_dept: int
    coupon_code: bytes
    coupon_name: bytes
    tax_pointer: int
    minimum_qty: int
    plus_amount: int

    @property
    def code(self) -> str:
        return self.coupon_code.hex()
