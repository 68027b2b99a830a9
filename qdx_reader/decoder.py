"""
QDX Record Decoder Module
=========================

Stateless decoders for the fixed-layout QDX record types.

Each decoder takes a byte slice and returns a freshly built record from
``fields``. Payload decoders read from the start of the 64-byte slot; the tail
decoder reads the 20-byte block at offset 44. Slices longer than the layout
are fine (only the leading bytes are read), shorter ones raise
``MalformedRecordError``.

Layout widths:
- Tail:      20 bytes
- LineItem:  44 bytes
- Clubcard:  24 bytes (card number at 4-23)
- Payment:   32 bytes (account number at 22-31)
- Location:   9 bytes (store id at 3-8)
- Total:     15 bytes
- Discount:  44 bytes
- Coupon:    44 bytes

All integer fields are Little-Endian.
"""

import struct
import logging
from typing import Tuple

from qdx_reader.fields import (
    BcdDateTime,
    TailData,
    LineItemRecord,
    ClubcardRecord,
    PaymentRecord,
    LocationRecord,
    TotalRecord,
    DiscountRecord,
    CouponRecord,
)

logger = logging.getLogger(__name__)

RECORD_SIZE = 64
PAYLOAD_SIZE = 44
TAIL_OFFSET = 44
TAIL_SIZE = 20

TAIL_FORMAT = struct.Struct('<BBBBH6sBHBHBB')
LINE_ITEM_FORMAT = struct.Struct('<B7s5BH3Bi4IfBB')
CLUBCARD_FORMAT = struct.Struct('<BBBB20s')
PAYMENT_FORMAT = struct.Struct('<BH4BB3IH10s')
LOCATION_FORMAT = struct.Struct('<BBB6s')
TOTAL_FORMAT = struct.Struct('<BBBHIHI')
DISCOUNT_FORMAT = struct.Struct('<B7sHcccBfBBIiicBHIf')
COUPON_FORMAT = struct.Struct('<BBBiiHBH7s16sBhh')


class MalformedRecordError(ValueError):
    """Raised when a slice is shorter than the layout it is decoded with."""

    def __init__(self, layout: str, expected: int, actual: int):
        super().__init__(f"{layout} record needs {expected} bytes, got {actual}")
        self.layout = layout
        self.expected = expected
        self.actual = actual


def _unpack(layout: str, fmt: struct.Struct, data: bytes) -> tuple:
    if len(data) < fmt.size:
        raise MalformedRecordError(layout, fmt.size, len(data))
    return fmt.unpack_from(data, 0)


def _bits(byte: int) -> Tuple[int, ...]:
    """Split a flag byte into 8 single-bit values, most significant bit first."""
    return tuple((byte >> shift) & 1 for shift in range(7, -1, -1))


def _text(raw: bytes) -> str:
    """Fixed-width ASCII field with trailing NUL/space padding removed."""
    return raw.rstrip(b'\x00 ').decode('ascii', errors='replace')


def decode_tail(data: bytes) -> TailData:
    """
    Decode the 20-byte tail block.

    Offset (within tail):
        0      seq2
        1      flag
        2      external_pos_number
        3      flag_options
        4-5    ticket_number (uint16 LE)
        6-11   BCD timestamp (YYMMDDhhmmss)
        12     options
        13-14  cashier_number (uint16 LE)
        15     pos_number
        16-17  seq_no (uint16 LE)
        18     pc_no_tv_no
        19     reserved (always zero so far)
    """
    (seq2, flag, external_pos_number, flag_options, ticket_number, bcd,
     options, cashier_number, pos_number, seq_no, pc_no_tv_no,
     unused_zero) = _unpack('Tail', TAIL_FORMAT, data)

    return TailData(
        seq2=seq2,
        flag=flag,
        external_pos_number=external_pos_number,
        flag_options=flag_options,
        ticket_number=ticket_number,
        raw_datetime=BcdDateTime(bcd),
        options=options,
        cashier_number=cashier_number,
        pos_number=pos_number,
        seq_no=seq_no,
        pc_no_tv_no=pc_no_tv_no,
        unused_zero=unused_zero,
    )


def decode_slot_tail(slot: bytes) -> TailData:
    """Decode the tail of a full 64-byte slot."""
    return decode_tail(slot[TAIL_OFFSET:TAIL_OFFSET + TAIL_SIZE])


def decode_line_item(data: bytes) -> LineItemRecord:
    """
    Decode a line item (opcode 0x01).

    Offset 1-7 holds the product code; it is reported as hex of the raw bytes,
    not as text.
    """
    (opcode, code, flag1, flag2, flag3, flag4, flag5, department_number,
     multi_sell_unit, return_type, tax_pointer, quantity, price, amount,
     no_tax_price, no_tax_amount, return_surcharge_percent, product_code,
     flags) = _unpack('LineItem', LINE_ITEM_FORMAT, data)

    return LineItemRecord(
        opcode=opcode,
        code=code,
        flag1=flag1,
        flag2=flag2,
        flag3=flag3,
        flag4=flag4,
        flag5=flag5,
        department_number=department_number,
        multi_sell_unit=multi_sell_unit,
        return_type=return_type,
        tax_pointer=tax_pointer,
        quantity=quantity,
        price=price,
        amount=amount,
        no_tax_price=no_tax_price,
        no_tax_amount=no_tax_amount,
        return_surcharge_percent=return_surcharge_percent,
        product_code=product_code,
        flags=flags,
    )


def decode_clubcard(data: bytes) -> ClubcardRecord:
    opcode, function, flag1, scheme_no, card_no = _unpack('Clubcard', CLUBCARD_FORMAT, data)
    return ClubcardRecord(
        opcode=opcode,
        function=function,
        flag1=flag1,
        scheme_no=scheme_no,
        card_no=_text(card_no),
    )


def decode_payment(data: bytes) -> PaymentRecord:
    (opcode, media, flag1, flag2, flag3, flag4, type_field, amount,
     foreign_amount, foreign_rate, issue_date,
     account_number) = _unpack('Payment', PAYMENT_FORMAT, data)

    return PaymentRecord(
        opcode=opcode,
        media=media,
        flag1=flag1,
        flag2=flag2,
        flag3=flag3,
        flag4=flag4,
        type_field=type_field,
        amount=amount,
        foreign_amount=foreign_amount,
        foreign_rate=foreign_rate,
        issue_date=issue_date,
        account_number=account_number,
    )


def decode_location(data: bytes) -> LocationRecord:
    opcode, subopcode, flag1, store_id = _unpack('Location', LOCATION_FORMAT, data)
    return LocationRecord(
        opcode=opcode,
        subopcode=subopcode,
        flag1=flag1,
        store_id=_text(store_id),
    )


def decode_total(data: bytes) -> TotalRecord:
    """
    Decode a ticket total (opcode 0x05).

    Offset 1 is the flag byte; bit 6 (0x40) marks a voided ticket.
    """
    (opcode, flag1, flag2, ticket_number, tax_value, item_count,
     amount) = _unpack('Total', TOTAL_FORMAT, data)

    (ticket_total, voided_ticket, saved_ticket, recalled_transaction,
     drive_off, quick_store, pc_info, tender_purchase) = _bits(flag1)

    return TotalRecord(
        opcode=opcode,
        ticket_total=ticket_total,
        voided_ticket=voided_ticket,
        saved_ticket=saved_ticket,
        recalled_transaction=recalled_transaction,
        drive_off=drive_off,
        quick_store=quick_store,
        pc_info=pc_info,
        tender_purchase=tender_purchase,
        flag2=flag2,
        ticket_number=ticket_number,
        tax_value=tax_value,
        item_count=item_count,
        amount=amount,
    )


def decode_discount(data: bytes) -> DiscountRecord:
    (opcode, item_code, department_number, flag_1, flag_2, flag_3,
     discount_type, percent, return_type, tax_pointer_or_discount_item,
     quantity, price, amount, flag_4, multiple_selling_unit, tender,
     no_tax_amount,
     return_surcharge_percentage) = _unpack('Discount', DISCOUNT_FORMAT, data)

    return DiscountRecord(
        opcode=opcode,
        item_code=item_code,
        department_number=department_number,
        flag_1=flag_1,
        flag_2=flag_2,
        flag_3=flag_3,
        discount_type=discount_type,
        percent=percent,
        return_type=return_type,
        tax_pointer_or_discount_item=tax_pointer_or_discount_item,
        quantity=quantity,
        price=price,
        amount=amount,
        flag_4=flag_4,
        multiple_selling_unit=multiple_selling_unit,
        tender=tender,
        no_tax_amount=no_tax_amount,
        return_surcharge_percentage=return_surcharge_percentage,
    )


def decode_coupon(data: bytes) -> CouponRecord:
    (opcode, flag1, flag2, quantity, amount, tender_number, tender_type,
     coupon_dept, coupon_code, coupon_name, tax_pointer, minimum_qty,
     plus_amount) = _unpack('Coupon', COUPON_FORMAT, data)

    (subtract, cancel, suppress_bonus_coupon, ext_coupon_information_transaction,
     department_net, bonus_coupon_followed, cost_plus,
     chained_previous_item) = _bits(flag1)
    (store_coupon, vendor_coupon, bonus_coupon, upc5_coupon, fs_payment,
     discount_allowed, manual_entered_amount,
     manual_entered_department) = _bits(flag2)

    return CouponRecord(
        opcode=opcode,
        subtract=subtract,
        cancel=cancel,
        suppress_bonus_coupon=suppress_bonus_coupon,
        ext_coupon_information_transaction=ext_coupon_information_transaction,
        department_net=department_net,
        bonus_coupon_followed=bonus_coupon_followed,
        cost_plus=cost_plus,
        chained_previous_item=chained_previous_item,
        store_coupon=store_coupon,
        vendor_coupon=vendor_coupon,
        bonus_coupon=bonus_coupon,
        upc5_coupon=upc5_coupon,
        fs_payment=fs_payment,
        discount_allowed=discount_allowed,
        manual_entered_amount=manual_entered_amount,
        manual_entered_department=manual_entered_department,
        quantity=quantity,
        amount=amount,
        tender_number=tender_number,
        tender_type=tender_type,
        coupon_dept=coupon_dept,
        coupon_code=coupon_code,
        coupon_name=coupon_name,
        tax_pointer=tax_pointer,
        minimum_qty=minimum_qty,
        plus_amount=plus_amount,
    )
