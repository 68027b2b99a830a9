"""
Ticket models built from decoded QDX records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class LineItem:
    upc: str
    quantity: int
    price: int
    amount: int
    datetime: Optional[datetime] = None


@dataclass
class DiscountItem:
    upc: str
    quantity: int
    price: int
    amount: int
    discount_type: str
    datetime: Optional[datetime] = None


@dataclass
class CouponItem:
    coupon_code: str
    quantity: int
    amount: int
    datetime: Optional[datetime] = None


@dataclass
class Ticket:
    """
    A purchase transaction reassembled from all records of one session.

    Amounts are in minor currency units (cents).
    """
    line_items: List[LineItem] = field(default_factory=list)
    loyaltycard: Optional[str] = None
    purchase_time: Optional[datetime] = None
    account_number: Optional[str] = None
    store_id: Optional[str] = None
    ticket_id: Optional[str] = None
    total: Optional[int] = None
    terminal_id: Optional[int] = None
    transaction_id: Optional[int] = None
    tax_value: Optional[int] = None
    item_count: Optional[int] = None
    discounts: List[DiscountItem] = field(default_factory=list)
    coupons: List[CouponItem] = field(default_factory=list)
