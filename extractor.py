# extractor.py
"""Normalize loosely-typed invoice payloads into a printable Receipt.

Nothing in here raises on bad input: a field that is missing or of the wrong
type is replaced by its default, so a receipt can always be printed even from
partial data.
"""

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Mapping, Optional, Tuple

from config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineItem:
    product_name: str
    quantity: int
    unit_price: float

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class Receipt:
    vendor_name: str
    vendor_address: str = ""
    vendor_phone: str = ""
    sale_id: int = 0
    customer_name: str = ""
    created_at: str = ""
    lines: Tuple[LineItem, ...] = field(default_factory=tuple)
    total: float = 0.0
    amount_received: float = 0.0
    seller_name: str = ""
    payment_method: str = ""

    @property
    def change_due(self) -> float:
        return max(self.amount_received - self.total, 0.0)


def _group(payload: Any, key: str) -> Mapping:
    value = payload.get(key) if isinstance(payload, Mapping) else None
    return value if isinstance(value, Mapping) else {}


def _string(group: Mapping, key: str, default: str = "") -> str:
    value = group.get(key)
    return value if isinstance(value, str) else default


def _integer(group: Mapping, key: str) -> Optional[int]:
    value = group.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _amount(group: Mapping, key: str) -> Optional[float]:
    """Read a monetary value given as a number or a numeric string."""
    value = group.get(key)
    if isinstance(value, bool):
        return None
    if not isinstance(value, (Real, str)):
        return None
    try:
        amount = float(value.strip() if isinstance(value, str) else value)
    except (OverflowError, ValueError):
        return None
    if not math.isfinite(amount) or amount < 0:
        return None
    return amount


def _line(item: Any, config) -> LineItem:
    if not isinstance(item, Mapping):
        item = {}
    quantity = _integer(item, "quantity") or 0
    try:
        float(quantity)
    except OverflowError:
        quantity = 0
    price = _amount(item, "price")
    return LineItem(
        product_name=_string(item, "product_name", config.PRODUCT_DEFAULT),
        quantity=max(quantity, 0),
        unit_price=price if price is not None else 0.0,
    )


def extract(payload: Any, config=Config) -> Receipt:
    sale = _group(payload, "sale")
    pharmacy = _group(payload, "pharmacy")

    total = _amount(sale, "total")
    if total is None:
        total = 0.0
    received = _amount(sale, "amount_received")
    if received is None:
        received = total

    items = payload.get("items") if isinstance(payload, Mapping) else None
    if isinstance(items, (list, tuple)):
        lines = tuple(_line(item, config) for item in items)
    else:
        if items is not None:
            logger.warning("Ignoring items of type %s", type(items).__name__)
        lines = ()

    seller = _string(payload, "seller_name") if isinstance(payload, Mapping) else ""

    return Receipt(
        vendor_name=_string(pharmacy, "pharmacy_name", config.VENDOR_NAME),
        vendor_address=_string(pharmacy, "pharmacy_address"),
        vendor_phone=_string(pharmacy, "pharmacy_phone"),
        sale_id=_integer(sale, "id") or 0,
        customer_name=_string(sale, "customer_name", config.CUSTOMER_DEFAULT),
        created_at=_string(sale, "created_at"),
        lines=lines,
        total=total,
        amount_received=received,
        seller_name=seller or _string(sale, "user_name"),
        payment_method=_string(sale, "payment_method"),
    )
