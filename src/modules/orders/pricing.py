"""Pricing calculator.

Pure functions over ``Decimal``: no ORM, no settings look-ups unless the
caller omits a rate.  Every amount is quantized to cents with ROUND_HALF_UP;
the tax is split into CGST and SGST halves, CGST taking the odd cent so the
components always add up to ``tax_total``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional

from django.conf import settings

from modules.orders.constants import OrderType

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: Decimal
    delivery_fee: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tax_total: Decimal
    total: Decimal

    def as_dict(self) -> Dict[str, str]:
        return {key: str(value) for key, value in asdict(self).items()}


def calculate_pricing(
    lines: Iterable[PricedLine],
    order_type: str,
    *,
    tax_rate: Optional[Decimal] = None,
    delivery_fee: Optional[Decimal] = None,
) -> PricingBreakdown:
    """Price a cart.

    ``tax_rate`` and ``delivery_fee`` default to ``ORDER_TAX_RATE`` and
    ``ORDER_DELIVERY_FEE``.  Only delivery orders pay the delivery fee.
    """
    if tax_rate is None:
        tax_rate = Decimal(settings.ORDER_TAX_RATE)
    if delivery_fee is None:
        delivery_fee = Decimal(settings.ORDER_DELIVERY_FEE)

    subtotal = to_money(sum((line.line_total for line in lines), ZERO))
    tax_total = to_money(subtotal * tax_rate)
    sgst = (tax_total / 2).quantize(CENT, rounding=ROUND_DOWN)
    cgst = tax_total - sgst
    fee = to_money(delivery_fee) if order_type == OrderType.DELIVERY else ZERO

    return PricingBreakdown(
        subtotal=subtotal,
        delivery_fee=fee,
        cgst=cgst,
        sgst=sgst,
        igst=ZERO,
        tax_total=tax_total,
        total=subtotal + fee + tax_total,
    )
