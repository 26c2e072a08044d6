"""Bill arithmetic shared by appointment completion and the price preview.

Amounts are whole currency units. The only rounding happens when the store
discount percentage is applied, half-up.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional


@dataclass(frozen=True)
class PricedItem:
    price: int
    compare_at_price: Optional[int] = None
    name: str = ''

    @property
    def original_price(self) -> int:
        if self.compare_at_price is not None and self.compare_at_price > self.price:
            return self.compare_at_price
        return self.price


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: int
    combo_savings: int
    actual_total: int
    discount_percent: Decimal
    discount_amount: int
    final_amount: int

    def as_dict(self):
        return {
            'subtotal': self.subtotal,
            'combo_savings': self.combo_savings,
            'actual_total': self.actual_total,
            'discount_percent': float(self.discount_percent),
            'discount_amount': self.discount_amount,
            'final_amount': self.final_amount,
        }


def percent_of(amount: int, percent) -> int:
    value = Decimal(amount) * Decimal(str(percent)) / Decimal(100)
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_bill(items: Iterable[PricedItem], discount_percent=0) -> PriceBreakdown:
    percent = Decimal(str(discount_percent or 0))
    if percent < 0 or percent > 100:
        raise ValueError('Discount percent must be between 0 and 100.')

    items = list(items)
    for item in items:
        if item.price < 0:
            raise ValueError('Service price cannot be negative.')

    subtotal = sum(item.original_price for item in items)
    actual_total = sum(item.price for item in items)
    discount_amount = percent_of(actual_total, percent)

    return PriceBreakdown(
        subtotal=subtotal,
        combo_savings=subtotal - actual_total,
        actual_total=actual_total,
        discount_percent=percent,
        discount_amount=discount_amount,
        final_amount=actual_total - discount_amount,
    )
