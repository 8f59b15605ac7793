"""
Financial Math

Currency, discount, margin, tax, and unit-economics helpers.
"""

from typing import Any

from calculations.basic import add, divide, multiply, round_to, subtract
from core.fields import to_number


def format_currency(amount: Any, decimals: int = 2) -> str:
    return f"${round_to(amount, decimals):.{decimals}f}"


def parse_currency(value: Any) -> float:
    """Parse "$1,234.50" style strings; non-strings go through `to_number`."""
    return to_number(value)


# Discounts and markups

def discount_amount(original_price: Any, discount_percent: Any) -> float:
    return multiply(original_price, divide(discount_percent, 100))


def discounted_price(original_price: Any, discount_percent: Any) -> float:
    return subtract(original_price, discount_amount(original_price, discount_percent))


def markup_amount(cost: Any, markup_pct: Any) -> float:
    return multiply(cost, divide(markup_pct, 100))


def markup_price(cost: Any, markup_pct: Any) -> float:
    return add(cost, markup_amount(cost, markup_pct))


# Margins

def gross_margin(revenue: Any, cost: Any) -> float:
    return subtract(revenue, cost)


def margin_percent(revenue: Any, cost: Any) -> float:
    """Gross margin as a percentage of revenue."""
    rev = to_number(revenue)
    return divide(gross_margin(revenue, cost), rev) * 100 if rev != 0 else 0


def markup_percent(revenue: Any, cost: Any) -> float:
    """Gross margin as a percentage of cost."""
    c = to_number(cost)
    return divide(gross_margin(revenue, cost), c) * 100 if c != 0 else 0


# Tax

def tax_amount(subtotal: Any, tax_rate: Any) -> float:
    return multiply(subtotal, divide(tax_rate, 100))


def total_with_tax(subtotal: Any, tax_rate: Any) -> float:
    return add(subtotal, tax_amount(subtotal, tax_rate))


def subtotal_from_total(total: Any, tax_rate: Any) -> float:
    return divide(total, add(1, divide(tax_rate, 100)))


# Unit economics

def unit_price(total_amount: Any, quantity: Any) -> float:
    return divide(total_amount, quantity)


def total_amount(price: Any, quantity: Any) -> float:
    return multiply(price, quantity)


def conversion_rate(conversions: Any, opportunities: Any) -> float:
    return divide(conversions, opportunities) * 100


def average_order_value(total_revenue: Any, order_count: Any) -> float:
    return divide(total_revenue, order_count)


def units_per_transaction(total_units: Any, transaction_count: Any) -> float:
    return divide(total_units, transaction_count)
