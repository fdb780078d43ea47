"""
Pricing engine for media asset bookings.

Monthly rates are converted to a 30-day pro-rata daily rate; bookings are
charged per inclusive booked day. All arithmetic uses Decimal and rounds
half-up to 2 decimal places only where a value is presented or stored.
"""
import calendar
import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

BILLING_CYCLE_DAYS = 30

FULL_MONTH = 'FULL_MONTH'
PRORATA_30 = 'PRORATA_30'
DAILY = 'DAILY'

BILLING_MODES = [FULL_MONTH, PRORATA_30, DAILY]
BILLING_MODE_CHOICES = [
    (FULL_MONTH, 'Full Month'),
    (PRORATA_30, 'Pro-rata (30-day)'),
    (DAILY, 'Daily'),
]

ZERO = Decimal('0')
HUNDRED = Decimal('100')
_CYCLE = Decimal(BILLING_CYCLE_DAYS)


class PricingError(ValueError):
    """Raised when rates or durations are invalid"""


def round2(value) -> Decimal:
    return Decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def _dec(value) -> Decimal:
    if value is None or value == '':
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass
class RentResult:
    booked_days: int
    daily_rate: Decimal
    rent_amount: Decimal
    billing_mode: str

    def as_dict(self):
        return {
            'booked_days': self.booked_days,
            'daily_rate': self.daily_rate,
            'rent_amount': self.rent_amount,
            'billing_mode': self.billing_mode,
        }


def compute_booked_days(start: date, end: date) -> int:
    """Inclusive day count, never less than 1"""
    return max((end - start).days + 1, 1)


def is_full_calendar_month(start: date, end: date) -> bool:
    last_day = calendar.monthrange(end.year, end.month)[1]
    return (start.day == 1 and end.day == last_day
            and start.year == end.year and start.month == end.month)


def calculate_duration_days(start: date, end: date) -> int:
    """Inclusive days, with a complete calendar month counted as 30"""
    if is_full_calendar_month(start, end):
        return BILLING_CYCLE_DAYS
    return compute_booked_days(start, end)


def compute_daily_rate(monthly_rate, billing_mode: str = PRORATA_30,
                       provided_daily_rate=None, for_display: bool = True) -> Decimal:
    provided = _dec(provided_daily_rate)
    if billing_mode == DAILY and provided > 0:
        return round2(provided) if for_display else provided
    daily = _dec(monthly_rate) / _CYCLE
    return round2(daily) if for_display else daily


def compute_rent_amount(monthly_rate, start: date, end: date,
                        billing_mode: str = PRORATA_30, provided_daily_rate=None) -> RentResult:
    if billing_mode not in BILLING_MODES:
        raise PricingError(f"Unknown billing mode: {billing_mode}")
    monthly_rate = _dec(monthly_rate)
    booked_days = compute_booked_days(start, end)
    raw_daily = compute_daily_rate(monthly_rate, billing_mode, provided_daily_rate, for_display=False)

    if billing_mode == FULL_MONTH:
        rent = monthly_rate * math.ceil(booked_days / BILLING_CYCLE_DAYS)
    else:
        rent = raw_daily * booked_days

    return RentResult(
        booked_days=booked_days,
        daily_rate=compute_daily_rate(monthly_rate, billing_mode, provided_daily_rate, for_display=True),
        rent_amount=round2(rent),
        billing_mode=billing_mode,
    )


def compute_pro_rata_factor(booked_days: int) -> Decimal:
    return round2(Decimal(booked_days) / _CYCLE)


def compute_overlap_days(asset_start: date, asset_end: date, period_start: date, period_end: date) -> int:
    overlap_start = max(asset_start, period_start)
    overlap_end = min(asset_end, period_end)
    if overlap_end < overlap_start:
        return 0
    return (overlap_end - overlap_start).days + 1


def compute_period_rent_amount(monthly_rate, asset_start: date, asset_end: date,
                               period_start: date, period_end: date,
                               billing_mode: str = PRORATA_30, provided_daily_rate=None) -> Decimal:
    overlap = compute_overlap_days(asset_start, asset_end, period_start, period_end)
    if overlap == 0:
        return ZERO.quantize(Decimal('0.01'))
    daily = compute_daily_rate(monthly_rate, billing_mode, provided_daily_rate, for_display=False)
    return round2(daily * overlap)


def asset_starts_in_period(asset_start: date, period_start: date, period_end: date) -> bool:
    return period_start <= asset_start <= period_end


def calculate_months_from_days(days: int) -> int:
    return int((Decimal(days) / _CYCLE).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_end_date(start: date, days: int) -> date:
    return start + timedelta(days=days - 1)


def duration_factor(days: int, mode: str = 'DAYS', months_count=None) -> Decimal:
    """Multiplier applied to monthly rates: months in MONTH mode, days / 30 otherwise"""
    if mode == 'MONTH' and months_count is not None:
        return _dec(months_count)
    return Decimal(days) / _CYCLE


def calculate_discount(card_rate, negotiated_rate, factor=Decimal('1')) -> Tuple[Decimal, Decimal]:
    """(discount value, discount percent of card total); never negative"""
    factor = _dec(factor)
    card_total = _dec(card_rate) * factor
    value = max(_dec(card_rate) - _dec(negotiated_rate), ZERO) * factor
    percent = (value / card_total * HUNDRED) if card_total > 0 else ZERO
    return round2(value), round2(percent)


def calculate_profit(base_rate, negotiated_rate, factor=Decimal('1')) -> Tuple[Decimal, Decimal]:
    """(profit value, profit percent of base total)"""
    factor = _dec(factor)
    base_total = _dec(base_rate) * factor
    value = (_dec(negotiated_rate) - _dec(base_rate)) * factor
    percent = (value / base_total * HUNDRED) if base_total > 0 else ZERO
    return round2(value), round2(percent)


def calculate_line_item_totals(base_rate, card_rate, negotiated_rate, factor,
                               printing_rate=ZERO, mounting_rate=ZERO) -> dict:
    factor = _dec(factor)
    discount_value, discount_percent = calculate_discount(card_rate, negotiated_rate, factor)
    profit_value, profit_percent = calculate_profit(base_rate, negotiated_rate, factor)
    negotiated_total = round2(_dec(negotiated_rate) * factor)
    printing_total = round2(_dec(printing_rate) * factor)
    mounting_total = round2(_dec(mounting_rate) * factor)
    return {
        'base_total': round2(_dec(base_rate) * factor),
        'card_total': round2(_dec(card_rate) * factor),
        'negotiated_total': negotiated_total,
        'printing_total': printing_total,
        'mounting_total': mounting_total,
        'discount_value': discount_value,
        'discount_percent': discount_percent,
        'profit_value': profit_value,
        'profit_percent': profit_percent,
        'line_total': round2(negotiated_total + printing_total + mounting_total),
    }


def validate_negotiated_price(negotiated_rate, base_rate, card_rate) -> None:
    """Negotiated price must lie between the base rate (when set) and the card rate"""
    negotiated = _dec(negotiated_rate)
    base = _dec(base_rate)
    card = _dec(card_rate)
    if negotiated <= 0:
        raise PricingError('Negotiated price must be greater than zero')
    if base > 0 and negotiated < base:
        raise PricingError(f'Negotiated price {round2(negotiated)} is below the base rate {round2(base)}')
    if card > 0 and negotiated > card:
        raise PricingError(f'Negotiated price {round2(negotiated)} exceeds the card rate {round2(card)}')


def validate_duration(start: Optional[date], end: Optional[date], months=None) -> None:
    if start is None or end is None:
        raise PricingError('Start and end dates are required')
    if end < start:
        raise PricingError('End date cannot be before start date')
    if compute_booked_days(start, end) < 1:
        raise PricingError('Duration must be at least 1 day')
    if months is not None and _dec(months) < Decimal('0.5'):
        raise PricingError('Duration must be at least 0.5 months')
