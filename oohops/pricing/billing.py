"""
Campaign and plan totals, and monthly billing periods.

A line's display cost is its monthly rate (negotiated, else card) / 30 times
its inclusive booked days. Campaigns longer than one 30-day cycle are billed
per calendar month, each month carrying a pro-rata factor used to split the
display cost and the manual discount across invoices.
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from django.utils import timezone

from .calculator import BILLING_CYCLE_DAYS, ZERO, HUNDRED, round2, _dec, is_full_calendar_month

MAX_BILLING_MONTHS = 120


@dataclass
class BillingLine:
    """One booked asset as seen by the totals calculation"""
    card_rate: Decimal = ZERO
    negotiated_rate: Optional[Decimal] = None
    printing_charges: Decimal = ZERO
    mounting_charges: Decimal = ZERO
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def monthly_rate(self):
        negotiated = _dec(self.negotiated_rate)
        return negotiated if negotiated > 0 else _dec(self.card_rate)


@dataclass
class BillingPeriod:
    month_key: str
    label: str
    period_start: date
    period_end: date
    days_in_period: int
    pro_rata_factor: Decimal
    is_first_month: bool = False
    is_last_month: bool = False
    is_current_month: bool = False

    def as_dict(self):
        return {
            'month_key': self.month_key,
            'label': self.label,
            'period_start': self.period_start,
            'period_end': self.period_end,
            'days_in_period': self.days_in_period,
            'pro_rata_factor': self.pro_rata_factor,
            'is_first_month': self.is_first_month,
            'is_last_month': self.is_last_month,
            'is_current_month': self.is_current_month,
        }


@dataclass
class CampaignTotals:
    display_cost: Decimal
    printing_cost: Decimal
    mounting_cost: Decimal
    gross_amount: Decimal
    manual_discount_amount: Decimal
    taxable_amount: Decimal
    gst_rate: Decimal
    gst_amount: Decimal
    grand_total: Decimal
    period_start: date
    period_end: date
    duration_days: int
    total_months: int
    monthly_display_rent: Decimal
    total_assets: int
    billing_periods: List[BillingPeriod] = field(default_factory=list)

    @property
    def one_time_charges(self):
        return self.printing_cost + self.mounting_cost

    def as_dict(self):
        return {
            'display_cost': self.display_cost,
            'printing_cost': self.printing_cost,
            'mounting_cost': self.mounting_cost,
            'one_time_charges': self.one_time_charges,
            'gross_amount': self.gross_amount,
            'manual_discount_amount': self.manual_discount_amount,
            'taxable_amount': self.taxable_amount,
            'gst_rate': self.gst_rate,
            'gst_amount': self.gst_amount,
            'grand_total': self.grand_total,
            'period_start': self.period_start,
            'period_end': self.period_end,
            'duration_days': self.duration_days,
            'total_months': self.total_months,
            'monthly_display_rent': self.monthly_display_rent,
            'total_assets': self.total_assets,
            'billing_periods': [p.as_dict() for p in self.billing_periods],
        }


def _month_end(value: date) -> date:
    return value.replace(day=calendar.monthrange(value.year, value.month)[1])


def _next_month_start(value: date) -> date:
    return _month_end(value) + timedelta(days=1)


def calculate_billing_periods(start: date, end: date, today: Optional[date] = None) -> List[BillingPeriod]:
    today = today or timezone.localdate()
    total_days = (end - start).days + 1

    if total_days <= BILLING_CYCLE_DAYS:
        return [BillingPeriod(
            month_key=start.strftime('%Y-%m'),
            label=start.strftime('%B %Y'),
            period_start=start,
            period_end=end,
            days_in_period=total_days,
            pro_rata_factor=round2(Decimal(total_days) / BILLING_CYCLE_DAYS),
            is_first_month=True,
            is_last_month=True,
            is_current_month=(start.year, start.month) == (today.year, today.month),
        )]

    periods = []
    cursor = start.replace(day=1)
    index = 0
    while cursor <= end and index < MAX_BILLING_MONTHS:
        period_start = max(start, cursor)
        period_end = min(end, _month_end(cursor))
        days = (period_end - period_start).days + 1
        full_month = is_full_calendar_month(period_start, period_end)
        factor = Decimal('1') if full_month else Decimal(days) / BILLING_CYCLE_DAYS
        periods.append(BillingPeriod(
            month_key=period_start.strftime('%Y-%m'),
            label=period_start.strftime('%B %Y'),
            period_start=period_start,
            period_end=period_end,
            days_in_period=BILLING_CYCLE_DAYS if full_month else days,
            pro_rata_factor=round2(factor),
            is_first_month=index == 0,
            is_current_month=(period_start.year, period_start.month) == (today.year, today.month),
        ))
        cursor = _next_month_start(cursor)
        index += 1

    if periods:
        periods[-1].is_last_month = True
    return periods


def compute_campaign_totals(start: date, end: date, lines: List[BillingLine],
                            gst_percent=ZERO, manual_discount_amount=ZERO,
                            today: Optional[date] = None) -> CampaignTotals:
    display_raw = ZERO
    period_start, period_end = start, end

    for line in lines:
        line_start = line.start_date or start
        line_end = line.end_date or end
        days = (line_end - line_start).days + 1
        display_raw += line.monthly_rate / BILLING_CYCLE_DAYS * days
        period_start = min(period_start, line_start)
        period_end = max(period_end, line_end)

    display_cost = round2(display_raw)
    printing = round2(sum((_dec(line.printing_charges) for line in lines), ZERO))
    mounting = round2(sum((_dec(line.mounting_charges) for line in lines), ZERO))
    gross = round2(display_cost + printing + mounting)
    discount = min(max(_dec(manual_discount_amount), ZERO), gross)
    taxable = round2(gross - discount)
    gst_rate = _dec(gst_percent)
    gst_amount = round2(taxable * gst_rate / HUNDRED)
    periods = calculate_billing_periods(period_start, period_end, today=today)
    total_months = len(periods)

    return CampaignTotals(
        display_cost=display_cost,
        printing_cost=printing,
        mounting_cost=mounting,
        gross_amount=gross,
        manual_discount_amount=round2(discount),
        taxable_amount=taxable,
        gst_rate=gst_rate,
        gst_amount=gst_amount,
        grand_total=round2(taxable + gst_amount),
        period_start=period_start,
        period_end=period_end,
        duration_days=(period_end - period_start).days + 1,
        total_months=total_months,
        monthly_display_rent=round2(display_cost / total_months) if total_months else display_cost,
        total_assets=len(lines),
        billing_periods=periods,
    )


def calculate_period_amount(period: BillingPeriod, totals: CampaignTotals,
                            include_printing: bool = False, include_mounting: bool = False) -> dict:
    """Share of the campaign's display cost and discount falling in one billing period"""
    if totals.total_months <= 1:
        base_rent = totals.display_cost
        discount = totals.manual_discount_amount
    else:
        total_factor = sum((p.pro_rata_factor for p in totals.billing_periods), ZERO)
        base_rent = round2(totals.display_cost * period.pro_rata_factor / total_factor)
        discount = round2(totals.manual_discount_amount * period.pro_rata_factor / total_factor)

    printing = totals.printing_cost if include_printing else ZERO
    mounting = totals.mounting_cost if include_mounting else ZERO
    subtotal = round2(base_rent + printing + mounting - discount)
    gst_amount = round2(subtotal * totals.gst_rate / HUNDRED)
    return {
        'base_rent': base_rent,
        'printing': printing,
        'mounting': mounting,
        'discount': discount,
        'subtotal': subtotal,
        'gst_amount': gst_amount,
        'total': round2(subtotal + gst_amount),
    }
