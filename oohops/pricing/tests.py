"""
Test suite for the pricing engine
Tests: pro-rata rent, billing modes, overlap, discount/profit, validation, campaign totals and billing periods
"""
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from rest_framework import status

from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from oohops.pricing.billing import (
    BillingLine, calculate_billing_periods, compute_campaign_totals, calculate_period_amount,
)
from oohops.pricing.calculator import (
    PricingError, FULL_MONTH, DAILY, PRORATA_30,
    compute_booked_days, compute_daily_rate, compute_rent_amount, compute_pro_rata_factor,
    compute_overlap_days, compute_period_rent_amount, asset_starts_in_period,
    calculate_duration_days, calculate_months_from_days, calculate_end_date,
    calculate_discount, calculate_profit, calculate_line_item_totals,
    validate_negotiated_price, validate_duration,
)


class RentCalculationTests(SimpleTestCase):
    """Test per-asset rent arithmetic"""

    def test_booked_days_inclusive(self):
        """Booked days count both the start and end date"""
        self.assertEqual(compute_booked_days(date(2025, 1, 1), date(2025, 1, 31)), 31)
        self.assertEqual(compute_booked_days(date(2025, 1, 1), date(2025, 1, 1)), 1)

    def test_booked_days_minimum_one(self):
        """Reversed dates still count as one day"""
        self.assertEqual(compute_booked_days(date(2025, 1, 10), date(2025, 1, 5)), 1)

    def test_prorata_rent_has_no_rounding_drift(self):
        """50000/month for 180 days is exactly 300000.00"""
        result = compute_rent_amount(Decimal('50000'), date(2025, 1, 1), date(2025, 6, 29))
        self.assertEqual(result.booked_days, 180)
        self.assertEqual(result.rent_amount, Decimal('300000.00'))
        self.assertEqual(result.daily_rate, Decimal('1666.67'))
        self.assertEqual(result.billing_mode, PRORATA_30)

    def test_prorata_half_month(self):
        """Pro-rata rent equals round(monthly / 30 x days, 2)"""
        result = compute_rent_amount(Decimal('10000'), date(2025, 3, 1), date(2025, 3, 15))
        self.assertEqual(result.rent_amount, Decimal('5000.00'))

    def test_prorata_rounding(self):
        """Odd rates are rounded half-up to paise"""
        result = compute_rent_amount(Decimal('25000'), date(2025, 3, 1), date(2025, 3, 7))
        # 25000 / 30 * 7 = 5833.333...
        self.assertEqual(result.rent_amount, Decimal('5833.33'))

    def test_full_month_mode_rounds_up_months(self):
        """FULL_MONTH charges whole 30-day cycles"""
        result = compute_rent_amount(Decimal('30000'), date(2025, 1, 1), date(2025, 2, 14), FULL_MONTH)
        self.assertEqual(result.booked_days, 45)
        self.assertEqual(result.rent_amount, Decimal('60000.00'))

    def test_daily_mode_uses_provided_rate(self):
        """DAILY mode uses the provided daily rate when positive"""
        result = compute_rent_amount(Decimal('90000'), date(2025, 1, 1), date(2025, 1, 10), DAILY, Decimal('1000'))
        self.assertEqual(result.daily_rate, Decimal('1000.00'))
        self.assertEqual(result.rent_amount, Decimal('10000.00'))

    def test_daily_mode_without_rate_falls_back_to_monthly(self):
        """DAILY mode without a provided rate uses monthly / 30"""
        self.assertEqual(compute_daily_rate(Decimal('30000'), DAILY, None), Decimal('1000.00'))

    def test_unknown_billing_mode(self):
        """Unknown billing modes are rejected"""
        with self.assertRaises(PricingError):
            compute_rent_amount(Decimal('1000'), date(2025, 1, 1), date(2025, 1, 2), 'WEEKLY')

    def test_pro_rata_factor(self):
        """Factor is days / 30 rounded to 2 places"""
        self.assertEqual(compute_pro_rata_factor(45), Decimal('1.50'))
        self.assertEqual(compute_pro_rata_factor(10), Decimal('0.33'))

    def test_overlap_days(self):
        """Overlap is inclusive and zero when disjoint"""
        self.assertEqual(compute_overlap_days(date(2025, 1, 10), date(2025, 2, 20), date(2025, 2, 1), date(2025, 2, 28)), 20)
        self.assertEqual(compute_overlap_days(date(2025, 1, 1), date(2025, 1, 31), date(2025, 2, 1), date(2025, 2, 28)), 0)

    def test_period_rent_amount(self):
        """Period rent covers only the overlapping days"""
        amount = compute_period_rent_amount(Decimal('30000'), date(2025, 1, 10), date(2025, 2, 20), date(2025, 2, 1), date(2025, 2, 28))
        self.assertEqual(amount, Decimal('20000.00'))

    def test_asset_starts_in_period(self):
        """One-time charges apply in the period where the asset starts"""
        self.assertTrue(asset_starts_in_period(date(2025, 2, 5), date(2025, 2, 1), date(2025, 2, 28)))
        self.assertFalse(asset_starts_in_period(date(2025, 1, 5), date(2025, 2, 1), date(2025, 2, 28)))


class DurationTests(SimpleTestCase):
    """Test duration helpers"""

    def test_full_calendar_month_is_thirty_days(self):
        """February 1-28 counts as a 30-day month"""
        self.assertEqual(calculate_duration_days(date(2025, 2, 1), date(2025, 2, 28)), 30)
        self.assertEqual(calculate_duration_days(date(2025, 1, 1), date(2025, 1, 31)), 30)

    def test_partial_month_is_inclusive_days(self):
        self.assertEqual(calculate_duration_days(date(2025, 1, 5), date(2025, 1, 31)), 27)

    def test_months_and_end_date(self):
        """Months round half-up and end date is inclusive"""
        self.assertEqual(calculate_months_from_days(45), 2)
        self.assertEqual(calculate_months_from_days(40), 1)
        self.assertEqual(calculate_end_date(date(2025, 1, 1), 30), date(2025, 1, 30))

    def test_validate_duration(self):
        """End before start and sub-half-month durations are rejected"""
        with self.assertRaises(PricingError):
            validate_duration(date(2025, 2, 1), date(2025, 1, 1))
        with self.assertRaises(PricingError):
            validate_duration(date(2025, 1, 1), date(2025, 1, 5), months=Decimal('0.25'))
        validate_duration(date(2025, 1, 1), date(2025, 1, 31), months=1)


class DiscountProfitTests(SimpleTestCase):
    """Test discount and profit percentages"""

    def test_discount(self):
        """Discount is card minus negotiated as a share of card"""
        self.assertEqual(calculate_discount(Decimal('100000'), Decimal('80000')), (Decimal('20000.00'), Decimal('20.00')))

    def test_discount_never_negative(self):
        """Negotiated above card gives zero discount"""
        self.assertEqual(calculate_discount(Decimal('100000'), Decimal('120000')), (Decimal('0.00'), Decimal('0.00')))

    def test_discount_with_factor(self):
        """Discount scales with the duration factor"""
        value, percent = calculate_discount(Decimal('30000'), Decimal('24000'), Decimal('2'))
        self.assertEqual(value, Decimal('12000.00'))
        self.assertEqual(percent, Decimal('20.00'))

    def test_profit(self):
        """Profit is negotiated minus base as a share of base"""
        self.assertEqual(calculate_profit(Decimal('60000'), Decimal('80000')), (Decimal('20000.00'), Decimal('33.33')))

    def test_profit_zero_base(self):
        """A zero base rate yields zero percent rather than dividing by zero"""
        value, percent = calculate_profit(Decimal('0'), Decimal('5000'))
        self.assertEqual(value, Decimal('5000.00'))
        self.assertEqual(percent, Decimal('0.00'))

    def test_line_item_totals(self):
        totals = calculate_line_item_totals(Decimal('40000'), Decimal('60000'), Decimal('50000'), Decimal('0.5'),
                                            Decimal('2000'), Decimal('1000'))
        self.assertEqual(totals['negotiated_total'], Decimal('25000.00'))
        self.assertEqual(totals['discount_value'], Decimal('5000.00'))
        self.assertEqual(totals['profit_value'], Decimal('5000.00'))
        self.assertEqual(totals['line_total'], Decimal('26500.00'))

    def test_negotiated_price_bounds(self):
        """Negotiated price must lie between base and card rate"""
        validate_negotiated_price(Decimal('80000'), Decimal('60000'), Decimal('100000'))
        with self.assertRaises(PricingError):
            validate_negotiated_price(Decimal('50000'), Decimal('60000'), Decimal('100000'))
        with self.assertRaises(PricingError):
            validate_negotiated_price(Decimal('120000'), Decimal('60000'), Decimal('100000'))

    def test_negotiated_price_without_base(self):
        """A missing base rate imposes no floor"""
        validate_negotiated_price(Decimal('100'), None, Decimal('100000'))


class CampaignTotalsTests(SimpleTestCase):
    """Test campaign totals and billing periods"""

    def test_single_period_when_within_cycle(self):
        periods = calculate_billing_periods(date(2025, 1, 1), date(2025, 1, 30), today=date(2025, 1, 10))
        self.assertEqual(len(periods), 1)
        self.assertEqual(periods[0].pro_rata_factor, Decimal('1.00'))
        self.assertTrue(periods[0].is_first_month)
        self.assertTrue(periods[0].is_last_month)
        self.assertTrue(periods[0].is_current_month)

    def test_calendar_month_periods(self):
        """Long campaigns are split into calendar months clipped to the range"""
        periods = calculate_billing_periods(date(2025, 1, 15), date(2025, 3, 10), today=date(2024, 1, 1))
        self.assertEqual([p.month_key for p in periods], ['2025-01', '2025-02', '2025-03'])
        self.assertEqual(periods[0].days_in_period, 17)
        self.assertEqual(periods[0].pro_rata_factor, Decimal('0.57'))
        self.assertEqual(periods[1].days_in_period, 30)
        self.assertEqual(periods[1].pro_rata_factor, Decimal('1.00'))
        self.assertEqual(periods[2].period_end, date(2025, 3, 10))
        self.assertTrue(periods[2].is_last_month)
        self.assertFalse(periods[1].is_last_month)

    def test_totals(self):
        """Gross, discount, GST and grand total"""
        lines = [
            BillingLine(card_rate=Decimal('30000')),
            BillingLine(card_rate=Decimal('20000'), negotiated_rate=Decimal('15000'),
                        printing_charges=Decimal('2000'), mounting_charges=Decimal('1000')),
        ]
        totals = compute_campaign_totals(date(2025, 1, 1), date(2025, 1, 30), lines,
                                         gst_percent=Decimal('18'), manual_discount_amount=Decimal('3000'))
        self.assertEqual(totals.display_cost, Decimal('45000.00'))
        self.assertEqual(totals.gross_amount, Decimal('48000.00'))
        self.assertEqual(totals.taxable_amount, Decimal('45000.00'))
        self.assertEqual(totals.gst_amount, Decimal('8100.00'))
        self.assertEqual(totals.grand_total, Decimal('53100.00'))
        self.assertEqual(totals.total_assets, 2)

    def test_discount_is_clamped(self):
        """Discount never exceeds the gross amount"""
        lines = [BillingLine(card_rate=Decimal('30000'))]
        totals = compute_campaign_totals(date(2025, 1, 1), date(2025, 1, 30), lines,
                                         gst_percent=Decimal('18'), manual_discount_amount=Decimal('100000'))
        self.assertEqual(totals.manual_discount_amount, Decimal('30000.00'))
        self.assertEqual(totals.grand_total, Decimal('0.00'))

    def test_line_dates_override_campaign_dates(self):
        lines = [BillingLine(card_rate=Decimal('30000'), start_date=date(2025, 1, 1), end_date=date(2025, 1, 10))]
        totals = compute_campaign_totals(date(2025, 1, 1), date(2025, 1, 30), lines)
        self.assertEqual(totals.display_cost, Decimal('10000.00'))

    def test_period_amount_split_by_factor(self):
        """Each month gets its factor's share of the display cost"""
        lines = [BillingLine(card_rate=Decimal('30000'))]
        totals = compute_campaign_totals(date(2025, 1, 15), date(2025, 3, 10), lines, gst_percent=Decimal('18'))
        self.assertEqual(totals.display_cost, Decimal('55000.00'))
        february = totals.billing_periods[1]
        amount = calculate_period_amount(february, totals)
        self.assertEqual(amount['base_rent'], Decimal('28947.37'))
        self.assertEqual(amount['gst_amount'], Decimal('5210.53'))

    def test_period_amount_single_period(self):
        lines = [BillingLine(card_rate=Decimal('30000'), printing_charges=Decimal('500'))]
        totals = compute_campaign_totals(date(2025, 1, 1), date(2025, 1, 30), lines, gst_percent=Decimal('18'))
        amount = calculate_period_amount(totals.billing_periods[0], totals, include_printing=True)
        self.assertEqual(amount['base_rent'], Decimal('30000.00'))
        self.assertEqual(amount['subtotal'], Decimal('30500.00'))
        self.assertEqual(amount['total'], Decimal('35990.00'))


class PricingAPITests(TestCase):
    """Test pricing endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='sales')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_rent_preview(self):
        response = self.client.post('/api/v1/pricing/rent-preview/', {
            'monthly_rate': '50000', 'start_date': '2025-01-01', 'end_date': '2025-06-29',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['booked_days'], 180)
        self.assertEqual(Decimal(str(response.data['rent_amount'])), Decimal('300000.00'))

    def test_rent_preview_invalid_dates(self):
        response = self.client.post('/api/v1/pricing/rent-preview/', {
            'monthly_rate': '50000', 'start_date': '2025-02-01', 'end_date': '2025-01-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_validate_rate_below_base(self):
        response = self.client.post('/api/v1/pricing/validate-rate/', {
            'negotiated_rate': '50000', 'base_rate': '60000', 'card_rate': '100000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_valid'])
        self.assertEqual(Decimal(str(response.data['discount_percent'])), Decimal('50.00'))

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.post('/api/v1/pricing/rent-preview/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
