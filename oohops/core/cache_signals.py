"""
Cache invalidation signals
Automatically invalidate dashboard cache when business data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations (imports, scheduled jobs) to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def _invalidate_for(instance):
    if is_suspended():
        return
    company_id = getattr(instance, 'company_id', None)
    if company_id is None:
        return
    try:
        invalidate_dashboard_cache(company_id)
    except Exception as e:
        logger.warning(f"Dashboard cache invalidation failed for company {company_id}: {str(e)}")


@receiver([post_save, post_delete], sender='campaigns.Campaign')
def campaign_changed(sender, instance, **kwargs):
    _invalidate_for(instance)


@receiver([post_save, post_delete], sender='plans.Plan')
def plan_changed(sender, instance, **kwargs):
    _invalidate_for(instance)


@receiver([post_save, post_delete], sender='finance.Invoice')
def invoice_changed(sender, instance, **kwargs):
    _invalidate_for(instance)


@receiver([post_save, post_delete], sender='finance.Expense')
def expense_changed(sender, instance, **kwargs):
    _invalidate_for(instance)


@receiver([post_save, post_delete], sender='assets.MediaAsset')
def asset_changed(sender, instance, **kwargs):
    _invalidate_for(instance)


@receiver([post_save, post_delete], sender='powerbills.AssetPowerBill')
def power_bill_changed(sender, instance, **kwargs):
    _invalidate_for(instance)
