"""
Signal handlers that invalidate per-organization report caches
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .cache_utils import invalidate_organization_reports

logger = logging.getLogger(__name__)

# Models whose changes affect dashboards and stats
REPORT_MODELS = {'Order', 'OrderDetail', 'OrderAssignment', 'Product', 'Category', 'Client', 'Courier', 'User'}


@receiver([post_save, post_delete])
def invalidate_reports_cache(sender, instance, **kwargs):
    """Invalidate report caches when tenant data changes"""
    if sender.__name__ not in REPORT_MODELS:
        return

    organization_id = getattr(instance, 'organization_id', None)
    if organization_id is None and hasattr(instance, 'order_id'):
        try:
            organization_id = instance.order.organization_id
        except Exception as e:
            logger.debug(f"Could not resolve organization for {sender.__name__}: {e}")
            return
    if not organization_id:
        return

    try:
        # Invalidate after commit so the cache is not refilled with stale rows
        transaction.on_commit(lambda: invalidate_organization_reports(organization_id))
    except Exception as e:
        logger.warning(f"Error in invalidate_reports_cache signal: {e}")
