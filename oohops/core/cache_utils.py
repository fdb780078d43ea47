"""
Caching utilities for expensive dashboard and report queries
Uses Redis (django-redis) when configured, local memory otherwise
"""
from django.conf import settings
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DASHBOARD_KPI_CACHE_TTL = 300  # 5 minutes
REPORTS_CACHE_TTL = 600  # 10 minutes


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _version_key(company_id):
    return f"dashboard_version:{company_id}"


def get_dashboard_version(company_id):
    version = cache.get(_version_key(company_id))
    if version is None:
        version = 1
        cache.set(_version_key(company_id), version, None)
    return version


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Note: This requires Redis with SCAN command support
    """
    if 'django_redis' not in settings.CACHES['default']['BACKEND']:
        return
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def get_cached_dashboard_kpis(company_id, role, date_from=None, date_to=None):
    """Get cached dashboard KPIs; returns (data, cache_key)"""
    version = get_dashboard_version(company_id)
    cache_key = make_cache_key(f"dashboard_kpis:{company_id}", role, date_from, date_to, version)
    return cache.get(cache_key), cache_key


def cache_dashboard_kpis(cache_key, data, ttl=DASHBOARD_KPI_CACHE_TTL):
    """Cache dashboard KPIs data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached dashboard KPIs: {cache_key}")


def invalidate_dashboard_cache(company_id):
    """Invalidate dashboard KPIs cache for one company"""
    try:
        cache.incr(_version_key(company_id))
    except ValueError:
        cache.set(_version_key(company_id), 2, None)
    invalidate_cache_pattern(f"dashboard_kpis:{company_id}")
    logger.debug(f"Invalidated dashboard cache for company {company_id}")
