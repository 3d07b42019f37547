"""
Caching utilities for expensive report queries
Uses Redis (django-redis) when configured, local memory otherwise
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
REPORTS_CACHE_TTL = 300  # 5 minutes
STATS_CACHE_TTL = 300


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _version_key(organization_id):
    return f"reports_version:{organization_id}"


def get_reports_version(organization_id):
    """Current cache generation for an organization's reports"""
    version = cache.get(_version_key(organization_id))
    if version is None:
        version = 1
        cache.set(_version_key(organization_id), version, None)
    return version


def make_org_cache_key(prefix, organization_id, *args, **kwargs):
    """Cache key that changes whenever the organization's reports are invalidated"""
    version = get_reports_version(organization_id)
    return make_cache_key(f"{prefix}:org{organization_id}:v{version}", *args, **kwargs)


def cached_org_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="query"):
    """
    Decorator caching a function whose first argument is an organization id

    Usage:
        @cached_org_query(cache_ttl=300, key_prefix="dashboard")
        def get_dashboard(organization_id, days):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(organization_id, *args, **kwargs):
            cache_key = make_org_cache_key(key_prefix, organization_id, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(organization_id, *args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Delete all Redis keys matching a pattern
    Note: This requires Redis with SCAN command support; a no-op for other backends
    """
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
    except NotImplementedError:
        logger.debug(f"Cache backend does not support pattern invalidation ({pattern})")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_organization_reports(organization_id):
    """Bump the organization's report generation and drop stale Redis keys"""
    if not organization_id:
        return
    key = _version_key(organization_id)
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, 2, None)
    invalidate_cache_pattern(f"org{organization_id}:")
    logger.debug(f"Invalidated report cache for organization {organization_id}")
