"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
import time
from functools import wraps
from typing import Callable

registry = CollectorRegistry()

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

quotes_priced = Counter(
    'quotes_priced_total',
    'Total pricing requests by rating strategy and outcome',
    ['strategy', 'status'],
    registry=registry
)

vehicles_priced = Counter(
    'vehicles_priced_total',
    'Total vehicles priced by rating strategy',
    ['strategy'],
    registry=registry
)

rate_lookups = Counter(
    'rate_lookups_total',
    'Total base rate lookups by source and outcome',
    ['source', 'status'],
    registry=registry
)

rate_lookup_duration = Histogram(
    'rate_lookup_duration_seconds',
    'External carrier rate lookup duration in seconds',
    ['status'],
    registry=registry
)

cache_hits = Counter(
    'cache_hits_total',
    'Total cache hits',
    ['cache_key'],
    registry=registry
)

cache_misses = Counter(
    'cache_misses_total',
    'Total cache misses',
    ['cache_key'],
    registry=registry
)

redis_connected = Gauge(
    'redis_connected',
    'Redis connection status (1=connected, 0=disconnected)',
    registry=registry
)

db_connected = Gauge(
    'db_connected',
    'Database connection status (1=connected, 0=disconnected)',
    registry=registry
)


def track_rate_lookup(func: Callable) -> Callable:
    """Decorator to time carrier rate lookups"""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = await func(*args, **kwargs)
            rate_lookup_duration.labels(status='success').observe(time.time() - start_time)
            rate_lookups.labels(source='carrier', status='success').inc()
            return result
        except Exception:
            rate_lookup_duration.labels(status='error').observe(time.time() - start_time)
            rate_lookups.labels(source='carrier', status='error').inc()
            raise
    return wrapper


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    from prometheus_client import generate_latest
    return generate_latest(registry).decode('utf-8')
