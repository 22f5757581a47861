"""
Rate Limiting
=============

Per-IP sliding window limiter for API routes. Limits come from
``RATE_LIMITS`` ({bucket: "requests,minutes"}); the window store lives on the
Newsroom extension so each app instance counts separately.
"""

import hashlib
import threading
import time
from functools import wraps

from flask import current_app, request

from .errors import RateLimitError
from .logging_service import LoggingService


def parse_limit(rule):
    """Parse "requests,minutes" into (requests, seconds)."""
    requests_part, _, minutes_part = str(rule).partition(',')
    return int(requests_part), int(minutes_part or 1) * 60


class RateLimiter:
    """In-memory limiter: {(bucket, ip_hash): [timestamp, ...]}"""

    def __init__(self):
        self._hits = {}
        self._lock = threading.Lock()

    def hit(self, bucket, ip, limit, window):
        """Record a request. Returns True if the caller is over the limit."""
        now = time.time()
        ip_hash = hashlib.sha256(ip.encode()).hexdigest()[:16]
        key = (bucket, ip_hash)

        with self._lock:
            # Clean old entries
            recent = [t for t in self._hits.get(key, []) if now - t < window]
            if len(recent) >= limit:
                self._hits[key] = recent
                return True
            recent.append(now)
            self._hits[key] = recent
            return False

    def reset(self):
        with self._lock:
            self._hits.clear()


def _client_ip():
    ip_address = request.headers.get('X-Forwarded-For', request.remote_addr) or 'unknown'
    return ip_address.split(',')[0].strip()


def throttle(bucket='api'):
    """Decorator applying the named rate limit bucket to a view."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if current_app.config.get('RATELIMIT_ENABLED', True):
                limits = current_app.config.get('RATE_LIMITS') or {}
                rule = limits.get(bucket) or limits.get('api')
                if rule:
                    limit, window = parse_limit(rule)
                    limiter = current_app.extensions['newsroom'].rate_limiter
                    ip = _client_ip()
                    if limiter.hit(bucket, ip, limit, window):
                        LoggingService.log_security_event(
                            'Rate limit exceeded', {'bucket': bucket, 'limit': rule}
                        )
                        raise RateLimitError()
            return f(*args, **kwargs)
        return decorated_function
    return decorator
