"""
Cache utilities for the pick'em application
Caches read-mostly reference data (teams, seasons, schedules)
"""

import functools

from flask import current_app, request

from pickem import cache


def make_cache_key(*args, **kwargs):
    """Generate a cache key from request path, query string and arguments"""
    path = request.path
    query = request.query_string.decode("utf-8")
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{path}_{query}_{args_str}_{kwargs_str}".replace("/", "_")


def cached_route(timeout=300, key_prefix="view"):
    """
    Decorator for caching route results

    The wrapped view must return plain JSON-able data (dict or list), not a
    Response, so the cached value survives pickling by any cache backend.

    Args:
        timeout: Cache timeout in seconds (default 5 minutes)
        key_prefix: Prefix for cache key
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = f"{key_prefix}_{make_cache_key(*args, **kwargs)}"

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(cache_key, result, timeout=timeout)
            current_app.logger.debug(f"Cache set for key: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate cache keys matching a pattern

    Args:
        pattern: Pattern to match cache keys
    """
    # Flask-Caching has no portable pattern delete, so drop everything
    if cache.clear():
        current_app.logger.info(f"Cache cleared for pattern: {pattern}")
    else:
        current_app.logger.warning(f"Cache backend could not clear pattern: {pattern}")


def invalidate_model_cache(model_name):
    """
    Invalidate all cache entries for a specific model

    Args:
        model_name: Name of the model to invalidate
    """
    invalidate_cache_pattern(f"*{model_name}*")
