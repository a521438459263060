# payroll_server/core/decorators.py
import asyncio
import functools
import logging
import time
from datetime import datetime

from fastapi import Request

logger = logging.getLogger(__name__)

# Calls slower than this are logged at WARNING
SLOW_CALL_SECONDS = 1.0


def _report(name: str, elapsed: float, error: Exception = None):
    if error is not None:
        logger.error(f"{name} failed after {elapsed:.4f}s: {str(error)}")
    elif elapsed >= SLOW_CALL_SECONDS:
        logger.warning(f"{name} slow: took {elapsed:.4f}s")
    else:
        logger.info(f"{name} took {elapsed:.4f}s")


def log_execution_time(func):
    """Log how long ``func`` takes; works on coroutines and plain functions."""
    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            _report(func.__name__, time.perf_counter() - start_time, e)
            raise
        _report(func.__name__, time.perf_counter() - start_time)
        return result

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _report(func.__name__, time.perf_counter() - start_time, e)
            raise
        _report(func.__name__, time.perf_counter() - start_time)
        return result

    return async_wrapper if asyncio.iscoroutinefunction(func) else sync_wrapper


def _find_request(args, kwargs):
    for value in list(args) + list(kwargs.values()):
        if isinstance(value, Request):
            return value
    return None


def log_requests(func):
    """Log the start and outcome of a route handler that takes a ``request`` parameter."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        request = _find_request(args, kwargs)
        request_id = datetime.now().strftime("%Y%m%d%H%M%S%f")

        if request:
            client_ip = request.client.host if request.client else "unknown"
            logger.info(f"REQ {request_id}: {request.method} {request.url.path} from {client_ip}")
        else:
            logger.info(f"FUNC {request_id}: {func.__name__} called")

        start_time = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"FAIL {request_id}: error after {time.perf_counter() - start_time:.4f}s - {str(e)}")
            raise
        logger.info(f"DONE {request_id}: completed in {time.perf_counter() - start_time:.4f}s")
        return result

    return wrapper
