# payroll_client/utils.py
import asyncio
import functools
import logging
import time

logger = logging.getLogger(__name__)


def _log_timing(name: str, started: float, error: Exception = None):
    elapsed = time.time() - started
    if error is None:
        logger.info(f"{name} finished in {elapsed:.4f} seconds")
    else:
        logger.error(f"{name} failed after {elapsed:.4f} seconds: {str(error)}")


def log_execution_time(func):
    """Decorator to log how long a client call takes"""
    if asyncio.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            started = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log_timing(func.__name__, started, e)
                raise
            _log_timing(func.__name__, started)
            return result
        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        started = time.time()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _log_timing(func.__name__, started, e)
            raise
        _log_timing(func.__name__, started)
        return result
    return sync_wrapper


def retry(max_retries: int = 3, retry_delay: float = 1.0,
          backoff_factor: float = 2.0, exceptions: tuple = (Exception,)):
    """Retry a coroutine on the given exceptions, doubling the wait each time.

    When the first positional argument carries ``max_retries`` or
    ``retry_delay`` attributes (a client instance), those win over the
    decorator arguments.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            owner = args[0] if args else None
            limit = getattr(owner, "max_retries", max_retries)
            delay = getattr(owner, "retry_delay", retry_delay)

            for attempt in range(1, limit + 2):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt > limit:
                        logger.error(f"Max retries ({limit}) reached for {func.__name__}")
                        raise
                    logger.warning(f"Retry {attempt}/{limit} for {func.__name__} in {delay:.2f}s after error: {str(e)}")
                    await asyncio.sleep(delay)
                    delay *= backoff_factor

        return wrapper

    return decorator
