"""Retry decorator for outbound provider calls (SMTP, Twilio)."""

import functools
import time
from typing import Callable, Optional, Tuple, Type

from jobportal.core.log import get_logger

log = get_logger(__name__)


def retry(
    *,
    attempts: int = 3,
    delay: float = 1.0,
    on: Tuple[Type[BaseException], ...] = (Exception,),
    give_up: Optional[Callable[[BaseException], bool]] = None,
) -> Callable:
    """
    Re-run the wrapped call when it raises one of `on`, doubling the
    wait after each failure. `give_up(exc)` returning True re-raises at
    once, for errors a second try cannot fix (a rejected phone number).
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            wait = delay
            for attempt in range(1, attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except on as exc:
                    if attempt == attempts or (give_up and give_up(exc)):
                        log.error("%s gave up after %d attempt(s): %s", fn.__name__, attempt, exc)
                        raise
                    log.warning("%s failed (%s), attempt %d/%d, next in %.1fs", fn.__name__, exc, attempt, attempts, wait)
                    time.sleep(wait)
                    wait *= 2

        return wrapper

    return decorator
