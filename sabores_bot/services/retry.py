import time
from dataclasses import dataclass, field
from typing import Callable, Tuple, Type, TypeVar

from sabores_bot.logging_config import get_logger

logger = get_logger("retry")

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry a call with exponential backoff: base, base*2, base*4, ...

    With the defaults a failing call is attempted 4 times in total, sleeping
    2s, 4s and 8s in between, and the last error is re-raised.
    """

    max_retries: int = 3
    base_delay_seconds: float = 2.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delay_for(self, retry_number: int) -> float:
        return self.base_delay_seconds * (2 ** max(retry_number - 1, 0))

    def call(self, func: Callable[..., T], *args, **kwargs) -> T:
        retry_number = 0
        while True:
            try:
                return func(*args, **kwargs)
            except self.retry_on as exc:
                if retry_number >= self.max_retries:
                    logger.error(f"Giving up after {retry_number} retries: {exc}")
                    raise
                retry_number += 1
                delay = self.delay_for(retry_number)
                logger.warning(
                    f"Retry {retry_number}/{self.max_retries} after {delay}s",
                    extra={"context": {"error": str(exc)}},
                )
                self.sleep(delay)
