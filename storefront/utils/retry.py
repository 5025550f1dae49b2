"""
Relance avec backoff exponentiel pour les appels passerelle instables.
"""
import logging
import time
from typing import Callable, TypeVar

from tenacity import Retrying, before_sleep_log, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")

def _sleep(seconds: float) -> None:
    time.sleep(seconds)

def retry_with_backoff(fn: Callable[[], T], max_retries: int = 3, delay: float = 1.0) -> T:
    """
    Exécute fn() jusqu'à max_retries fois.
    - Attente entre deux essais: delay * 2**i (1s, 2s, 4s... avec delay=1.0)
    - Relève la dernière exception si tous les essais échouent
    """
    if max_retries < 1:
        raise ValueError("max_retries doit être >= 1")
    retrying = Retrying(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=delay),
        sleep=_sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(fn)
