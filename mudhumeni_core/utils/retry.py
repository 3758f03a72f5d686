"""
HTTP session with geometric retry backoff
"""

import logging
from itertools import takewhile

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from mudhumeni_core.config.settings import PRECIPITATION_CONFIG, RETRY_STATUS_CODES

logger = logging.getLogger(__name__)


class GeometricRetry(Retry):
    """
    urllib3 Retry whose sleep before retry n is
    backoff_factor * backoff_growth ** (n - 1) seconds.
    """

    DEFAULT_BACKOFF_GROWTH = PRECIPITATION_CONFIG['retry_backoff']

    def __init__(self, *args, backoff_growth: float = DEFAULT_BACKOFF_GROWTH, **kwargs):
        super().__init__(*args, **kwargs)
        self.backoff_growth = backoff_growth

    def new(self, **kw) -> "GeometricRetry":
        retry = super().new(**kw)
        retry.backoff_growth = self.backoff_growth
        return retry

    def get_backoff_time(self) -> float:
        consecutive_errors = len(list(
            takewhile(lambda h: h.redirect_location is None, reversed(self.history))
        ))
        if consecutive_errors == 0:
            return 0.0
        backoff = self.backoff_factor * (self.backoff_growth ** (consecutive_errors - 1))
        return float(max(0.0, min(self.backoff_max, backoff)))


def create_session_with_retries(max_attempts: int = PRECIPITATION_CONFIG['max_retries'],
                                retry_delay_ms: float = PRECIPITATION_CONFIG['retry_delay_ms'],
                                retry_backoff: float = PRECIPITATION_CONFIG['retry_backoff']
                                ) -> requests.Session:
    """Create requests session with geometric backoff retry strategy"""
    session = requests.Session()

    retry_strategy = GeometricRetry(
        total=max(0, max_attempts - 1),
        backoff_factor=retry_delay_ms / 1000.0,
        backoff_growth=retry_backoff,
        status_forcelist=RETRY_STATUS_CODES,
        allowed_methods=["POST", "GET"],
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    logger.debug(f"HTTP session: {max_attempts} attempts, {retry_delay_ms}ms initial delay, x{retry_backoff} backoff")
    return session
