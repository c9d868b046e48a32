import logging
from enum import Enum
from typing import Optional, List, Any
import requests
from tenacity import (Retrying, RetryCallState, retry_if_exception,
                      stop_after_attempt)

from .config import Config
from .exceptions import (ThrottledExhausted, UpstreamError, TransportError)
from .models import TokenInfo, Holder, Trade, PnLReport, TraderRecord, FirstBuyer
from .parsers import (parse_token_info, parse_holders, parse_trades,
                      parse_portfolio_value, parse_pnl, parse_top_traders,
                      parse_first_buyers)
from .rate_limiting import Clock, RequestScheduler, ResponseCache, cache_key

# Set up logging
logger = logging.getLogger(__name__)


class EndpointKind(Enum):
    """API endpoints: cache prefix, path template, cacheable."""

    TOKEN_INFO = ("info", "/tokens/{subject}", True)
    HOLDERS = ("holders", "/tokens/{subject}/holders", False)
    WALLET_BASIC = ("basic", "/wallet/{subject}/basic", False)
    WALLET_TRADES = ("trades", "/wallet/{subject}/trades", False)
    WALLET_PNL = ("pnl", "/pnl/{subject}", False)
    TOP_TRADERS = ("top", "/top-traders/{subject}", True)
    FIRST_BUYERS = ("first-buyers", "/first-buyers/{subject}", False)

    def __init__(self, prefix: str, path: str, cacheable: bool):
        self.prefix = prefix
        self.path = path
        self.cacheable = cacheable


class RetryBudget:
    """
    Retry allowances for one logical request, counted per failure class.

    429 answers, transport failures and 5xx answers each have their own cap.
    A 4xx answer is final on the first attempt.
    """

    def __init__(self, config: Config):
        self.config = config
        self.limits = {
            ThrottledExhausted: config.max_throttle_retries,
            TransportError: config.max_transport_retries,
            UpstreamError: config.max_upstream_retries,
        }
        self.used = dict.fromkeys(self.limits, 0)

    @property
    def max_attempts(self) -> int:
        return 1 + sum(max(0, limit) for limit in self.limits.values())

    def consume(self, error: BaseException) -> bool:
        """Spend one retry on ``error`` if its class has any left."""
        if isinstance(error, UpstreamError) and error.status_code < 500:
            return False
        for error_cls, limit in self.limits.items():
            if isinstance(error, error_cls):
                if self.used[error_cls] >= limit:
                    return False
                self.used[error_cls] += 1
                return True
        return False

    def delay(self, retry_state: RetryCallState) -> float:
        """Linear backoff for throttling, the flat retry delay otherwise."""
        if isinstance(retry_state.outcome.exception(), ThrottledExhausted):
            return self.config.throttle_backoff * self.used[ThrottledExhausted]
        return self.config.retry_delay


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        f"{retry_state.outcome.exception()}. Retrying in "
        f"{retry_state.next_action.sleep:.1f}s "
        f"(attempt {retry_state.attempt_number + 1})")


class SolanaTrackerClient:
    """
    Client for the SolanaTracker data API.

    Every request from every caller goes through one scheduler, so at most
    one request is in flight and request starts are spaced by
    ``config.min_request_interval``. Token metadata and top-trader lists are
    memoized for the lifetime of the client.
    """

    def __init__(self, config: Config, session: Optional[requests.Session] = None,
                 clock: Optional[Clock] = None):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.api_key = config.api_key
        self.clock = clock or Clock()
        self.scheduler = RequestScheduler(
            config.min_request_interval, self.clock)
        self.cache = ResponseCache()
        self.session = session or requests.Session()

    def _headers(self):
        return {"x-api-key": self.api_key}

    def fetch(self, kind: EndpointKind, subject: str) -> Any:
        """
        Fetch one endpoint, honouring pacing, retries and the cache.

        Raises ThrottledExhausted, UpstreamError or TransportError once the
        matching retry budget is spent. A 2xx body that is not JSON is
        returned as None.
        """
        key = cache_key(kind.prefix, subject)
        url = f"{self.base_url}{kind.path.format(subject=subject)}"

        with self.scheduler.serialized():
            if kind.cacheable and key in self.cache:
                logger.debug(f"Using cached {kind.prefix} for {subject}")
                return self.cache.get(key)

            budget = RetryBudget(self.config)
            retrying = Retrying(
                retry=retry_if_exception(budget.consume),
                stop=stop_after_attempt(budget.max_attempts),
                wait=budget.delay,
                # Delays move the shared slot; the next attempt sleeps in wait_for_slot
                sleep=self.scheduler.defer,
                before_sleep=_log_retry,
                reraise=True,
            )
            data = retrying(self._request_once, kind, subject, url)

            if kind.cacheable and data is not None:
                self.cache.set(key, data)
            return data

    def _request_once(self, kind: EndpointKind, subject: str, url: str) -> Any:
        """One paced attempt. Failures surface as typed errors for the retry policy."""
        self.scheduler.wait_for_slot()
        logger.debug(f"Fetching: {url}")

        try:
            response = self.session.get(
                url, headers=self._headers(),
                timeout=self.config.request_timeout)
        except requests.RequestException as e:
            raise TransportError(f"Network failure for {url}: {e}",
                                 kind=kind.prefix, subject=subject) from e

        status = response.status_code
        if status == 429:
            raise ThrottledExhausted(f"Rate limit exceeded for {url}",
                                     kind=kind.prefix, subject=subject)
        if not 200 <= status < 300:
            raise UpstreamError(f"API error: {status} for {url}",
                                status_code=status,
                                kind=kind.prefix, subject=subject)

        try:
            return response.json()
        except ValueError:
            logger.warning(f"Malformed JSON body from {url}")
            return None

    # ------------------------------------------------------------------
    # Typed endpoint helpers
    # ------------------------------------------------------------------

    def get_token_info(self, token_address: str) -> TokenInfo:
        """Get token metadata. Errors propagate to the caller."""
        data = self.fetch(EndpointKind.TOKEN_INFO, token_address)
        return parse_token_info(token_address, data)

    def get_token_holders(self, token_address: str) -> List[Holder]:
        """
        Get a token's holders. Never cached.

        An empty first answer is retried exactly once after
        ``config.empty_holders_retry_delay``; the API intermittently reports
        no holders for tokens that have them.
        """
        holders = parse_holders(
            self.fetch(EndpointKind.HOLDERS, token_address))

        if not holders:
            logger.warning(
                f"Received 0 holders for {token_address}. Retrying once after delay...")
            with self.scheduler.serialized():
                self.scheduler.defer(self.config.empty_holders_retry_delay)
            holders = parse_holders(
                self.fetch(EndpointKind.HOLDERS, token_address))

        return holders

    def get_wallet_basic(self, wallet: str) -> float:
        """Total portfolio value in USD."""
        return parse_portfolio_value(self.fetch(EndpointKind.WALLET_BASIC, wallet))

    def get_wallet_trades(self, wallet: str) -> List[Trade]:
        return parse_trades(self.fetch(EndpointKind.WALLET_TRADES, wallet))

    def get_wallet_pnl(self, wallet: str) -> Optional[PnLReport]:
        """PnL report, or None when the endpoint returned nothing usable."""
        return parse_pnl(self.fetch(EndpointKind.WALLET_PNL, wallet))

    def get_top_traders(self, token_address: str) -> List[TraderRecord]:
        return parse_top_traders(self.fetch(EndpointKind.TOP_TRADERS, token_address))

    def get_first_buyers(self, token_address: str) -> List[FirstBuyer]:
        return parse_first_buyers(self.fetch(EndpointKind.FIRST_BUYERS, token_address))
