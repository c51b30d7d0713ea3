"""HTTP client for the government mandi price provider.

Fetches current prices, historical series and catalogs over HTTP. Transient
failures are retried according to a ``RetryPolicy``; responses are normalized
by ``price_discovery.sources.normalization``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Final

import httpx

from price_discovery.core.exceptions import SourceUnavailableError
from price_discovery.observability.logging import get_logger
from price_discovery.sources.constants import (
    CURRENT_PRICES_ENDPOINT,
    DEFAULT_LOCATIONS,
    DEFAULT_PRODUCTS,
    HEALTH_ENDPOINT,
    HISTORICAL_PRICES_ENDPOINT,
    LOCATIONS_ENDPOINT,
    PRODUCTS_ENDPOINT,
)
from price_discovery.sources.normalization import (
    normalize_identifier,
    parse_current_prices,
    parse_historical_prices,
    parse_locations,
    parse_products,
)
from price_discovery.sources.protocol import is_record_fresh
from price_discovery.sources.retry import RetryPolicy


if TYPE_CHECKING:
    from datetime import date

    from price_discovery.core.config import Settings
    from price_discovery.schemas.pricing import HistoricalPoint, RawPriceRecord


logger = get_logger(__name__)


class GovernmentMarketDataSource:
    """Market data source backed by the government mandi price API.

    In the default lenient mode every read absorbs provider failures: prices
    and history come back empty, catalogs fall back to the built-in defaults.
    In strict mode reads raise ``SourceUnavailableError`` instead, which lets
    a wrapping orchestrator tell a failed fetch from an empty one.

    Attributes:
        base_url: Provider base URL.
        timeout: Per-request timeout in seconds.
        health_timeout: Timeout for the health check.
        retry_policy: Retry behaviour for data requests.
        strict: Raise instead of degrading on provider failure.
    """

    DEFAULT_BASE_URL: Final[str] = "https://api.data.gov.in/resource/"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        api_key: str = "",
        timeout: float = 10.0,
        health_timeout: float = 5.0,
        user_agent: str = "MultilingualMandi/1.0",
        retry_policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        strict: bool = False,
    ) -> None:
        """Initialize the source.

        Args:
            base_url: Provider base URL.
            api_key: Optional bearer token.
            timeout: Per-request timeout in seconds (default: 10).
            health_timeout: Health check timeout in seconds (default: 5).
            user_agent: User-Agent header value.
            retry_policy: Retry policy (default: 3 attempts, 1s/2s backoff).
            http_client: Shared HTTP client; created on initialize if omitted.
            strict: Raise SourceUnavailableError instead of degrading.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.health_timeout = health_timeout
        self.user_agent = user_agent
        self.retry_policy = retry_policy or RetryPolicy()
        self.strict = strict
        self._http = http_client
        self._owns_http_client = http_client is None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        strict: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ) -> GovernmentMarketDataSource:
        """Build a source from the ``market_data`` settings section."""
        config = settings.market_data
        return cls(
            config.base_url,
            api_key=settings.MARKET_DATA_API_KEY,
            timeout=config.timeout,
            health_timeout=config.health_timeout,
            user_agent=config.user_agent,
            retry_policy=RetryPolicy(
                max_attempts=config.max_retries,
                backoff_base=config.backoff_base,
            ),
            http_client=http_client,
            strict=strict,
        )

    @property
    def headers(self) -> dict[str, str]:
        """Headers sent with every request."""
        headers = {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint}"

    async def initialize(self) -> None:
        """Create the HTTP client if one was not injected."""
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self.headers,
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
        logger.info("GovernmentMarketDataSource initialized", base_url=self.base_url)

    async def shutdown(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_http_client and self._http is not None:
            await self._http.aclose()
            self._http = None
        logger.info("GovernmentMarketDataSource shutdown")

    async def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            await self.initialize()
        assert self._http is not None
        return self._http

    async def _get_json(self, endpoint: str, params: dict[str, str]) -> Any:
        """GET ``endpoint`` with retries and decode the JSON body.

        Raises:
            SourceUnavailableError: When every attempt failed or the failure
                was not retryable.
        """
        http = await self._client()
        url = self._url(endpoint)

        async def attempt() -> Any:
            response = await http.get(
                url, params=params, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()

        try:
            return await self.retry_policy.run(attempt, description=endpoint)
        except httpx.HTTPStatusError as e:
            msg = f"Market data provider returned {e.response.status_code}"
            raise SourceUnavailableError(msg, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            msg = f"Cannot reach market data provider: {e}"
            raise SourceUnavailableError(msg) from e
        except ValueError as e:
            msg = f"Market data provider returned invalid JSON: {e}"
            raise SourceUnavailableError(msg) from e

    def _degrade(self, error: SourceUnavailableError, operation: str, **context: Any) -> None:
        if self.strict:
            raise error
        logger.error(
            "Market data request failed",
            operation=operation,
            error=error.message,
            **context,
        )

    async def fetch_current_prices(
        self, location: str, day: date | datetime
    ) -> list[RawPriceRecord]:
        """Fetch current prices for ``location`` on ``day``.

        Returns:
            Records with a positive price, or an empty list on failure.
        """
        params = {
            "location": normalize_identifier(location),
            "date": f"{day:%Y-%m-%d}",
            "format": "json",
        }
        try:
            payload = await self._get_json(CURRENT_PRICES_ENDPOINT, params)
        except SourceUnavailableError as e:
            self._degrade(e, "fetch_current_prices", location=location)
            return []

        records = parse_current_prices(payload, location)
        logger.info("Fetched mandi prices", location=location, count=len(records))
        return records

    async def fetch_historical(
        self, product: str, location: str, days: int
    ) -> list[HistoricalPoint]:
        """Fetch the last ``days`` days of prices for a product at a location.

        Returns:
            Points ordered oldest first, or an empty list on failure.
        """
        end = datetime.now(UTC)
        start = end - timedelta(days=days)
        params = {
            "product": normalize_identifier(product),
            "location": normalize_identifier(location),
            "startDate": f"{start:%Y-%m-%d}",
            "endDate": f"{end:%Y-%m-%d}",
            "format": "json",
        }
        try:
            payload = await self._get_json(HISTORICAL_PRICES_ENDPOINT, params)
        except SourceUnavailableError as e:
            self._degrade(e, "fetch_historical", product=product, location=location)
            return []

        points = parse_historical_prices(payload, location)
        logger.info(
            "Fetched historical prices",
            product=product,
            location=location,
            count=len(points),
        )
        return points

    async def check_health(self) -> bool:
        """Probe the health endpoint once, without retries."""
        http = await self._client()
        try:
            response = await http.get(
                self._url(HEALTH_ENDPOINT),
                headers=self.headers,
                timeout=self.health_timeout,
            )
            if response.status_code != httpx.codes.OK:
                return False
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Market data health check failed", error=str(e))
            return False
        return isinstance(body, dict) and body.get("status") == "ok"

    async def list_locations(self) -> list[str]:
        """Supported locations, or the default catalog on failure."""
        try:
            payload = await self._get_json(LOCATIONS_ENDPOINT, {"format": "json"})
        except SourceUnavailableError as e:
            self._degrade(e, "list_locations")
            return list(DEFAULT_LOCATIONS)
        return parse_locations(payload) or list(DEFAULT_LOCATIONS)

    async def list_products(self) -> list[str]:
        """Supported products, or the default catalog on failure."""
        try:
            payload = await self._get_json(PRODUCTS_ENDPOINT, {"format": "json"})
        except SourceUnavailableError as e:
            self._degrade(e, "list_products")
            return list(DEFAULT_PRODUCTS)
        return parse_products(payload) or list(DEFAULT_PRODUCTS)

    def validate_data_freshness(
        self, record: RawPriceRecord, now: datetime | None = None
    ) -> bool:
        """Younger than 24h, verified and positively priced."""
        return is_record_fresh(record, now)
