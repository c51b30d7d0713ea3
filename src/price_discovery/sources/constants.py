"""Constants shared by market data sources."""

from __future__ import annotations

from datetime import timedelta
from typing import Final


# Provider tag attached to records fetched over HTTP
GOVERNMENT_SOURCE_TAG: Final[str] = "government_api"
MOCK_SOURCE_TAG: Final[str] = "mock"

# A record older than this is never considered fresh
MAX_RECORD_AGE: Final[timedelta] = timedelta(hours=24)

# Returned when the provider's catalog endpoints cannot be reached
DEFAULT_LOCATIONS: Final[tuple[str, ...]] = (
    "Delhi",
    "Mumbai",
    "Bangalore",
    "Chennai",
    "Kolkata",
    "Hyderabad",
    "Pune",
    "Ahmedabad",
    "Jaipur",
    "Lucknow",
)

DEFAULT_PRODUCTS: Final[tuple[str, ...]] = (
    "Rice",
    "Wheat",
    "Onion",
    "Potato",
    "Tomato",
    "Garlic",
    "Ginger",
    "Turmeric",
    "Coriander",
    "Cumin",
)

# Endpoint paths relative to the provider base URL
CURRENT_PRICES_ENDPOINT: Final[str] = "current-prices"
HISTORICAL_PRICES_ENDPOINT: Final[str] = "historical-prices"
LOCATIONS_ENDPOINT: Final[str] = "locations"
PRODUCTS_ENDPOINT: Final[str] = "products"
HEALTH_ENDPOINT: Final[str] = "health"
