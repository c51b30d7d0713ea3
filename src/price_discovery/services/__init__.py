"""Business services: market data orchestration and price discovery."""
