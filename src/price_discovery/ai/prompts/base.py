"""Shared prompt machinery.

A prompt pairs a template with the schema its JSON reply must match and the
sampling options it is sent with. Helpers here render price history lines
the same way across prompts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel


if TYPE_CHECKING:
    from price_discovery.schemas.pricing import HistoricalPoint


class BasePrompt[T: BaseModel](ABC):
    """Base class for all AI prompts.

    Example:
        ```python
        class SentimentPrompt(BasePrompt[SentimentResult]):
            output_schema = SentimentResult
            system_prompt = "You are a market sentiment analyst."

            def format(self, product: ProductQuery) -> str:
                return f"Analyze market sentiment for {product.name}"
        ```
    """

    # Override in subclasses
    output_schema: ClassVar[type[BaseModel]]
    """Schema the JSON reply is validated against."""

    system_prompt: ClassVar[str | None] = None
    """Optional system prompt to set context for the model."""

    temperature: ClassVar[float] = 0.1
    """Sampling temperature; estimates stay close to deterministic."""

    max_tokens: ClassVar[int | None] = None
    """Maximum tokens to generate (None = model default)."""

    @abstractmethod
    def format(self, **kwargs: Any) -> str:
        """Format the prompt template with input variables.

        Raises:
            ValueError: If required variables are missing.
        """
        ...

    @property
    def name(self) -> str:
        """Prompt identifier for logging."""
        return self.__class__.__name__

    def get_options(self) -> dict[str, Any]:
        """Get model options for this prompt."""
        options: dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens is not None:
            options["max_tokens"] = self.max_tokens
        return options


def require(kwargs: dict[str, Any], key: str) -> Any:
    """Fetch a mandatory prompt argument."""
    value = kwargs.get(key)
    if value is None:
        msg = f"Missing required '{key}' argument"
        raise ValueError(msg)
    return value


def format_history_line(point: HistoricalPoint, unit: str | None = None) -> str:
    """``2024-01-15: ₹25.5/kg (Volume: 120)``; unit and volume are optional."""
    line = f"{point.date:%Y-%m-%d}: ₹{point.price:g}"
    if unit is not None:
        line += f"/{unit} (Volume: {point.volume:g})"
    return line
