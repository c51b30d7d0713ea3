"""Chat completions data models.

Request/response bodies for the OpenAI-compatible ``/chat/completions``
endpoint, plus the internal completion result handed to prompts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """Single message in chat format."""

    role: str = Field(..., description="Message role: system, user, or assistant")
    content: str = Field(..., description="Message content")


class ChatCompletionRequest(BaseModel):
    """Request body for the /chat/completions endpoint."""

    model: str = Field(..., description="Model name (e.g., 'gpt-4o-mini')")
    messages: list[ChatMessage] = Field(..., description="Chat messages")
    response_format: dict[str, str] | None = Field(
        default=None,
        description="Response format: {'type': 'json_object'} for JSON mode",
    )
    temperature: float | None = Field(default=None, description="Sampling temperature")
    max_tokens: int | None = Field(
        default=None,
        description="Maximum tokens to generate",
    )


class ChatUsage(BaseModel):
    """Token usage reported by the service."""

    prompt_tokens: int = Field(default=0, description="Input token count")
    completion_tokens: int = Field(default=0, description="Output token count")
    total_tokens: int = Field(default=0, description="Total token count")


class ChatChoice(BaseModel):
    """Single choice in a chat completion response."""

    index: int = Field(default=0, description="Choice index")
    message: ChatMessage = Field(..., description="Generated message")
    finish_reason: str | None = Field(default=None, description="Reason for completion")


class ChatCompletionResponse(BaseModel):
    """Response from the /chat/completions endpoint."""

    id: str = Field(default="", description="Completion ID")
    model: str = Field(default="", description="Model that generated response")
    choices: list[ChatChoice] = Field(default_factory=list)
    usage: ChatUsage = Field(default_factory=ChatUsage)

    @property
    def content(self) -> str:
        """Trimmed text of the first choice, empty when there is none."""
        if not self.choices:
            return ""
        return self.choices[0].message.content.strip()


class CompletionResult(BaseModel):
    """Internal result from a chat completion.

    Wraps the raw response with the parsed structured output.
    """

    raw_response: str = Field(..., description="Raw text response")
    parsed: Any | None = Field(
        default=None,
        description="Parsed structured output if a schema was provided",
    )
    model: str = Field(..., description="Model that generated response")
    prompt_tokens: int | None = Field(default=None, description="Input token count")
    completion_tokens: int | None = Field(
        default=None, description="Output token count"
    )

    model_config = {"frozen": True}
