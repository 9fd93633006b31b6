"""
Response envelopes.

``ToolResponse`` is what every tool handler returns and what the MCP host turns
into protocol content. ``CliResponse`` is the envelope the command line prints,
either as text or as JSON for other agents.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, MutableMapping, Sequence

from pydantic import BaseModel, Field

__all__ = [
    "CliResponse",
    "ResponsePayload",
    "TextContent",
    "ToolResponse",
    "create_error_response",
    "create_text_response",
]

ResponsePayload = Mapping[str, Any]


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResponse(BaseModel):
    content: list[TextContent] = Field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        return "\n".join(item.text for item in self.content)


def create_text_response(text: str, is_error: bool = False) -> ToolResponse:
    return ToolResponse(content=[TextContent(text=text)], is_error=is_error)


def create_error_response(message: str, details: str | None = None) -> ToolResponse:
    text = f"Error: {message}"
    if details:
        text = f"{text}\nDetails: {details}"
    return create_text_response(text, is_error=True)


@dataclass(slots=True)
class CliResponse:
    """Structured envelope emitted by CLI commands."""

    status: Literal["success", "error"]
    message: str
    payload: ResponsePayload | None = None
    errors: tuple[str, ...] = ()
    source: str | None = None
    metadata: MutableMapping[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, *, payload: ResponsePayload | None = None, message: str = "OK", source: str | None = None) -> "CliResponse":
        return cls(status="success", message=message, payload=payload, source=source)

    @classmethod
    def error(cls, message: str, *, errors: Sequence[str] = (), source: str | None = None) -> "CliResponse":
        return cls(status="error", message=message, errors=tuple(errors), source=source)

    def to_dict(self) -> MutableMapping[str, Any]:
        data: MutableMapping[str, Any] = {"status": self.status, "message": self.message}
        if self.payload is not None:
            data["payload"] = self.payload
        if self.errors:
            data["errors"] = list(self.errors)
        if self.source:
            data["source"] = self.source
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False, default=str)
