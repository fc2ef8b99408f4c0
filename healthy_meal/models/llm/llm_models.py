"""Data models for chat-completion requests and responses backed by Pydantic."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

VALID_ROLES = ("system", "user", "assistant")


class ChatMessage(BaseModel):
    """One conversational turn.

    ``role`` is a plain string so that unknown roles reach ``validate_messages``
    and fail there with a classified error.
    """

    model_config = ConfigDict(extra="forbid")

    role: str = Field(description="Author of the turn: system, user or assistant.")
    content: str = Field(description="Text of the turn.")


class JsonSchemaSpec(BaseModel):
    """The ``json_schema`` block of a structured-output response format."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(description="Schema name reported to the upstream.")
    strict: bool = Field(default=True, description="Whether the upstream must follow it exactly.")
    schema_: dict[str, Any] = Field(
        alias="schema",
        serialization_alias="schema",
        description="JSON Schema the generated content must satisfy.",
    )


class ResponseFormatSpec(BaseModel):
    """Instruction to constrain the completion to a JSON schema."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["json_schema"] = "json_schema"
    json_schema: JsonSchemaSpec

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ChatCompletionRequest(BaseModel):
    """Request parameters for one stateless chat completion."""

    model_config = ConfigDict(extra="forbid")

    model: str = Field(default="", description="Upstream model identifier.")
    messages: list[ChatMessage] = Field(
        default_factory=list, description="Conversation messages, ending on a user turn."
    )
    temperature: float | None = Field(
        default=None, description="Sampling temperature; 1.0 is sent when unset."
    )
    max_tokens: int | None = Field(
        default=None, description="Maximum tokens to generate in the completion."
    )
    top_p: float | None = Field(default=None, description="Nucleus sampling parameter.")
    frequency_penalty: float | None = Field(default=None, description="Frequency penalty.")
    presence_penalty: float | None = Field(default=None, description="Presence penalty.")
    stop: list[str] | None = Field(default=None, description="Stop sequences.")
    response_format: ResponseFormatSpec | None = Field(
        default=None, description="Structured output schema requested from the model."
    )


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChoiceMessage(BaseModel):
    role: str
    content: Any = Field(
        description="Raw text, or the decoded JSON value when a response format was requested."
    )


class Choice(BaseModel):
    index: int
    message: ChoiceMessage
    finish_reason: str | None = None


class ChatCompletionResponse(BaseModel):
    """Parsed chat completion returned to callers."""

    id: str
    model: str
    created: int
    choices: list[Choice] = Field(min_length=1)
    usage: Usage | None = None

    @property
    def content(self) -> Any:
        """Content of the first choice."""
        return self.choices[0].message.content


class ModelInfo(BaseModel):
    """One entry of the upstream model catalog; unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str | None = None


class ModelListResponse(BaseModel):
    data: list[ModelInfo]
