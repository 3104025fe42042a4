"""
Generation request schemas.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from forge_runtime import is_valid_project_id


class GenerateRequest(BaseModel):
    """Body of a streaming build request."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., min_length=1, description="What to build or change")
    session_id: str | None = Field(
        default=None,
        alias="sessionId",
        description="Session to resume; a new one is created if unknown or missing",
    )
    provider: Literal["anthropic", "openai"] | None = Field(
        default=None,
        description="Model provider override",
    )
    model: str | None = Field(default=None, description="Model override")

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, value: str | None) -> str | None:
        """Session ids double as project directory names."""
        if value and not is_valid_project_id(value):
            raise ValueError(
                "sessionId must start with a letter or digit and contain only "
                "letters, digits, dots, dashes and underscores"
            )
        return value


class ProviderInfo(BaseModel):
    """A model provider and whether it can be used."""

    id: str
    configured: bool
    default_model: str
    current: bool = False
