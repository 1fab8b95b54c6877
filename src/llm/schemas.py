from __future__ import annotations
from typing import Any, Dict

from pydantic import AliasChoices, BaseModel, Field, field_validator

from taskagent.models import TaskKind


class ClassificationResult(BaseModel):
    """Structured output expected from the classification prompt."""

    kind: TaskKind = Field(..., validation_alias=AliasChoices("type", "kind"))
    parameters: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("parameters", mode="before")
    @classmethod
    def null_parameters(cls, v: Any) -> Any:
        return {} if v is None else v
