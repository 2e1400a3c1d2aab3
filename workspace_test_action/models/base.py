"""Base model for validated settings and parsed tool output."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model; unknown fields in tool output are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")
