"""Frozen pydantic base for the engine's structured records."""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Immutable record validated without type coercion.

    Error contexts and parameter sources derive from it; unknown fields are
    rejected and instances cannot be modified once created.
    """

    model_config = ConfigDict(
        strict=True,
        extra="forbid",
        frozen=True,
        validate_default=True,
    )


__all__ = ["StrictBaseModel"]
