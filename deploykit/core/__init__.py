"""Core foundations: strict models, errors, registries and settings."""

from .models import StrictBaseModel

__all__ = ["StrictBaseModel"]
