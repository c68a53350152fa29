"""
Base models for the AtPack device model.

Provides shared base models with centralized configuration for all
device model classes. Using these base models eliminates repetitive
``model_config`` declarations across the codebase.

Architecture Decision:
    Every model is frozen: the parser builds a device bottom-up and hands it
    out as a read-only value. Two ``extra`` policies exist on purpose:
    StrictModel (extra="forbid") is for aggregate objects
    (AtPack, AtPackDevice, MemoryLayout) that only the parser constructs.
    FlexibleModel (extra="ignore") is for the per-element models
    (registers, bitfields, pins) that are filled straight from XML
    attribute dictionaries where vendors add attributes of their own.
"""

from typing import Optional, Sequence, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

NamedItem = TypeVar("NamedItem")


class AtPackBaseModel(BaseModel):
    """Base model with shared configuration for all device model classes.

    Provides camelCase aliasing, immutability, and allows field
    population by either alias or Python name.
    """

    model_config = {
        "frozen": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class StrictModel(AtPackBaseModel):
    """Base model that forbids unknown fields.

    Use for aggregate objects where extra fields indicate a programming
    error (e.g., AtPack, AtPackDevice, MemoryLayout).
    """

    model_config = {
        **AtPackBaseModel.model_config,
        "extra": "forbid",
    }


class FlexibleModel(AtPackBaseModel):
    """Base model that silently ignores unknown fields.

    Use for element-level models where vendor-specific XML attributes
    should be accepted without errors.
    """

    model_config = {
        **AtPackBaseModel.model_config,
        "extra": "ignore",
    }


def find_by_name(items: Sequence[NamedItem], name: str) -> Optional[NamedItem]:
    """Return the first item with a matching ``name`` attribute."""
    return next((item for item in items if getattr(item, "name", None) == name), None)
