"""Confidence-annotated field values.

Every value the recognition service extracts arrives wrapped with the
confidence it was read at, whether the recognizer flagged it as uncertain and,
optionally, the raw text it was read from. These wrappers are immutable:
changing a value always produces a new field.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConfidenceLevel(str, Enum):
    """Confidence label attached to every extracted value."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


CONFIDENCE_RANKS: Dict[ConfidenceLevel, int] = {
    ConfidenceLevel.HIGH: 3,
    ConfidenceLevel.MEDIUM: 2,
    ConfidenceLevel.LOW: 1,
}


def confidence_rank(confidence: Union[ConfidenceLevel, str]) -> int:
    """Get confidence rank for comparison (higher is better)."""
    return CONFIDENCE_RANKS[ConfidenceLevel(confidence)]


class FrozenModel(BaseModel):
    """Base for immutable models that accept camelCase or snake_case keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BaseExtractionField(FrozenModel):
    """Metadata shared by every extracted field."""

    confidence: ConfidenceLevel
    flagged: bool = False
    raw_text: Optional[str] = None

    @property
    def has_value(self) -> bool:
        value = getattr(self, "value")
        if value is None:
            return False
        if isinstance(value, str):
            return value.strip() != ""
        return True

    def with_value(
        self,
        value: Any,
        confidence: Optional[ConfidenceLevel] = None,
        flagged: Optional[bool] = None,
    ) -> "BaseExtractionField":
        """Return a copy carrying a new value, optionally with new metadata."""
        update: Dict[str, Any] = {"value": value}
        if confidence is not None:
            update["confidence"] = ConfidenceLevel(confidence)
        if flagged is not None:
            update["flagged"] = flagged
        return self.model_copy(update=update)

    def cleared(self) -> "BaseExtractionField":
        """Return a copy with the value removed and the field flagged for review."""
        return self.model_copy(update={"value": None, "flagged": True})


class ExtractionField(BaseExtractionField):
    """Extracted text value."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    value: Optional[str] = None


class ExtractionBooleanField(BaseExtractionField):
    """Extracted yes/no value."""

    value: Optional[bool] = None


AnyExtractionField = Union[ExtractionField, ExtractionBooleanField]


def create_default_field(value: Optional[str] = None) -> ExtractionField:
    """Create an empty text field awaiting extraction or review."""
    return ExtractionField(value=value, confidence=ConfidenceLevel.LOW, flagged=True)


def create_default_boolean_field(value: Optional[bool] = None) -> ExtractionBooleanField:
    """Create an empty boolean field awaiting extraction or review."""
    return ExtractionBooleanField(value=value, confidence=ConfidenceLevel.LOW, flagged=True)


def create_confirmed_field(value: Optional[str]) -> ExtractionField:
    """Create a field whose value was set deliberately rather than recognized."""
    return ExtractionField(value=value, confidence=ConfidenceLevel.HIGH, flagged=False)


def text_field(alias: Optional[str] = None) -> Any:
    """Model field declaration for a text field defaulting to empty.

    Args:
        alias: Wire name when it differs from the camelCase of the attribute
    """
    if alias:
        return Field(default_factory=create_default_field, alias=alias)
    return Field(default_factory=create_default_field)


def boolean_field(alias: Optional[str] = None) -> Any:
    """Model field declaration for a boolean field defaulting to empty."""
    if alias:
        return Field(default_factory=create_default_boolean_field, alias=alias)
    return Field(default_factory=create_default_boolean_field)
