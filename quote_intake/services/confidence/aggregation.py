"""Confidence and completion metrics for reviewer prioritization."""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from pydantic import BaseModel

from quote_intake.models.fields import BaseExtractionField, ConfidenceLevel, confidence_rank

FieldCollection = Union[Mapping[str, BaseExtractionField], Iterable[BaseExtractionField]]

HIGH_THRESHOLD = 0.7
LOW_THRESHOLD = 0.3


@dataclass(frozen=True)
class ConfidenceAggregation:
    overall: ConfidenceLevel
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
    total_fields: int = 0
    flagged_count: int = 0
    completed_count: int = 0
    completion_percentage: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall.value,
            "high_count": self.high_count,
            "medium_count": self.medium_count,
            "low_count": self.low_count,
            "total_fields": self.total_fields,
            "flagged_count": self.flagged_count,
            "completed_count": self.completed_count,
            "completion_percentage": self.completion_percentage,
        }


@dataclass(frozen=True)
class ItemConfidence:
    item_id: str
    item_label: str
    confidence: ConfidenceAggregation


@dataclass(frozen=True)
class SectionConfidence:
    section_key: str
    section_label: str
    confidence: ConfidenceAggregation
    items: List[ItemConfidence] = field(default_factory=list)


def _percentage(part: int, total: int) -> int:
    # Half-up rounding
    if total == 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


def _is_completed(f: BaseExtractionField) -> bool:
    value = getattr(f, "value", None)
    return value is not None and value != ""


def calculate_overall_confidence(high_count: int, medium_count: int, low_count: int) -> ConfidenceLevel:
    """Overall confidence from per-level field counts.

    At least 70% high is high, otherwise at least 30% low is low, otherwise
    medium. No fields at all is low.
    """
    total = high_count + medium_count + low_count
    if total == 0:
        return ConfidenceLevel.LOW
    if high_count / total >= HIGH_THRESHOLD:
        return ConfidenceLevel.HIGH
    if low_count / total >= LOW_THRESHOLD:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.MEDIUM


def compare_confidence(a: ConfidenceLevel, b: ConfidenceLevel) -> int:
    return confidence_rank(a) - confidence_rank(b)


def aggregate_field_confidence(fields: FieldCollection) -> ConfidenceAggregation:
    """Count fields by confidence, flag and completion.

    Args:
        fields: Mapping of name to field, or any iterable of fields

    Returns:
        ConfidenceAggregation: Counts plus the overall level
    """
    values = list(fields.values()) if isinstance(fields, Mapping) else list(fields)
    counts = {level: 0 for level in ConfidenceLevel}
    for f in values:
        counts[ConfidenceLevel(f.confidence)] += 1
    flagged = sum(1 for f in values if f.flagged)
    completed = sum(1 for f in values if _is_completed(f))

    return ConfidenceAggregation(
        overall=calculate_overall_confidence(
            counts[ConfidenceLevel.HIGH], counts[ConfidenceLevel.MEDIUM], counts[ConfidenceLevel.LOW]
        ),
        high_count=counts[ConfidenceLevel.HIGH],
        medium_count=counts[ConfidenceLevel.MEDIUM],
        low_count=counts[ConfidenceLevel.LOW],
        total_fields=len(values),
        flagged_count=flagged,
        completed_count=completed,
        completion_percentage=_percentage(completed, len(values)),
    )


def item_fields(item: BaseModel) -> List[Tuple[str, BaseExtractionField]]:
    """Extraction fields of an item or category, in declaration order."""
    return [
        (name, getattr(item, name))
        for name in type(item).model_fields
        if isinstance(getattr(item, name), BaseExtractionField)
    ]


def calculate_item_confidence(item: BaseModel, label: Callable[[Any], str]) -> ItemConfidence:
    return ItemConfidence(
        item_id=getattr(item, "id", ""),
        item_label=label(item),
        confidence=aggregate_field_confidence(f for _, f in item_fields(item)),
    )


def calculate_section_confidence(
    section_key: str,
    section_label: str,
    items: Sequence[BaseModel],
    label: Callable[[Any], str],
) -> SectionConfidence:
    """Confidence of a whole collection, with a breakdown per item."""
    item_confidences = [calculate_item_confidence(item, label) for item in items]
    totals = [c.confidence for c in item_confidences]

    high = sum(c.high_count for c in totals)
    medium = sum(c.medium_count for c in totals)
    low = sum(c.low_count for c in totals)
    total_fields = sum(c.total_fields for c in totals)
    completed = sum(c.completed_count for c in totals)

    overall = ConfidenceAggregation(
        overall=calculate_overall_confidence(high, medium, low),
        high_count=high,
        medium_count=medium,
        low_count=low,
        total_fields=total_fields,
        flagged_count=sum(c.flagged_count for c in totals),
        completed_count=completed,
        completion_percentage=_percentage(completed, total_fields),
    )
    return SectionConfidence(
        section_key=section_key,
        section_label=section_label,
        confidence=overall,
        items=item_confidences,
    )


def get_flagged_fields(item: BaseModel) -> List[Tuple[str, BaseExtractionField]]:
    return [(name, f) for name, f in item_fields(item) if f.flagged]


def get_low_confidence_fields(item: BaseModel) -> List[Tuple[str, BaseExtractionField]]:
    return [(name, f) for name, f in item_fields(item) if f.confidence == ConfidenceLevel.LOW]


def count_flagged_fields(items: Iterable[BaseModel]) -> int:
    return sum(len(get_flagged_fields(item)) for item in items)


def sort_items_by_issue_count(items: Sequence[BaseModel]) -> List[BaseModel]:
    """Items with the most flagged plus low-confidence fields first.

    The sort is stable, so items with equal issue counts keep their order.
    """
    return sorted(
        items,
        key=lambda item: len(get_flagged_fields(item)) + len(get_low_confidence_fields(item)),
        reverse=True,
    )
