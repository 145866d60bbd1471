"""Extraction result merging.

Multi-page forms are recognized one page at a time, so each page yields a
partial record. This module folds the partials, in page order, into a single
canonical record:

- Scalar fields: a value replaces what is already there when the existing
  field is flagged or empty, or when the incoming value was read with strictly
  higher confidence. On equal confidence the first value seen is kept.
- Array collections: items are appended unless an item with the same
  identity key (VIN, license number, vehicle reference, incident date and
  driver) is already present, in which case the incoming item is dropped whole.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from quote_intake.core.exceptions import MalformedEntityError
from quote_intake.models.fields import BaseExtractionField, confidence_rank
from quote_intake.models.records import (
    AutoAccidentOrTicket,
    AutoAdditionalDriver,
    AutoExtractionResult,
    AutoVehicle,
    AutoVehicleDeductible,
    AutoVehicleLienholder,
    Category,
    HomeExtractionResult,
    RecordType,
    scalar_categories,
)
from quote_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

PartialRecord = Union[Mapping[str, Any], BaseModel]
IdentityKey = Callable[[Any], Optional[Hashable]]


def should_replace_field(existing: BaseExtractionField, incoming: BaseExtractionField) -> bool:
    """Check if a new field should replace an existing field based on confidence.

    Args:
        existing: Field currently held by the canonical record
        incoming: Field read from the next partial record

    Returns:
        True when the existing field is flagged or empty, or when the incoming
        field has strictly higher confidence
    """
    if existing.flagged or existing.value is None:
        return True
    return confidence_rank(incoming.confidence) > confidence_rank(existing.confidence)


# =============================================================================
# Identity keys for array deduplication
# =============================================================================

def vehicle_identity(vehicle: AutoVehicle) -> Optional[Hashable]:
    return vehicle.vin.value


def driver_identity(driver: AutoAdditionalDriver) -> Optional[Hashable]:
    return driver.license_number.value


def vehicle_reference_identity(
    item: Union[AutoVehicleDeductible, AutoVehicleLienholder]
) -> Optional[Hashable]:
    return item.vehicle_reference.value


def incident_identity(incident: AutoAccidentOrTicket) -> Optional[Hashable]:
    # An incident without a date is never treated as a duplicate
    if incident.date.value is None:
        return None
    return (incident.date.value, incident.driver_name.value)


@dataclass(frozen=True)
class ArrayMergeSpec:
    """How one array collection of a record is merged."""
    attribute: str
    item_type: Type[BaseModel]
    identity: IdentityKey


AUTO_ARRAY_SPECS: Tuple[ArrayMergeSpec, ...] = (
    ArrayMergeSpec("vehicles", AutoVehicle, vehicle_identity),
    ArrayMergeSpec("additional_drivers", AutoAdditionalDriver, driver_identity),
    ArrayMergeSpec("deductibles", AutoVehicleDeductible, vehicle_reference_identity),
    ArrayMergeSpec("lienholders", AutoVehicleLienholder, vehicle_reference_identity),
    ArrayMergeSpec("accidents_or_tickets", AutoAccidentOrTicket, incident_identity),
)


@dataclass
class MergeStats:
    """Counters collected while folding partial records."""
    partials: int = 0
    fields_replaced: int = 0
    items_appended: int = 0
    duplicates_skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "partials": self.partials,
            "fields_replaced": self.fields_replaced,
            "items_appended": self.items_appended,
            "duplicates_skipped": self.duplicates_skipped,
        }


# =============================================================================
# Helpers
# =============================================================================

def _as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    """View a partial record or category as a mapping, or None if it is not one."""
    if isinstance(value, BaseModel):
        return dict(value)
    if isinstance(value, Mapping):
        return value
    return None


def _lookup(mapping: Mapping[str, Any], name: str, alias: Optional[str]) -> Any:
    """Read a key by its wire alias, falling back to the attribute name."""
    if alias and alias in mapping:
        return mapping[alias]
    return mapping.get(name)


def _is_field_shaped(raw: Mapping[str, Any]) -> bool:
    return "value" in raw and "confidence" in raw and "flagged" in raw


def _coerce_field(field_type: Type[BaseExtractionField], raw: Any) -> Optional[BaseExtractionField]:
    """Turn a raw partial field into a typed field, or None if it is not a field.

    Raises:
        MalformedEntityError: If the value is field-shaped but fails validation
    """
    if raw is None:
        return None
    if isinstance(raw, field_type):
        return raw
    if isinstance(raw, BaseExtractionField):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping) or not _is_field_shaped(raw):
        return None
    try:
        return field_type.model_validate(raw)
    except PydanticValidationError as e:
        raise MalformedEntityError(
            f"Malformed {field_type.__name__}: {e.error_count()} error(s)",
            original_error=e,
        )


def _coerce_item(item_type: Type[BaseModel], raw: Any) -> BaseModel:
    """Turn a raw array item into a typed item.

    Entries that are null or not field-shaped are dropped so the model
    defaults fill them in, as for scalar categories.
    """
    if isinstance(raw, item_type):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(by_alias=True)
    if isinstance(raw, Mapping):
        raw = {
            key: value
            for key, value in raw.items()
            if isinstance(value, BaseExtractionField)
            or (isinstance(value, Mapping) and _is_field_shaped(value))
        }
    try:
        return item_type.model_validate(raw)
    except PydanticValidationError as e:
        raise MalformedEntityError(
            f"Malformed {item_type.__name__}: {e.error_count()} error(s)",
            original_error=e,
        )


def _merge_category(
    current: Dict[str, BaseExtractionField],
    category_type: Type[Category],
    partial_category: Mapping[str, Any],
    category_name: str,
) -> int:
    """Fold one partial category into the accumulated fields.

    Only fields declared on ``category_type`` are visited.

    Returns:
        Number of fields replaced
    """
    replaced = 0
    for name, info in category_type.model_fields.items():
        incoming = _coerce_field(info.annotation, _lookup(partial_category, name, info.alias))
        if incoming is None or incoming.value is None:
            continue

        existing = current[name]
        if should_replace_field(existing, incoming):
            current[name] = incoming
            replaced += 1
            LOGGER.debug(
                f"Replaced {category_name}.{name}",
                extra={
                    "existing_confidence": existing.confidence.value,
                    "incoming_confidence": incoming.confidence.value,
                    "existing_flagged": existing.flagged,
                },
            )
    return replaced


def _merge_array(
    items: List[BaseModel],
    seen_keys: set,
    spec: ArrayMergeSpec,
    incoming_items: Iterable[Any],
    stats: MergeStats,
) -> None:
    """Append incoming items whose identity key has not been seen yet."""
    for raw in incoming_items:
        item = _coerce_item(spec.item_type, raw)
        key = spec.identity(item)
        if key is not None and key in seen_keys:
            stats.duplicates_skipped += 1
            LOGGER.debug(
                f"Skipped duplicate {spec.attribute} item",
                extra={"identity_key": str(key)},
            )
            continue
        items.append(item)
        if key is not None:
            seen_keys.add(key)
        stats.items_appended += 1


def _fold_scalars(
    record_type: Type[BaseModel],
    partials: Sequence[PartialRecord],
    stats: MergeStats,
    array_specs: Sequence[ArrayMergeSpec] = (),
) -> Tuple[Dict[str, Dict[str, BaseExtractionField]], Dict[str, List[BaseModel]]]:
    default_record = record_type()
    categories = scalar_categories(record_type)
    accumulated = {
        name: dict(getattr(default_record, name))
        for name, _ in categories
    }
    arrays: Dict[str, List[BaseModel]] = {spec.attribute: [] for spec in array_specs}
    seen: Dict[str, set] = {spec.attribute: set() for spec in array_specs}

    for partial in partials:
        stats.partials += 1
        partial_mapping = _as_mapping(partial)
        if partial_mapping is None:
            LOGGER.debug("Ignored partial record that is not a mapping")
            continue

        for name, category_type in categories:
            info = record_type.model_fields[name]
            partial_category = _as_mapping(_lookup(partial_mapping, name, info.alias))
            if not partial_category:
                continue
            stats.fields_replaced += _merge_category(
                accumulated[name], category_type, partial_category, name
            )

        for spec in array_specs:
            info = record_type.model_fields[spec.attribute]
            incoming = _lookup(partial_mapping, spec.attribute, info.alias)
            if not isinstance(incoming, (list, tuple)):
                continue
            _merge_array(arrays[spec.attribute], seen[spec.attribute], spec, incoming, stats)

    return accumulated, arrays


# =============================================================================
# Public merge functions
# =============================================================================

def merge_home_results(partials: Sequence[PartialRecord]) -> HomeExtractionResult:
    """Merge partial Home extraction results into a complete result.

    Args:
        partials: Partial records in the order their pages were processed

    Returns:
        HomeExtractionResult: Canonical record
    """
    stats = MergeStats()
    accumulated, _ = _fold_scalars(HomeExtractionResult, partials, stats)
    result = HomeExtractionResult(**{
        name: category_type(**accumulated[name])
        for name, category_type in scalar_categories(HomeExtractionResult)
    })

    LOGGER.info(
        f"Merged {stats.partials} partial Home result(s)",
        extra=stats.to_dict(),
    )
    return result


def merge_auto_results(partials: Sequence[PartialRecord]) -> AutoExtractionResult:
    """Merge partial Auto extraction results into a complete result.

    Handles both the scalar categories (personal, coverage, prior insurance)
    and the array collections.

    Args:
        partials: Partial records in the order their pages were processed

    Returns:
        AutoExtractionResult: Canonical record
    """
    stats = MergeStats()
    accumulated, arrays = _fold_scalars(
        AutoExtractionResult, partials, stats, AUTO_ARRAY_SPECS
    )
    values: Dict[str, Any] = {
        name: category_type(**accumulated[name])
        for name, category_type in scalar_categories(AutoExtractionResult)
    }
    values.update({name: tuple(items) for name, items in arrays.items()})
    result = AutoExtractionResult(**values)

    LOGGER.info(
        f"Merged {stats.partials} partial Auto result(s)",
        extra=stats.to_dict(),
    )
    return result


def merge(
    partials: Sequence[PartialRecord],
    record_type: RecordType = RecordType.AUTO,
) -> Union[HomeExtractionResult, AutoExtractionResult]:
    """Merge partials into the canonical record of the given type."""
    if RecordType(record_type) == RecordType.HOME:
        return merge_home_results(partials)
    return merge_auto_results(partials)


class ExtractionMergeService:
    """Folds per-page extraction results into canonical records.

    The caller must supply partials in page order: ties on confidence are
    resolved in favour of the earlier page.
    """

    def __init__(self):
        LOGGER.info("Initialized ExtractionMergeService")

    def merge(
        self,
        record_type: RecordType,
        partials: Sequence[PartialRecord],
    ) -> Union[HomeExtractionResult, AutoExtractionResult]:
        """Merge partial results of one document.

        Args:
            record_type: Quote type the form was extracted for
            partials: Partial records in page order

        Returns:
            Canonical record
        """
        LOGGER.debug(
            "Starting extraction merge",
            extra={"record_type": RecordType(record_type).value, "partial_count": len(partials)},
        )
        return merge(partials, record_type)
