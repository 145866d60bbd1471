"""Record assembly pipeline.

Turns the per-page partial results of one document into a reviewable record:

1. Merge the partials into the canonical record.
2. (Auto) build the editable collections and synchronize their references.
3. Audit the collections for consistency issues.
4. Summarize confidence for reviewer prioritization.

The pipeline performs no I/O; the caller supplies partials in page order.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from quote_intake.config import Settings, settings as default_settings
from quote_intake.models.records import AutoExtractionResult, HomeExtractionResult, RecordType, scalar_categories
from quote_intake.services.confidence.aggregation import (
    ConfidenceAggregation,
    SectionConfidence,
    aggregate_field_confidence,
    calculate_section_confidence,
    item_fields,
)
from quote_intake.services.editing.collection_editor import CollectionEditor
from quote_intake.services.factories import EntityFactory
from quote_intake.services.merge.merge_service import ExtractionMergeService, PartialRecord
from quote_intake.services.references.labels import driver_label, vehicle_label
from quote_intake.services.state_builder import CollectionStateBuilder, UnresolvedReference
from quote_intake.services.sync.consistency import ConsistencyIssue
from quote_intake.services.sync.synchronization_service import SyncResult
from quote_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


@runtime_checkable
class ExtractionSource(Protocol):
    """Anything that yields the partial records of one document in page order."""

    def partials(self) -> Iterable[PartialRecord]:
        ...


@dataclass
class AssembledHomeRecord:
    record: HomeExtractionResult
    confidence: ConfidenceAggregation
    categories: Dict[str, ConfidenceAggregation] = field(default_factory=dict)


@dataclass
class AssembledAutoRecord:
    record: AutoExtractionResult
    editor: CollectionEditor
    sync: SyncResult
    issues: List[ConsistencyIssue]
    unresolved: List[UnresolvedReference]
    confidence: ConfidenceAggregation
    sections: Dict[str, SectionConfidence] = field(default_factory=dict)

    @property
    def warnings(self) -> List[str]:
        return self.sync.warnings


def _category_confidence(record: Any) -> Dict[str, ConfidenceAggregation]:
    return {
        name: aggregate_field_confidence(f for _, f in item_fields(getattr(record, name)))
        for name, _ in scalar_categories(type(record))
    }


def _scalar_fields(record: Any) -> List[Any]:
    return [
        f
        for name, _ in scalar_categories(type(record))
        for _, f in item_fields(getattr(record, name))
    ]


class RecordAssembler:
    """Assembles reviewable Home and Auto records from extraction partials.

    Args:
        settings: Application settings (sync defaults, limits, keywords)
        factory: Entity factory shared by the state builder and the editor
    """

    def __init__(self, settings: Optional[Settings] = None, factory: Optional[EntityFactory] = None):
        self.settings = settings or default_settings
        self.factory = factory or EntityFactory()
        self.merge_service = ExtractionMergeService()
        self.state_builder = CollectionStateBuilder(self.settings, self.factory)
        LOGGER.info("Initialized RecordAssembler")

    def assemble_home(self, source: ExtractionSource) -> AssembledHomeRecord:
        """Merge a Home document and summarize its confidence."""
        partials = list(source.partials())
        record = self.merge_service.merge(RecordType.HOME, partials)
        confidence = aggregate_field_confidence(_scalar_fields(record))

        LOGGER.info(
            "Assembled Home record",
            extra={"partial_count": len(partials), **confidence.to_dict()},
        )
        return AssembledHomeRecord(
            record=record,
            confidence=confidence,
            categories=_category_confidence(record),
        )

    def assemble_auto(self, source: ExtractionSource) -> AssembledAutoRecord:
        """Merge an Auto document, build its collections and audit them.

        Returns:
            AssembledAutoRecord: Canonical record, an editor over the
            synchronized collections, the consistency issues left for review
            and a confidence summary
        """
        partials = list(source.partials())
        record = self.merge_service.merge(RecordType.AUTO, partials)

        built = self.state_builder.build(record)
        editor = CollectionEditor(built.state, settings=self.settings, factory=self.factory)
        sync = editor.synchronize()
        issues = editor.consistency_issues()

        state = editor.state
        sections = {
            "vehicles": calculate_section_confidence("vehicles", "Vehicles", state.vehicles, vehicle_label),
            "drivers": calculate_section_confidence("drivers", "Drivers", state.drivers, driver_label),
        }
        confidence = aggregate_field_confidence(_scalar_fields(record))

        LOGGER.info(
            "Assembled Auto record",
            extra={
                "partial_count": len(partials),
                "sync_changes": sync.changes.total,
                "consistency_issues": len(issues),
                "unresolved_references": len(built.unresolved),
                "overall_confidence": confidence.overall.value,
            },
        )
        return AssembledAutoRecord(
            record=record,
            editor=editor,
            sync=sync,
            issues=issues,
            unresolved=built.unresolved,
            confidence=confidence,
            sections=sections,
        )
