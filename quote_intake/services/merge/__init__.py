from quote_intake.services.merge.merge_service import (
    ExtractionMergeService,
    merge,
    merge_auto_results,
    merge_home_results,
    should_replace_field,
)

__all__ = [
    "ExtractionMergeService",
    "merge",
    "merge_auto_results",
    "merge_home_results",
    "should_replace_field",
]
