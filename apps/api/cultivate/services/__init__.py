from .suggestions import (
    ExtractionPipeline,
    ProvenanceService,
    ReprocessController,
    SuggestionLifecycle,
)

__all__ = ["ExtractionPipeline", "ProvenanceService", "ReprocessController", "SuggestionLifecycle"]
