"""Field completion handling."""

from .service import CompletionOutcome, record_completion

__all__ = ["CompletionOutcome", "record_completion"]
