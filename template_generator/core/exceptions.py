"""
Error kinds raised during template validation, generation and delivery.
"""

from typing import Dict, Optional


class TemplateGeneratorError(Exception):
    """Base class for all generator errors. Carries a human-readable message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTemplate(TemplateGeneratorError):
    """The template structure cannot be used for generation."""


class InvalidElementGeometry(InvalidTemplate):
    """An element has a negative position or a size below the minimum."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.field_name = field_name


class InvalidPageSetup(TemplateGeneratorError):
    """Page dimensions or margins do not describe a usable page."""


class RowNotFound(TemplateGeneratorError):
    """A positive row index has no corresponding data row."""

    def __init__(self, row_index: int):
        super().__init__(f"Row with index {row_index} not found")
        self.row_index = row_index


class StrategyRenderFailure(TemplateGeneratorError):
    """A positioning strategy could not produce valid content."""

    def __init__(self, strategy: str, cause: Exception):
        super().__init__(f"Strategy '{strategy}' failed: {cause}")
        self.strategy = strategy
        self.cause = cause


class ArchiveConstructionFailure(TemplateGeneratorError):
    """The archive bundling several documents could not be built or delivered."""


class DeliveryFailure(TemplateGeneratorError):
    """A delivery failed after all retry attempts."""

    def __init__(self, filename: str, attempts: int, last_error: Optional[Exception]):
        super().__init__(
            f"Failed to deliver '{filename}' after {attempts} attempts: {last_error}"
        )
        self.filename = filename
        self.attempts = attempts
        self.last_error = last_error


class BatchGenerationError(TemplateGeneratorError):
    """Batch generation attempted rows but none of them succeeded."""

    def __init__(self, errors: Dict[int, Exception]):
        super().__init__(
            f"Batch generation failed: none of {len(errors)} row(s) could be generated"
        )
        self.errors = errors


class GenerationCancelled(TemplateGeneratorError):
    """Generation was cancelled between rows."""

    def __init__(self, completed: int, total: int):
        super().__init__(f"Generation cancelled after {completed} of {total} row(s)")
        self.completed = completed
        self.total = total


class InvalidRequest(TemplateGeneratorError):
    """A generation request payload is malformed."""
