"""
Exception taxonomy for the contract analysis pipeline.
"""


class AnalysisError(RuntimeError):
    """Base class for failures surfaced by the analysis pipeline."""
    pass


class ExtractionError(AnalysisError):
    """Raised when the uploaded bytes are missing or cannot be read as a PDF."""
    pass


class GenerationError(AnalysisError):
    """Raised when the LLM provider call fails after retries."""
    pass


class ValidationError(AnalysisError):
    """Raised when a decoded analysis lacks summary, risks and opportunities."""
    pass
