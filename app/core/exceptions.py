"""Core custom exceptions for the application."""


class PipelineError(Exception):
    """Base exception for design-pipeline errors."""


class ConfigurationError(PipelineError):
    """Exception for configuration-related errors (e.g., missing API key, missing prompt templates)."""


class RefineError(PipelineError):
    """The refine stage could not produce a brief (upstream failure or empty content)."""


class GenerateError(PipelineError):
    """The streaming generate stage failed or produced no document."""
