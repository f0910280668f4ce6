"""
Exception hierarchy for codeask.

Indexing treats FileAccessError, ProviderError and StoreError as per-file
failures; querying surfaces them to the caller. ConfigError is always fatal.
"""


class CodeAskError(Exception):
    """Base exception for all codeask errors."""
    pass


class ConfigError(CodeAskError):
    """Raised when configuration is missing or invalid."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class FileAccessError(CodeAskError):
    """Raised when a file cannot be read."""
    pass


class ProviderError(CodeAskError):
    """Raised when an embedding or generation call fails."""
    pass


class StoreError(CodeAskError):
    """Raised when a vector store operation fails."""
    pass
