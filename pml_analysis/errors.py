"""Exception types raised by the analysis pipeline."""


class PmlAnalysisError(Exception):
    """Base class for all analysis failures."""


class FetchError(PmlAnalysisError):
    """The source table could not be retrieved (unreachable, non-200, missing file)."""

    def __init__(self, locator: str, reason: str):
        self.locator = locator
        self.reason = reason
        super().__init__(f"Could not fetch '{locator}': {reason}")


class ParseError(PmlAnalysisError):
    """The source table is not well-formed CSV."""

    def __init__(self, locator: str, reason: str, line: int = None):
        self.locator = locator
        self.reason = reason
        self.line = line
        where = f" (line {line})" if line is not None else ""
        super().__init__(f"Could not parse '{locator}'{where}: {reason}")


class SchemaError(PmlAnalysisError):
    """An expected column is absent or holds unusable values."""


class StageError(PmlAnalysisError):
    """Wraps any failure with the name of the pipeline stage it happened in."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Analysis failed at stage '{stage}': {cause}")
