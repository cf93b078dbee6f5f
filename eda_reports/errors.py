"""Error kinds raised by the report pipelines.

Every stage raises one of these and nothing downstream retries or falls
back to a partial table; the entry point reports the failure and exits.
"""


class PipelineError(Exception):
    """Base class for all report pipeline failures."""


class FetchError(PipelineError):
    """The source could not be retrieved, or its payload is not CSV."""


class ParseError(PipelineError):
    """The CSV payload has rows whose field count differs from the header."""


class DateParseError(PipelineError, ValueError):
    """A non-null date cell could not be parsed with the expected format."""


class KeyConflictError(PipelineError):
    """Join key columns do not uniquely identify rows in an input table."""


class BandCoverageError(PipelineError):
    """A value falls into no band, or into more than one band."""


class InsufficientDataError(PipelineError):
    """Fewer than two distinct predictor values remain for a trend fit."""
