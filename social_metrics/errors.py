"""Exception types raised by the social-metrics pipeline.

Per-row problems never raise; they are collected on the
``ProcessingResult``.  The exceptions here mark per-file and
per-run failures that the caller has to surface.
"""


class SocialMetricsError(ValueError):
    """Base class for all pipeline errors."""


class UnsupportedFileError(SocialMetricsError):
    """The file extension is not one of .xlsx, .xls or .csv."""


class UnrecognizedPlatformError(SocialMetricsError):
    """A file's headers match none of the known platform signatures."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(
            f"Could not identify the platform of file {file_name!r}; "
            f"check that its column headers are unmodified"
        )


class EmptyResultError(SocialMetricsError):
    """A file produced no valid unified records."""

    def __init__(self, file_name: str, reason: str = "no valid rows"):
        self.file_name = file_name
        super().__init__(f"File {file_name!r} has no usable data ({reason})")


class PipelineError(SocialMetricsError):
    """No file in the run produced any data."""


class SnapshotFormatError(SocialMetricsError):
    """A snapshot document is malformed or missing required keys."""


class UnreadableFileError(SocialMetricsError):
    """A file has a supported extension but its content cannot be decoded."""
