"""Exceptions raised by the extraction pipeline."""


class ExtractionError(Exception):
    """Base class for knowledge extraction failures."""


class InvalidExtractionRequest(ExtractionError, ValueError):
    """The caller asked for something the extractor cannot do."""


class UnsupportedSourceTypeError(InvalidExtractionRequest):
    """The requested source type has no extraction handler."""

    def __init__(self, source_type: object) -> None:
        """Initialize with the rejected source type value."""
        self.source_type = source_type
        super().__init__(f"Unknown source type: {source_type}")


class SourceNotFoundError(ExtractionError, LookupError):
    """The source row an extraction refers to does not exist."""

    def __init__(self, source_type: str, source_id: str) -> None:
        """Initialize with the missing source's type and id."""
        self.source_type = source_type
        self.source_id = source_id
        super().__init__(f"{source_type} {source_id} not found")


class SourceFetchError(ExtractionError):
    """Remote content for a source (file body, website) could not be fetched."""
