class InvalidUrl(ValueError):
    """Submitted URL is missing or not an absolute http(s) URL."""


class GetListingException(Exception):
    """Listing page could not be fetched or rendered."""


class SourceParsingError(Exception):
    """Listing markup does not match any known convention."""


class EmptyListingError(SourceParsingError):
    """Markup was parsed but no known section produced a field."""


class EnrichmentError(Exception):
    """A single geocoding or travel lookup failed."""


class JobNotFound(Exception):
    pass
