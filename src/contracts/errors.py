"""
Error taxonomy for the search pipeline.

Only ValidationError and InternalError ever reach a client. The other two are
recovered where they occur: UpstreamUnavailable becomes an empty result set,
PartialEnrichmentFailure becomes an empty facet on an otherwise complete item.
"""


class SearchError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(SearchError):
    """Missing or malformed request input."""

    status_code = 400


class UpstreamUnavailable(SearchError):
    """A provider call failed: network error, timeout, or non-200 response."""

    status_code = 502

    def __init__(self, source: str, message: str = ""):
        super().__init__(message or f"{source} unavailable")
        self.source = source


class PartialEnrichmentFailure(SearchError):
    """One detail facet for one item could not be fetched or parsed."""

    def __init__(self, facet: str, item_id: int | str, message: str = ""):
        super().__init__(message or f"{facet} unavailable for {item_id}")
        self.facet = facet
        self.item_id = item_id


class InternalError(SearchError):
    """Unexpected failure while merging, scoring or formatting results."""

    status_code = 500
