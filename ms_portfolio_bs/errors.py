"""
Exception taxonomy for the portfolio service.

Each error carries the HTTP status the handlers answer with. Messages are
passed through to the caller unchanged.
"""


class PortfolioServiceError(Exception):
    """Base class for all service errors."""

    status_code = 500


class ConfigurationError(PortfolioServiceError):
    """Required configuration is missing or invalid. Fatal at startup."""


class StoreConnectionError(PortfolioServiceError):
    """The store could not be reached or did not answer the ping. Fatal at startup."""


class InvalidObjectIdError(PortfolioServiceError):
    """A request path identifier is not a valid ObjectId."""

    status_code = 400


class SeedDataError(PortfolioServiceError):
    """The seed file could not be read, parsed or normalized."""


class StoreOperationError(PortfolioServiceError):
    """A store read or write failed."""


class PortfolioNotFoundError(StoreOperationError):
    """No document matched the requested identifier.

    Reported as a server error like any other store failure.
    """
