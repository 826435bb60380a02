"""
Exception taxonomy for the funding radar.

Per-source failures (transport, parse, auth wall) are raised inside adapters
and converted to messages at the adapter boundary; only ``ConflictError``
reaches the caller of a manual trigger.
"""


class FundingRadarError(Exception):
    """Base class for all funding radar errors."""


class TransportError(FundingRadarError):
    """Network, timeout or HTTP status failure while reaching a source."""


class ParseError(FundingRadarError):
    """A response body could not be decoded or understood."""


class AuthRequiredError(FundingRadarError):
    """Gated content was hit without usable credentials."""


class ConflictError(FundingRadarError):
    """A manual run was requested while another run is in progress."""

    def __init__(self, message: str = "Scraping is already in progress") -> None:
        super().__init__(message)
