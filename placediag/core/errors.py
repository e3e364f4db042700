"""Exception types raised across the extraction pipeline."""


class PlaceDiagError(RuntimeError):
    """Base class for pipeline failures surfaced to callers."""


class IdentityError(PlaceDiagError, ValueError):
    """Raised when no listing identifier can be resolved from the input."""


class ProviderUnavailable(PlaceDiagError):
    """Raised when the page source (HTTP or browser) cannot be reached at all."""


class BrowserUnavailable(ProviderUnavailable):
    """Raised when the browser session cannot be launched at all."""


class RenderTimeout(ProviderUnavailable):
    """Raised when a browser render exceeds its time budget."""


class CompetitorBatchError(PlaceDiagError):
    """Raised when the competitor search page itself cannot be loaded."""
