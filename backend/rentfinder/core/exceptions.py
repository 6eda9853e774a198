"""Custom exception classes for the application."""

from typing import Optional


class RentFinderException(Exception):
    """Base exception for all RentFinder errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(RentFinderException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class FetchError(RentFinderException):
    """Page-level fetch failure. Recoverable: the run skips the page."""

    def __init__(self, page: int, message: str):
        self.page = page
        super().__init__(f"Page {page}: {message}")


class NetworkError(FetchError):
    """Transport failure, timeout or bad HTTP status while fetching a page."""


class ExtractionFailure(FetchError):
    """The page arrived but carried no usable hydration payload."""


class FatalScraperError(RentFinderException):
    """Raised for the conditions that abort a whole run."""


class CaptchaTimeoutError(FatalScraperError):
    """An anti-bot challenge was not solved within the wait window."""

    def __init__(self, timeout: float, url: Optional[str] = None):
        self.timeout = timeout
        self.url = url
        super().__init__(
            f"Anti-bot challenge not solved within {timeout:g}s"
            + (f" at {url}" if url else "")
        )


class BrowserLaunchError(FatalScraperError):
    """The automated browser could not be started."""

    def __init__(self, message: str):
        super().__init__(f"Browser launch failed: {message}")


class InvalidCaptchaTransition(RentFinderException):
    """Raised when the challenge state machine is driven out of order."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Invalid captcha transition {current} -> {target}")


class GeocodeError(RentFinderException):
    """Raised when a geocoding provider cannot be reached or errors out."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"Geocoding error for {provider}: {message}")
