"""
Exception types raised while building and delivering reports.
"""


class ReportError(Exception):
    """Base class for report failures."""


class ConfigurationError(ReportError):
    """A required environment variable or payload field is missing or invalid."""


class CredentialLookupError(ReportError):
    """Dealer connection credentials could not be resolved."""


class DealerQueryError(ReportError):
    """An aggregate query against a dealer database failed."""

    def __init__(self, dealer_name: str, message: str):
        super().__init__(f"{dealer_name}: {message}")
        self.dealer_name = dealer_name


class UploadError(ReportError):
    """The rendered report could not be written to S3."""


class NotifyError(ReportError):
    """The webhook reply or the email notification failed."""
