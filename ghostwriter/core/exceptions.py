"""
Domain exception hierarchy.

Upstream failures, contract violations and onboarding errors are kept
distinct so routes and background jobs can map them without string matching.
Data insufficiency (no posts, no embeddings, no profile) is never an exception.
"""

from typing import Optional


class GhostwriterError(Exception):
    """Base class for all domain errors."""


class UpstreamServiceError(GhostwriterError):
    """A completion, embedding or job service call failed."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")


class JobFailedError(UpstreamServiceError):
    """A scraping job finished in a failed state."""

    def __init__(self, job_id: str, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__("apify", f"job {job_id} finished with status {status}")


class JobTimeoutError(UpstreamServiceError):
    """A scraping job did not finish before its deadline."""

    def __init__(self, job_id: str, timeout_seconds: float):
        self.job_id = job_id
        self.timeout_seconds = timeout_seconds
        super().__init__("apify", f"job {job_id} did not finish within {timeout_seconds:.0f}s")


class ContractViolationError(GhostwriterError):
    """Model or storage output does not match a closed contract."""


class IntentClassificationError(ContractViolationError):
    """Classifier output is unparseable or names an intent outside the closed set."""


class StyleContractError(ContractViolationError):
    """Style JSON is missing a field or has a value of the wrong type."""


class AnalysisError(GhostwriterError):
    """Engagement or style analysis could not complete."""


class InvalidLinkedInUrlError(GhostwriterError):
    """Submitted URL is not a LinkedIn profile URL."""

    def __init__(self, url: Optional[str]):
        self.url = url
        super().__init__(f"Invalid LinkedIn profile URL: {url!r}")


class OnboardingStateError(GhostwriterError):
    """Requested onboarding transition is not allowed from the current state."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move onboarding from {current} to {requested}")


class NotFoundError(GhostwriterError):
    """Requested entity does not exist in the caller's scope."""
