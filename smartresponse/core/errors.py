"""Typed errors raised by the admission and fulfillment pipeline.

Routers translate these into user-facing HTTP responses; services never
raise HTTPException directly.
"""


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class ConfigurationError(PipelineError):
    """A required model or provider setting is missing. Not retried."""

    pass


class FormNotFoundError(PipelineError):
    """Form does not exist (or is not visible to the caller)."""

    pass


class AccountNotFoundError(PipelineError):
    """Account does not exist."""

    pass


class QuotaServiceError(PipelineError):
    """Base exception for quota admission errors."""

    pass


class QuotaExceededError(QuotaServiceError):
    """Admission denied because the account limit would be exceeded."""

    def __init__(self, resource: str, current: int, limit: int | None):
        self.resource = resource
        self.current = current
        self.limit = limit
        super().__init__(f"Limit reached for {resource} ({current}/{limit})")


class AdmissionUnavailableError(QuotaServiceError):
    """Usage counters could not be read; write-amplifying resources fail closed."""

    def __init__(self, resource: str, message: str = ""):
        self.resource = resource
        super().__init__(message or f"Unable to verify {resource} quota")


class DuplicateSubmissionError(PipelineError):
    """A lead for this (form, email) pair already exists."""

    pass


class PersistenceError(PipelineError):
    """Storage write failed. Counters have not been touched."""

    pass


class KnowledgeFileRejectedError(PipelineError):
    """Uploaded knowledge file failed validation."""

    pass


class BackendCapabilityError(PipelineError):
    """The backend has no endpoint for this model. Internal fallback signal."""

    pass


class BackendFulfillmentError(PipelineError):
    """AI backend failure surfaced to callers with provider/model context."""

    def __init__(self, message: str, provider: str | None = None, model_id: str | None = None):
        self.provider = provider
        self.model_id = model_id
        super().__init__(message)
