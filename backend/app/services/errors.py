"""
Exam Portal - Service Errors
Exception hierarchy raised by the service layer and translated to HTTP by the API
"""


class ExamServiceError(Exception):
    """Base error for all service-layer failures."""
    pass


class PermissionDeniedError(ExamServiceError):
    """The caller's policy check failed. Carries no detail about the row."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class NotFoundError(ExamServiceError):
    """The row does not exist or is not visible to the caller."""
    pass


class AlreadyExistsError(ExamServiceError):
    """A row that must be unique already exists."""
    pass


class ValidationError(ExamServiceError):
    """Input rejected before anything was persisted."""
    pass


class ExamNotAvailableError(ExamServiceError):
    """The exam exists but is not open for attempts."""

    def __init__(self, message: str = "Exam is not available"):
        super().__init__(message)


class AttemptClosedError(ExamServiceError):
    """The attempt is completed; no further answers or submissions."""

    def __init__(self, message: str = "Attempt is already completed"):
        super().__init__(message)


class AttemptExpiredError(AttemptClosedError):
    """The attempt ran past its deadline and was submitted automatically."""

    def __init__(self, message: str = "Time is up; the attempt was submitted automatically"):
        super().__init__(message)
