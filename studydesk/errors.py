"""Domain errors raised by the StudyDesk services.

Route handlers map these onto HTTP status codes:
ValidationError -> 400, NotFoundError -> 404, GenerationError -> 500.
"""


class StudyDeskError(Exception):
    """Base class for all service-level errors."""


class ValidationError(StudyDeskError):
    """The request is missing data or the data is unusable."""


class NotFoundError(StudyDeskError):
    """The addressed record does not exist."""


class GenerationError(StudyDeskError):
    """The generative model call failed or returned unusable output.

    Covers a missing API key, network/service errors and malformed JSON
    in structured mode. Callers don't distinguish between the causes.
    """
