"""
Exception hierarchy for papraIngest.

Tagging errors are grouped under TaggingError so the upload loop can
catch them in one place, log a warning and keep going with the batch.
"""


class PapraIngestError(Exception):
    """Base class for all errors raised by papraIngest."""


class ConfigurationError(PapraIngestError):
    pass


class ExtractionError(PapraIngestError):
    """The PDF could not be read or parsed."""


class TaggingError(PapraIngestError):
    """Base class for failures while turning an LLM reply into tags."""


class ResponseShapeError(TaggingError):
    pass


class EmptyResponseError(TaggingError):
    pass


class NoTagsFoundError(TaggingError):
    pass


class UnparsableTagsError(TaggingError):
    def __init__(self, message, text="", attempts=None):
        super().__init__(message)
        self.text = text
        self.attempts = list(attempts or [])


class NoValidTagsError(TaggingError):
    pass


class _HTTPStatusMixin:
    max_body_chars = 500

    def _init_status(self, status_code, body):
        self.status_code = status_code
        body = "" if body is None else str(body)
        self.body = body[: self.max_body_chars]


class LLMRequestError(PapraIngestError, _HTTPStatusMixin):
    """The LLM endpoint could not be reached or answered with a non-2xx status."""

    def __init__(self, status_code, body):
        self._init_status(status_code, body)
        if status_code is None:
            msg = f"LLM request failed: {self.body}"
        else:
            msg = f"LLM request failed with status {status_code}: {self.body}"
        super().__init__(msg)


class PapraRequestError(PapraIngestError, _HTTPStatusMixin):
    """A Papra API call failed. `status_code` is None when the reply was 2xx but unusable."""

    def __init__(self, status_code, body):
        self._init_status(status_code, body)
        if status_code is None:
            msg = f"Papra request failed: {self.body}"
        else:
            msg = f"Request failed with status {status_code}: {self.body}"
        super().__init__(msg)


class IngestError(PapraIngestError):
    """Source path problems that stop the upload before any file is sent."""
