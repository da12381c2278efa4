# studio/errors.py
from typing import Optional


class StudioError(Exception):
    """Base class for every failure raised by the studio core."""


class NetworkError(StudioError):
    """The request never completed (DNS, connect, timeout, reset...)."""

    def __init__(self, cause: BaseException, message: Optional[str] = None):
        self.cause = cause
        super().__init__(message or f"Network error: {cause!r}")


class HttpError(StudioError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"API request failed with status {status}: {body}")


class MalformedResponseError(HttpError):
    """A 2xx answer whose body is not JSON or not the expected shape."""


class ValidationError(StudioError):
    """Intent or configuration is not acceptable for the chosen model."""


class MissingIdentifierError(StudioError):
    pass


class MissingAssetError(StudioError):
    pass


class GenerationFailedError(StudioError):
    def __init__(self, generation_id: str):
        self.generation_id = generation_id
        super().__init__(f"Generation {generation_id} failed.")


class PollingTimeoutError(StudioError):
    def __init__(self, generation_id: str, attempts: int):
        self.generation_id = generation_id
        self.attempts = attempts
        super().__init__(f"Polling timed out for {generation_id} after {attempts} attempts.")
