"""
Error taxonomy and HTTP error classification for Copilet.

Every failure of the remote layer is reported as one of a small set of
typed exceptions so callers never have to inspect response objects.
"""

import inspect
import functools
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar, cast

import httpx

from .logger import logger


F = TypeVar("F", bound=Callable[..., Any])


####
##      EXCEPTIONS
#####
class ContentError(Exception):
    """Base exception for content retrieval errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (Original: {self.original_error})"
        return self.message


class NotFoundError(ContentError):
    """The requested path does not exist (HTTP 404)."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class AuthRequiredError(ContentError):
    """The request was rejected for lack of credentials (HTTP 401/403)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(ContentError):
    """The API quota is exhausted (HTTP 403 with zero remaining requests)."""

    def __init__(self, message: str, reset_time: Optional[datetime] = None):
        super().__init__(message)
        self.reset_time = reset_time

    @property
    def reset_in_minutes(self) -> Optional[int]:
        if self.reset_time is None:
            return None
        seconds = (self.reset_time - datetime.now()).total_seconds()
        return max(0, -(-int(seconds) // 60))


class NetworkError(ContentError):
    """Timeouts, connection failures and unexpected HTTP statuses."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, original_error)
        self.status_code = status_code


class ManifestValidationError(ContentError):
    """A plugin.json failed schema validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ContentListingError(ContentError):
    """A category listing failed for a reason other than a missing folder."""

    def __init__(self, repo: str, category: str, original_error: Exception):
        super().__init__(f"Failed to load {category} from {repo}", original_error)
        self.repo = repo
        self.category = category


####
##      CLASSIFICATION
#####
def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


def parse_reset_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value))
    except (TypeError, ValueError):
        return None


def classify_response(response: httpx.Response) -> Optional[ContentError]:
    """
    Map an HTTP response to the error taxonomy.

    Returns None for successful responses.
    """

    status = response.status_code
    if status < 400:
        return None

    try:
        url = str(response.request.url)
        path: Optional[str] = response.request.url.path
    except RuntimeError:
        url, path = "", None

    if status == 404:
        return NotFoundError(f"Not found: {url}", path=path)

    if status in (401, 403):
        remaining = response.headers.get("x-ratelimit-remaining")
        if status == 403 and remaining is not None and remaining.strip() == "0":
            reset_time = parse_reset_time(response.headers.get("x-ratelimit-reset"))
            return RateLimitedError("GitHub API rate limit exceeded", reset_time=reset_time)
        return AuthRequiredError(
            f"GitHub API error: {_error_detail(response)}",
            status_code=status,
        )

    return NetworkError(
        f"Unexpected HTTP {status} from {url}: {_error_detail(response)}",
        status_code=status,
    )


def handle_api_error(func: F) -> F:
    """
    Decorator translating httpx failures into the Copilet error taxonomy.

    Errors that are already a ``ContentError`` pass through untouched.
    """

    def _translate(error: Exception) -> ContentError:
        if isinstance(error, httpx.TimeoutException):
            return NetworkError("Request timed out", error)
        if isinstance(error, httpx.HTTPStatusError):
            return classify_response(error.response) or NetworkError(str(error), error)
        if isinstance(error, httpx.HTTPError):
            return NetworkError(f"Network error: {error}", error)
        logger.error(f"Unexpected error in {func.__name__}: {error}")
        return ContentError(f"Unexpected error: {error}", error)

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except ContentError:
                raise
            except Exception as e:
                raise _translate(e) from e

        return cast(F, async_wrapper)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ContentError:
            raise
        except Exception as e:
            raise _translate(e) from e

    return cast(F, wrapper)


__all__ = [
    "ContentError",
    "NotFoundError",
    "AuthRequiredError",
    "RateLimitedError",
    "NetworkError",
    "ManifestValidationError",
    "ContentListingError",
    "classify_response",
    "parse_reset_time",
    "handle_api_error",
]
