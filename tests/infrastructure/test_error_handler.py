from datetime import datetime, timedelta

import httpx
import pytest

from copilet.infrastructure.error_handler import (
    AuthRequiredError,
    ContentError,
    ContentListingError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    classify_response,
    handle_api_error,
    parse_reset_time,
)


URL = "https://api.github.com/repos/octo/content/contents/prompts"


def make_response(status: int, headers=None, json=None) -> httpx.Response:
    return httpx.Response(status, headers=headers, json=json, request=httpx.Request("GET", URL))


# ---- Exception classes -----------------------------------------------------

def test_content_error_message_and_original():
    original = ValueError("boom")
    err = ContentError("failed", original)
    assert err.message == "failed"
    assert err.original_error is original
    assert "failed" in str(err)
    assert "Original: boom" in str(err)


@pytest.mark.parametrize("exc_cls", [NotFoundError, AuthRequiredError, RateLimitedError, NetworkError])
def test_specific_errors_store_message(exc_cls):
    err = exc_cls("msg")
    assert err.message == "msg"
    assert str(err) == "msg"


def test_listing_error_names_repo_and_category():
    err = ContentListingError("octo/content", "prompts", NetworkError("down"))
    assert err.message == "Failed to load prompts from octo/content"
    assert err.repo == "octo/content"
    assert err.category == "prompts"


def test_reset_in_minutes_rounds_up():
    err = RateLimitedError("limited", reset_time=datetime.now() + timedelta(seconds=90))
    assert err.reset_in_minutes == 2
    assert RateLimitedError("limited").reset_in_minutes is None


def test_parse_reset_time():
    assert parse_reset_time("0") == datetime.fromtimestamp(0)
    assert parse_reset_time(None) is None
    assert parse_reset_time("soon") is None


# ---- classify_response -----------------------------------------------------

def test_success_is_not_an_error():
    assert classify_response(make_response(200)) is None


def test_404_is_not_found():
    error = classify_response(make_response(404))
    assert isinstance(error, NotFoundError)
    assert error.path == "/repos/octo/content/contents/prompts"


def test_403_with_exhausted_quota_is_rate_limited():
    error = classify_response(make_response(403, headers={
        "x-ratelimit-remaining": "0",
        "x-ratelimit-reset": "1700000000",
    }))
    assert isinstance(error, RateLimitedError)
    assert error.reset_time == datetime.fromtimestamp(1700000000)


@pytest.mark.parametrize("status, headers", [
    (401, {}),
    (403, {}),
    (403, {"x-ratelimit-remaining": "12"}),
])
def test_other_auth_failures(status, headers):
    error = classify_response(make_response(status, headers=headers, json={"message": "Bad credentials"}))
    assert isinstance(error, AuthRequiredError)
    assert error.status_code == status
    assert error.message == "GitHub API error: Bad credentials"


def test_server_error_is_network_error():
    error = classify_response(make_response(502))
    assert isinstance(error, NetworkError)
    assert error.status_code == 502


# ---- handle_api_error decorator -------------------------------------------

def test_taxonomy_errors_pass_through():
    @handle_api_error
    def fn():
        raise NotFoundError("gone")

    with pytest.raises(NotFoundError):
        fn()


def test_timeout_becomes_network_error():
    @handle_api_error
    def fn():
        raise httpx.ReadTimeout("slow")

    with pytest.raises(NetworkError) as exc_info:
        fn()
    assert exc_info.value.message == "Request timed out"


def test_status_error_is_classified():
    response = make_response(404)

    @handle_api_error
    def fn():
        raise httpx.HTTPStatusError("missing", request=response.request, response=response)

    with pytest.raises(NotFoundError):
        fn()


def test_unexpected_error_is_wrapped():
    @handle_api_error
    def fn():
        raise KeyError("x")

    with pytest.raises(ContentError) as exc_info:
        fn()
    assert isinstance(exc_info.value.original_error, KeyError)


@pytest.mark.asyncio
async def test_async_connect_error_becomes_network_error():
    @handle_api_error
    async def fn():
        raise httpx.ConnectError("refused")

    with pytest.raises(NetworkError):
        await fn()


@pytest.mark.asyncio
async def test_async_success_returns_value():
    @handle_api_error
    async def fn():
        return 42

    assert await fn() == 42
