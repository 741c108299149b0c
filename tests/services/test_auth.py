from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from copilet.infrastructure.error_handler import AuthRequiredError, RateLimitedError
from copilet.models import ServiceConfig
from copilet.services.auth import SIGN_IN, SKIP, WAIT, AuthManager, TokenSessionProvider


pytestmark = pytest.mark.asyncio


@pytest.fixture(autouse=True)
def no_env_tokens(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_TOKEN", raising=False)


@pytest.fixture
def prompter():
    prompter = MagicMock()
    prompter.choose = AsyncMock(return_value=None)
    prompter.ask_secret = AsyncMock(return_value=None)
    return prompter


def make_auth(prompter, config=None, token=None):
    config = config or ServiceConfig()
    return AuthManager(config, TokenSessionProvider(prompter, token=token), prompter)


# ---- Token resolution ------------------------------------------------------

async def test_enterprise_token_preferred_for_enterprise(prompter):
    auth = make_auth(prompter, ServiceConfig(enterprise_token="ghe"), token="session")
    assert await auth.get_token(is_enterprise=True) == "ghe"
    assert await auth.get_token(is_enterprise=False) == "session"


async def test_environment_token_is_used_silently(prompter, monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "from-env")
    auth = make_auth(prompter)
    assert await auth.get_token() == "from-env"
    prompter.ask_secret.assert_not_awaited()


async def test_no_token_when_disabled(prompter):
    auth = make_auth(prompter, ServiceConfig(enable_auth=False, enterprise_token="ghe"), token="session")
    assert await auth.get_token(is_enterprise=True) is None


async def test_silent_failure_means_unauthenticated(prompter):
    provider = MagicMock()
    provider.get_session_token = AsyncMock(side_effect=RuntimeError("keychain locked"))
    auth = AuthManager(ServiceConfig(), provider, prompter)
    assert await auth.get_token() is None


# ---- Proactive check -------------------------------------------------------

async def test_proactive_check_offers_sign_in_once(prompter):
    auth = make_auth(prompter)

    await auth.proactive_check()
    await auth.proactive_check()

    prompter.choose.assert_awaited_once()
    message, options = prompter.choose.await_args.args
    assert message == "Sign in to GitHub to increase API rate limits from 60 to 5,000 requests per hour."
    assert options == [SIGN_IN, SKIP]


async def test_proactive_check_skipped_with_credentials(prompter):
    auth = make_auth(prompter, token="session")
    await auth.proactive_check()
    prompter.choose.assert_not_awaited()


async def test_sign_in_stores_token(prompter):
    prompter.choose.return_value = SIGN_IN
    prompter.ask_secret.return_value = " pasted "
    auth = make_auth(prompter)

    assert await auth.ensure_authenticated() is True
    assert await auth.get_token() == "pasted"
    prompter.info.assert_called_with("GitHub authentication successful!")


# ---- Auth errors -----------------------------------------------------------

async def test_rate_limit_offers_sign_in_or_wait(prompter):
    auth = make_auth(prompter)
    error = RateLimitedError("limited", reset_time=datetime.now() + timedelta(minutes=5))

    assert await auth.handle_auth_error(error) is False

    _message, options = prompter.choose.await_args.args
    assert options == [SIGN_IN, WAIT]
    warning = prompter.warning.call_args.args[0]
    assert warning.startswith("Rate limit exceeded. Resets in ")


async def test_auth_error_retry_only_after_successful_sign_in(prompter):
    prompter.choose.return_value = SIGN_IN
    prompter.ask_secret.return_value = "tok"
    auth = make_auth(prompter)

    assert await auth.handle_auth_error(AuthRequiredError("GitHub API error: Bad credentials", 401)) is True

    prompter.ask_secret.return_value = None
    assert await auth.handle_auth_error(AuthRequiredError("GitHub API error: Bad credentials", 401)) is False


async def test_auth_error_when_disabled_only_warns(prompter):
    auth = make_auth(prompter, ServiceConfig(enable_auth=False))
    assert await auth.handle_auth_error(AuthRequiredError("nope", 403)) is False
    prompter.choose.assert_not_awaited()
    prompter.warning.assert_called_once()


async def test_enterprise_sign_in_replaces_configured_token(prompter):
    prompter.choose.return_value = SIGN_IN
    prompter.ask_secret.return_value = "fresh"
    auth = make_auth(prompter, ServiceConfig(enterprise_token="expired"))

    assert await auth.handle_auth_error(AuthRequiredError("Bad credentials", 401), is_enterprise=True) is True

    assert await auth.get_token(is_enterprise=True) == "fresh"
    assert await auth.get_token(is_enterprise=False) == "fresh"


async def test_public_sign_in_keeps_configured_enterprise_token(prompter):
    prompter.choose.return_value = SIGN_IN
    prompter.ask_secret.return_value = "fresh"
    auth = make_auth(prompter, ServiceConfig(enterprise_token="ghe"))

    assert await auth.handle_auth_error(AuthRequiredError("Bad credentials", 401)) is True

    assert await auth.get_token(is_enterprise=True) == "ghe"
