"""
Opportunistic GitHub authentication.

Credentials are resolved per request in this order: a configured enterprise
token (enterprise hosts only), a silently obtained session token, nothing.
Interactive sign-in is only ever offered, never required.
"""

import os
from typing import Optional, Protocol

from ..models import ServiceConfig
from ..infrastructure.error_handler import ContentError, RateLimitedError
from ..infrastructure.logger import logger
from ..interfaces.prompts import Prompter


SIGN_IN = "Sign In"
SKIP = "Skip"
WAIT = "Wait"

TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


class SessionProvider(Protocol):
    """Source of short-lived GitHub session tokens."""

    async def get_session_token(self, silent: bool = True) -> Optional[str]:
        ...


class TokenSessionProvider:
    """
    Session provider backed by the environment or a pasted token.

    Silent lookups read ``GITHUB_TOKEN``/``GH_TOKEN`` or a token obtained by a
    previous sign-in. A non-silent lookup asks the user for a token.
    """

    def __init__(self, prompter: Prompter, token: Optional[str] = None):
        self.prompter = prompter
        self._token = token

    async def get_session_token(self, silent: bool = True) -> Optional[str]:
        if not silent:
            token = await self.prompter.ask_secret("GitHub personal access token")
            if token and token.strip():
                self._token = token.strip()
                return self._token
            return None

        if self._token:
            return self._token
        for name in TOKEN_ENV_VARS:
            value = os.environ.get(name)
            if value:
                return value
        return None

    def sign_out(self) -> None:
        self._token = None


class AuthManager:
    """Resolve credentials and run the sign-in offers."""

    def __init__(self, config: ServiceConfig, session_provider: SessionProvider, prompter: Prompter):
        self.config = config
        self.session_provider = session_provider
        self.prompter = prompter
        self._proactive_check_done = False
        # Token from an interactive sign-in after an enterprise host rejected the configured one
        self._enterprise_sign_in_token: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.config.enable_auth

    async def _silent_session(self) -> Optional[str]:
        try:
            return await self.session_provider.get_session_token(silent=True)
        except Exception as e:
            logger.debug(f"GitHub authentication failed (silent): {e}")
            return None

    async def get_token(self, is_enterprise: bool = False) -> Optional[str]:
        """Credential for one request, or None to go unauthenticated."""

        if not self.enabled:
            return None
        if is_enterprise:
            token = self._enterprise_sign_in_token or self.config.enterprise_token
            if token:
                return token
        return await self._silent_session()

    async def has_credentials(self) -> bool:
        if self.config.enterprise_token:
            return True
        return await self._silent_session() is not None

    async def sign_in(self, is_enterprise: bool = False) -> bool:
        """
        Run the interactive sign-in; True when a token was obtained.

        A token obtained for an enterprise host replaces the configured
        enterprise token for the rest of the session.
        """

        try:
            token = await self.session_provider.get_session_token(silent=False)
        except Exception as e:
            logger.error(f"GitHub authentication error: {e}")
            return False
        if token:
            if is_enterprise:
                self._enterprise_sign_in_token = token
            self.prompter.info("GitHub authentication successful!")
            return True
        return False

    async def ensure_authenticated(self, is_enterprise: bool = False) -> bool:
        """Use existing credentials or offer a sign-in once."""

        if not self.enabled:
            return False
        if is_enterprise and self.config.enterprise_token:
            return True
        if await self._silent_session():
            return True

        choice = await self.prompter.choose(
            "Sign in to GitHub to increase API rate limits from 60 to 5,000 requests per hour.",
            [SIGN_IN, SKIP],
        )
        if choice == SIGN_IN:
            return await self.sign_in(is_enterprise)
        return False

    async def proactive_check(self) -> None:
        """Before the first bulk fetch, offer sign-in if nothing is configured."""

        if not self.enabled or self._proactive_check_done:
            return
        self._proactive_check_done = True
        if not await self.has_credentials():
            logger.info("No GitHub authentication found, prompting user...")
            await self.ensure_authenticated(False)

    async def handle_auth_error(self, error: ContentError, is_enterprise: bool = False) -> bool:
        """
        React to a 401/403.

        Returns True when the user signed in and the request should be
        retried once.
        """

        if not self.enabled:
            self.prompter.warning("GitHub authentication is disabled. Enable it to avoid rate limits.")
            return False

        if isinstance(error, RateLimitedError):
            minutes = error.reset_in_minutes
            if minutes is not None:
                self.prompter.warning(f"Rate limit exceeded. Resets in {minutes} minutes.")
            choice = await self.prompter.choose(
                "GitHub API rate limit exceeded. Sign in to GitHub to get 5,000 requests/hour instead of 60.",
                [SIGN_IN, WAIT],
            )
        else:
            choice = await self.prompter.choose(
                f"{error.message}. Sign in to access repositories and increase rate limits "
                "(60 -> 5,000 requests/hour).",
                [SIGN_IN, SKIP],
            )

        if choice == SIGN_IN:
            return await self.sign_in(is_enterprise)
        return False


__all__ = [
    "SessionProvider",
    "TokenSessionProvider",
    "AuthManager",
    "SIGN_IN",
    "SKIP",
    "WAIT",
]
