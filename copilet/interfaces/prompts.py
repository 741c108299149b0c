"""
User interaction boundary.

The core never talks to a terminal or an editor directly; sign-in offers,
overwrite confirmations and notifications all go through a ``Prompter``.
"""

from typing import Optional, Protocol, Sequence

from ..infrastructure.logger import logger


class Prompter(Protocol):
    """What the core needs from a user interface."""

    async def choose(self, message: str, options: Sequence[str]) -> Optional[str]:
        """Offer a set of actions; None means dismissed."""
        ...

    async def confirm(self, message: str, action: str) -> bool:
        ...

    async def ask_name(self, prompt: str, default: str) -> Optional[str]:
        ...

    async def ask_secret(self, prompt: str) -> Optional[str]:
        ...

    def info(self, message: str) -> None:
        ...

    def warning(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class NonInteractivePrompter:
    """
    Prompter for unattended use.

    Offers are dismissed, names keep their defaults and confirmations follow
    ``assume_yes``. Notifications go to the log.
    """

    def __init__(self, assume_yes: bool = False):
        self.assume_yes = assume_yes

    async def choose(self, message: str, options: Sequence[str]) -> Optional[str]:
        logger.debug(f"Dismissed prompt: {message}")
        return None

    async def confirm(self, message: str, action: str) -> bool:
        return self.assume_yes

    async def ask_name(self, prompt: str, default: str) -> Optional[str]:
        return default

    async def ask_secret(self, prompt: str) -> Optional[str]:
        return None

    def info(self, message: str) -> None:
        logger.info(message)

    def warning(self, message: str) -> None:
        logger.warning(message)

    def error(self, message: str) -> None:
        logger.error(message)


__all__ = ["Prompter", "NonInteractivePrompter"]
