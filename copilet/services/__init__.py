"""
Services talking to the outside world: GitHub and the local filesystem.
"""

from .auth import AuthManager, SessionProvider, TokenSessionProvider
from .github_api import GitHubContentClient
from .content import ContentService
from .download import DownloadService

__all__ = [
    "AuthManager",
    "SessionProvider",
    "TokenSessionProvider",
    "GitHubContentClient",
    "ContentService",
    "DownloadService",
]
