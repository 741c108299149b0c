"""
Copilet - browse and download GitHub Copilot customization content.
"""

from .interfaces.api import CopilotContentBrowser
from .models import ContentCategory, RepoSource, ServiceConfig

__version__ = "0.1.0"

__all__ = ["CopilotContentBrowser", "ContentCategory", "RepoSource", "ServiceConfig", "__version__"]
