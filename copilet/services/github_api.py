"""
Client for the GitHub contents API, public and enterprise.

Handles URL construction, credentials, the per-host TLS policy, the single
retry after a sign-in, and decoding of file bodies.
"""

import asyncio
import base64
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlparse

import httpx

from ..models import ContentEntry, FileContent, RepoSource, ServiceConfig
from ..infrastructure.error_handler import (
    AuthRequiredError,
    ContentError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    classify_response,
    handle_api_error,
)
from ..infrastructure.logger import logger
from ..infrastructure.rate_limiter import RateLimitInfo, RateLimitTracker
from .auth import AuthManager


PUBLIC_API_ROOT = "https://api.github.com"
PUBLIC_HOSTS = frozenset({
    "github.com",
    "api.github.com",
    "raw.githubusercontent.com",
    "codeload.github.com",
})


def is_public_host(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return host in PUBLIC_HOSTS or host.endswith(".githubusercontent.com")


class GitHubContentClient:
    """
    Async client for ``/repos/{owner}/{repo}/contents``.

    One instance is shared by the content service and the bundle downloader;
    close it with ``await client.close()`` or use it as an async context
    manager.
    """

    def __init__(
        self,
        config: ServiceConfig,
        auth: AuthManager,
        rate_limiter: Optional[RateLimitTracker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.auth = auth
        self.rate_limiter = rate_limiter or RateLimitTracker()
        self._transport = transport
        self._timeout = httpx.Timeout(config.request_timeout)
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            transport=transport,
            follow_redirects=True,
        )
        self._listing_semaphore = asyncio.Semaphore(config.max_concurrent_listings)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubContentClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # --- URLs & headers ---

    @staticmethod
    def api_root(repo: RepoSource) -> str:
        if repo.base_url:
            return f"{repo.base_url.rstrip('/')}/api/v3"
        return PUBLIC_API_ROOT

    def build_contents_url(self, repo: RepoSource, path: str = "") -> str:
        """Contents URL for a path; an empty path is the repository root."""

        suffix = f"/contents/{quote(path.strip('/'), safe='/')}" if path.strip('/') else "/contents"
        return f"{self.api_root(repo)}/repos/{repo.owner}/{repo.repo}{suffix}"

    @staticmethod
    def _ref_params(repo: RepoSource) -> Optional[Dict[str, str]]:
        return {"ref": repo.branch} if repo.branch else None

    def verify_tls_for(self, url: str) -> bool:
        """Certificate validation may only be relaxed for enterprise hosts."""

        if is_public_host(url):
            return True
        return not self.config.allow_insecure_enterprise_certs

    async def build_headers(self, is_enterprise: bool = False) -> Dict[str, str]:
        headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.config.api_version,
        }
        token = await self.auth.get_token(is_enterprise)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    # --- Transport ---

    async def _send(
        self,
        url: str,
        is_enterprise: bool,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        headers = await self.build_headers(is_enterprise)

        if self.verify_tls_for(url):
            response = await self._client.get(url, headers=headers, params=params)
        else:
            # One-shot transport: the relaxed trust never outlives this request
            logger.warning(
                f"SECURITY WARNING: certificate verification disabled for {urlparse(url).hostname}"
            )
            async with httpx.AsyncClient(
                verify=False,
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as insecure_client:
                response = await insecure_client.get(url, headers=headers, params=params)

        await self.rate_limiter.update_rate_limit_info(response.headers)
        return response

    @handle_api_error
    async def _request(
        self,
        url: str,
        is_enterprise: bool,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """GET with classification; a 401/403 may be retried once after sign-in."""

        logger.debug(f"GET {url}")
        response = await self._send(url, is_enterprise, params)
        error = classify_response(response)

        if isinstance(error, (AuthRequiredError, RateLimitedError)):
            if await self.auth.handle_auth_error(error, is_enterprise):
                logger.info(f"Retrying {url} with refreshed credentials")
                response = await self._send(url, is_enterprise, params)
                error = classify_response(response)

        if error is not None:
            raise error
        return response

    @staticmethod
    def _json(response: httpx.Response, url: str) -> Any:
        # Captive portals and proxies answer 200 with HTML
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Unexpected non-JSON response from {url}", e, response.status_code)

    @staticmethod
    def _decode_base64(encoded: str, path: str) -> str:
        try:
            return base64.b64decode(encoded).decode("utf-8")
        except ValueError as e:
            raise ContentError(f'Could not decode "{path}" as UTF-8 text', e)

    # --- Listings ---

    async def list_contents(self, repo: RepoSource, path: str = "") -> List[ContentEntry]:
        """List a directory. A missing path raises ``NotFoundError``."""

        url = self.build_contents_url(repo, path)
        async with self._listing_semaphore:
            response = await self._request(url, repo.is_enterprise, self._ref_params(repo))

        data = self._json(response, url)
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise NetworkError(f"Unexpected listing payload from {url}")
        return [ContentEntry.from_api(item, repo) for item in data]

    async def list_category(self, repo: RepoSource, path: str) -> List[ContentEntry]:
        """List a category folder; a missing folder is simply empty."""

        try:
            return await self.list_contents(repo, path)
        except NotFoundError:
            logger.debug(f"'{path or '/'}' not found in {repo.display_name} (this is normal)")
            return []

    async def list_directory_recursive(self, repo: RepoSource, path: str) -> List[ContentEntry]:
        """
        List a directory and all of its subdirectories.

        Subdirectories are listed concurrently; the listing semaphore bounds
        how many requests run at once. Order of the result is unspecified.
        """

        entries = await self.list_contents(repo, path)
        subdirs = [entry for entry in entries if entry.is_dir]
        if subdirs:
            nested = await asyncio.gather(
                *(self.list_directory_recursive(repo, subdir.path) for subdir in subdirs)
            )
            for sub_entries in nested:
                entries.extend(sub_entries)
        return entries

    # --- File bodies ---

    async def get_file_content(self, download_url: str) -> str:
        """Fetch a raw file body from its download URL."""

        response = await self._request(download_url, not is_public_host(download_url))
        return response.text

    async def get_file_content_by_path(self, repo: RepoSource, path: str) -> FileContent:
        """
        Fetch a file by its repository path.

        Files up to 1 MB come inline as base64; larger ones only carry a
        ``download_url`` which is followed transparently.
        """

        url = self.build_contents_url(repo, path)
        response = await self._request(url, repo.is_enterprise, self._ref_params(repo))
        data = self._json(response, url)

        if not isinstance(data, dict) or data.get("type") != "file":
            raise ContentError(f'Path "{path}" is not a file or has no content')

        if data.get("content"):
            encoding = data.get("encoding") or "base64"
            if encoding == "base64":
                content = self._decode_base64(data["content"], path)
            else:
                content = data["content"]
        elif data.get("download_url"):
            content = await self.get_file_content(data["download_url"])
        else:
            raise ContentError(f'Path "{path}" is not a file or has no content')

        return FileContent(
            content=content,
            download_url=data.get("download_url"),
            sha=data.get("sha"),
            size=data.get("size") or len(content),
        )

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.rate_limiter.rate_limit_info


__all__ = ["GitHubContentClient", "PUBLIC_API_ROOT", "is_public_host"]
