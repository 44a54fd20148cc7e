"""
URL Handler
Turns a rendered output into a URL clients can play
"""

import asyncio
from typing import Iterable, Optional
from urllib.parse import unquote, urlparse

import aiohttp

from ...utils.exceptions import OutputResolutionError, StorageError
from ...utils.logger import get_logger
from ..s3_storage import S3Storage
from .output_resolver import OutputPathResolver

logger = get_logger()


def validate_video_url(
    url: Optional[str],
    expected_domain: str,
    extension: str = ".mp4"
) -> Optional[str]:
    """Return ``url`` if it is a well-formed link to a video on the expected host"""
    if not url or not expected_domain:
        return None

    try:
        parsed = urlparse(url)
    except ValueError:
        logger.error(f"Malformed video URL: {url}")
        return None

    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        logger.error(f"Malformed video URL: {url}")
        return None

    if "undefined" in url:
        logger.error(f"Invalid video URL containing undefined: {url}")
        return None

    if not parsed.path.lower().endswith(extension.lower()):
        logger.error(f"Invalid video URL format: {url}")
        return None

    if parsed.hostname.lower() != expected_domain.lower():
        logger.error(f"Video URL does not match domain {expected_domain}: {url}")
        return None

    return url


def validate_against(url: Optional[str], domains: Iterable[str]) -> Optional[str]:
    """Validate against the first matching allowed domain"""
    for domain in domains:
        if validate_video_url(url, domain):
            return url
    return None


class URLHandler:
    """CDN-first URL resolution with a signed S3 fallback"""

    def __init__(
        self,
        storage: S3Storage,
        resolver: OutputPathResolver,
        cdn_domain: str,
        retry_attempts: int = 10,
        retry_delay: float = 5.0,
        signed_url_ttl: int = 3600,
        http_timeout: float = 10.0
    ):
        self.storage = storage
        self.resolver = resolver
        self.cdn_domain = cdn_domain
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.signed_url_ttl = signed_url_ttl
        self.http_timeout = http_timeout

    @property
    def allowed_domains(self):
        """Hosts a stored video url may point at"""
        domains = [self.cdn_domain] if self.cdn_domain else []
        bucket = self.storage.bucket
        region = self.storage.settings.aws_region
        domains.extend([f"{bucket}.s3.amazonaws.com", f"{bucket}.s3.{region}.amazonaws.com"])
        return domains

    def cdn_url(self, key: str) -> str:
        return f"https://{self.cdn_domain}/{key}"

    async def is_url_accessible(self, url: str) -> bool:
        try:
            timeout = aiohttp.ClientTimeout(total=self.http_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.head(url, allow_redirects=True) as response:
                    return 200 <= response.status < 300
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"URL accessibility check failed: {e}")
            return False

    def signed_key(self, url: str) -> Optional[str]:
        """Object key of a presigned bucket url, or None for CDN and other urls"""
        parsed = urlparse(url)
        if not parsed.query or not parsed.hostname:
            return None
        if parsed.hostname.lower() == (self.cdn_domain or "").lower():
            return None
        if parsed.hostname.lower() not in [domain.lower() for domain in self.allowed_domains]:
            return None
        return unquote(parsed.path.lstrip("/")) or None

    async def refresh_url(self, url: str) -> str:
        """Fresh presigned url for a stored presigned bucket url; other urls pass through"""
        key = self.signed_key(url)
        if key is None:
            return url
        try:
            return await self.storage.get_signed_url(key, self.signed_url_ttl)
        except StorageError as e:
            logger.warning(f"Could not re-sign video url, serving stored url: {e.message}")
            return url

    async def get_accessible_url(self, remote_job_id: str) -> str:
        """
        Resolve a playable URL for a finished remote job.

        Retries while the output is not yet visible; raises
        OutputResolutionError once every attempt is used up.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.retry_attempts + 1):
            try:
                location = await self.resolver.resolve_output_path(remote_job_id)
                if location:
                    if self.cdn_domain:
                        url = self.cdn_url(location.key)
                        if await self.is_url_accessible(url):
                            return url
                        logger.info("CDN URL not accessible, falling back to signed S3 URL")
                    return await self.storage.get_signed_url(location.key, self.signed_url_ttl)
                logger.info(f"Output not found, attempt {attempt}/{self.retry_attempts}")
            except Exception as e:
                last_error = e
                logger.warning(f"Error getting output URL, attempt {attempt}/{self.retry_attempts}: {e}")

            if attempt < self.retry_attempts:
                await asyncio.sleep(self.retry_delay)

        message = "Output file not found after retries"
        if last_error:
            message = f"{message}: {last_error}"
        raise OutputResolutionError(message, remote_job_id, self.retry_attempts)
