"""
Output Path Resolver
Locates the file a finished MediaConvert job wrote to S3
"""

import posixpath
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ...utils.logger import get_logger
from ..kv_cache import KVCache
from ..s3_storage import S3Paths, S3Storage, StoredObject
from .client import MediaConvertClient
from .recipe import OUTPUT_EXTENSION, OUTPUT_NAME_MODIFIER

logger = get_logger()

S3_URI_PATTERN = re.compile(r"^s3://([^/]+)/(.+)$")


@dataclass
class OutputLocation:
    """Where a rendered video lives"""
    key: str
    bucket: str
    s3_uri: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.last_modified:
            data["last_modified"] = self.last_modified.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputLocation":
        last_modified = data.get("last_modified")
        if isinstance(last_modified, str):
            last_modified = datetime.fromisoformat(last_modified)
        return cls(
            key=data["key"],
            bucket=data["bucket"],
            s3_uri=data["s3_uri"],
            size=data.get("size"),
            last_modified=last_modified,
        )


def parse_s3_uri(uri: str) -> Optional[Tuple[str, str]]:
    """Split s3://bucket/key into (bucket, key)"""
    match = S3_URI_PATTERN.match(uri or "")
    if not match:
        return None
    return match.group(1), match.group(2)


def expected_output_key(job_settings: Dict[str, Any]) -> Optional[str]:
    """
    Recompute the output key from a job's recorded settings.

    The key is ``{dir}/{base}{modifier}{extension}`` where dir and base come
    from the file group destination. A destination ending in "/" names only
    a directory, in which case the base is the input file's name.
    """
    try:
        group = job_settings["OutputGroups"][0]
        destination = group["OutputGroupSettings"]["FileGroupSettings"]["Destination"]
        output = group["Outputs"][0]
    except (KeyError, IndexError, TypeError):
        return None

    parsed = parse_s3_uri(destination)
    if not parsed:
        return None
    _, dest_key = parsed

    if dest_key.endswith("/"):
        directory = dest_key.rstrip("/")
        inputs = job_settings.get("Inputs") or [{}]
        base_source = inputs[0].get("FileInput", "")
    else:
        directory, base_source = posixpath.split(dest_key)

    base = posixpath.splitext(posixpath.basename(base_source))[0]
    if not base:
        return None

    modifier = output.get("NameModifier") or OUTPUT_NAME_MODIFIER
    extension = output.get("Extension") or OUTPUT_EXTENSION
    if not extension.startswith("."):
        extension = f".{extension}"

    filename = f"{base}{modifier}{extension}"
    return f"{directory}/{filename}" if directory else filename


class OutputPathResolver:
    """Cache, then recorded settings, then directory listing"""

    CACHE_PREFIX = "mediaconvert_output:"

    def __init__(
        self,
        storage: S3Storage,
        transcoder: MediaConvertClient,
        cache: KVCache,
        cache_ttl: int = 60 * 60 * 24
    ):
        self.storage = storage
        self.transcoder = transcoder
        self.cache = cache
        self.cache_ttl = cache_ttl

    def _location(self, stored: StoredObject) -> OutputLocation:
        return OutputLocation(
            key=stored.key,
            bucket=self.storage.bucket,
            s3_uri=S3Paths.s3_uri(self.storage.bucket, stored.key),
            size=stored.size,
            last_modified=stored.last_modified,
        )

    async def resolve_output_path(self, remote_job_id: str) -> Optional[OutputLocation]:
        """Find the rendered file for a remote job, or None if it is not there yet"""
        cache_key = f"{self.CACHE_PREFIX}{remote_job_id}"

        cached = await self.cache.get(cache_key)
        if cached:
            location = OutputLocation.from_dict(cached)
            if await self.storage.exists(location.key):
                return location
            logger.info(f"Cached output for {remote_job_id} no longer exists: {location.key}")

        status = await self.transcoder.get_status(remote_job_id)
        output_key = expected_output_key(status.settings)
        if not output_key:
            logger.info(f"No output path found in job: {remote_job_id}")
            return None

        # Exact key first, then anything in the same directory sharing its base name
        directory, filename = posixpath.split(output_key)
        expected_base = posixpath.splitext(filename)[0]
        prefix = f"{directory}/" if directory else ""

        for stored in await self.storage.list(output_key, max_keys=1):
            if stored.key == output_key:
                location = self._location(stored)
                await self.cache.set(cache_key, location.to_dict(), self.cache_ttl)
                return location

        for stored in await self.storage.list(prefix, max_keys=100):
            if posixpath.basename(stored.key).startswith(expected_base):
                logger.info(f"Found matching output file: {stored.key}")
                location = self._location(stored)
                await self.cache.set(cache_key, location.to_dict(), self.cache_ttl)
                return location

        logger.info(f"Output file not found: {output_key}")
        return None
