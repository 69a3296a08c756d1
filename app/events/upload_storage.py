"""Upload storage lifespan event: destination directories and orphaned part files."""

import asyncio
from collections.abc import Mapping
from pathlib import Path

from app.core.lifespan import BaseEvent
from app.core.logger import LogIcon, logger
from app.core.storage import remove_partial_files
from app.core.uploads import UploadProfile, ingestors
from app.middlewares.upload import UploadIngestor

UploadRegistry = Mapping[UploadProfile, UploadIngestor]

# Grace period for part files of uploads without a timeout.
UNBOUNDED_UPLOAD_GRACE_SECONDS = 3600.0


def sweep_partials(registry: UploadRegistry) -> int:
    """Remove `.part` leftovers older than the longest upload timeout writing into each directory.

    Younger part files may belong to an upload still running in another worker process.
    """
    grace: dict[Path, float] = {}
    for ingestor in registry.values():
        timeout = ingestor.config.timeout_seconds or UNBOUNDED_UPLOAD_GRACE_SECONDS
        directory = ingestor.config.destination_dir
        grace[directory] = max(grace.get(directory, 0.0), timeout)
    return sum(remove_partial_files(directory, older_than) for directory, older_than in grace.items())


class UploadStorageEvent(BaseEvent[UploadRegistry]):
    """Prepares every upload destination before the first request is served."""

    name = "uploads"
    registry: UploadRegistry = ingestors

    async def startup(self) -> UploadRegistry:
        for profile, ingestor in self.registry.items():
            directory = await asyncio.to_thread(ingestor.prepare)
            logger.info(f"Upload directory ready: {profile}", icon=LogIcon.STORAGE, path=str(directory))

        removed = await asyncio.to_thread(sweep_partials, self.registry)
        if removed:
            logger.warning("Removed interrupted uploads", icon=LogIcon.TOOL, count=removed)
        return self.registry

    async def shutdown(self, instance: UploadRegistry) -> None:
        removed = await asyncio.to_thread(sweep_partials, instance)
        logger.info("Upload storage swept", icon=LogIcon.TOOL, removed=removed)
