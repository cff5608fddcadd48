"""
Alert Store - in-memory cache of risk alerts loaded from a JSON source.

The source file is read at most once per process. Notifications append new
records in memory without touching the file.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Iterable, List, Tuple, Union

import aiofiles
from pydantic import ValidationError

from alert_bot.exceptions import SourceUnavailable
from alert_bot.models import AlertRecord

logger = logging.getLogger(__name__)


class AlertStore:
    """
    Lazily loaded alert cache with case-insensitive lookup by principal name.

    Concurrent first requests share one load: the lock makes the file read
    single-flight, and a failed load leaves the store unloaded so the next
    request retries.
    """

    def __init__(self, source_path: Union[str, Path]):
        self.source_path = Path(source_path)
        self._records: List[AlertRecord] = []
        self._loaded = False
        self._load_lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def records(self) -> Tuple[AlertRecord, ...]:
        return tuple(self._records)

    async def load(self) -> None:
        """
        Read and parse the alert source.

        Raises:
            SourceUnavailable: File missing, unreadable, not JSON, not an
                array, or containing an invalid record
        """
        try:
            async with aiofiles.open(self.source_path, 'r', encoding='utf-8') as f:
                raw = await f.read()
        except OSError as e:
            raise SourceUnavailable(str(self.source_path), f"cannot read file: {e}") from e

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SourceUnavailable(str(self.source_path), f"invalid JSON: {e}") from e

        if not isinstance(payload, list):
            raise SourceUnavailable(
                str(self.source_path),
                f"expected a JSON array, got {type(payload).__name__}"
            )

        try:
            loaded = [AlertRecord.model_validate(item) for item in payload]
        except ValidationError as e:
            raise SourceUnavailable(str(self.source_path), f"invalid alert record: {e}") from e

        # Records ingested before the first load stay after the file's records
        self._records = loaded + self._records
        self._loaded = True
        logger.info(f"Loaded {len(loaded)} alerts from {self.source_path}")

    async def ensure_loaded(self) -> None:
        """Load the source once; later calls return immediately."""
        if self._loaded:
            return
        async with self._load_lock:
            if self._loaded:
                return
            await self.load()

    def lookup(self, user_identifier: str) -> List[AlertRecord]:
        """Return every alert whose principal name contains the identifier, in source order."""
        needle = (user_identifier or "").lower()
        matches = [
            record for record in self._records
            if needle in record.user_principal_name.lower()
        ]
        logger.debug(f"Lookup '{user_identifier}' matched {len(matches)} alerts")
        return matches

    def ingest(self, new_records: Iterable[AlertRecord]) -> None:
        """Append records to the cache. No deduplication: repeats produce duplicate entries."""
        batch = list(new_records)
        self._records.extend(batch)
        logger.info(f"Ingested {len(batch)} alerts (cache size: {len(self._records)})")
