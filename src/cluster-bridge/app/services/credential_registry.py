"""In-memory credential registry.

Raw kubeconfig documents are kept keyed by cluster name for the lifetime
of the process. Nothing is persisted across restarts.
"""

from __future__ import annotations

import asyncio

from pydantic import ValidationError

from shared.models import CredentialRecord
from shared.observability import get_logger

from .exceptions import CredentialNotFoundError, InvalidCredentialError, InvalidInputError

logger = get_logger(__name__)


class CredentialRegistry:
    """Stores raw credentials by cluster name."""

    def __init__(self):
        self._records: dict[str, CredentialRecord] = {}
        self._lock = asyncio.Lock()

    async def put(self, name: str, raw: str | bytes) -> CredentialRecord:
        """Store a credential, replacing any record under the same name.

        Raises:
            InvalidCredentialError: If the payload is empty
            InvalidInputError: If the cluster name is unusable
        """
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidCredentialError("Credential is not valid UTF-8") from e

        if not raw or not raw.strip():
            raise InvalidCredentialError("Credential payload is empty")

        try:
            record = CredentialRecord(name=name, raw=raw)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid cluster name '{name}'") from e

        async with self._lock:
            replaced = name in self._records
            self._records[name] = record

        logger.info("Credential stored", cluster=name, replaced=replaced)
        return record

    async def get(self, name: str) -> CredentialRecord:
        """Return the record stored under ``name``."""
        async with self._lock:
            record = self._records.get(name)
        if record is None:
            raise CredentialNotFoundError(f"No credential registered under '{name}'")
        return record

    async def list_names(self) -> list[str]:
        """Return registered cluster names in sorted order."""
        async with self._lock:
            return sorted(self._records)
