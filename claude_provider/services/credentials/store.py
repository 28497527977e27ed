"""In-memory credential store.

One reader/writer lock guards the whole map. Readers share the lock;
a writer waits for active readers to finish, and while a writer waits no
new reader is admitted.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from typing import TypeVar

from claude_provider.auth.exceptions import CredentialsNotFoundError
from claude_provider.auth.models import Credential
from claude_provider.core.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


class ReadWriteLock:
    """asyncio reader/writer lock that prefers waiting writers."""

    def __init__(self) -> None:
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writer_active(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(
                lambda: not self._writer and not self._waiting_writers
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers -= 1
                if not self._readers:
                    self._condition.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._condition:
            self._waiting_writers += 1
            try:
                await self._condition.wait_for(
                    lambda: not self._writer and not self._readers
                )
            finally:
                self._waiting_writers -= 1
                # A cancelled writer must not keep readers blocked.
                self._condition.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._condition:
                self._writer = False
                self._condition.notify_all()


class CredentialStore:
    """Registry of credentials keyed by opaque identifiers.

    Entries live for the lifetime of the store and are never removed.
    Methods hand out deep copies; mutation goes through :meth:`update`.
    """

    def __init__(self) -> None:
        self._credentials: dict[str, Credential] = {}
        self._lock = ReadWriteLock()

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[Mapping[str, Credential]]:
        """Hold the read lock and expose the live map read-only."""
        async with self._lock.read():
            yield self._credentials

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[dict[str, Credential]]:
        """Hold the write lock and expose the live map."""
        async with self._lock.write():
            yield self._credentials

    async def add(self, credential: Credential) -> str:
        """Store a new credential under a fresh random identifier."""
        credential_id = str(uuid.uuid4())
        async with self.writing() as credentials:
            credentials[credential_id] = credential
        logger.debug(
            "credential_stored",
            credential_id=credential_id,
            auth_type=str(credential.auth_type),
        )
        return credential_id

    async def get(self, credential_id: str) -> Credential:
        """Return a copy of one credential.

        Raises:
            CredentialsNotFoundError: If the identifier is unknown
        """
        async with self.reading() as credentials:
            credential = credentials.get(credential_id)
            if credential is None:
                raise CredentialsNotFoundError(credential_id)
            return credential.model_copy(deep=True)

    async def snapshot(self) -> list[tuple[str, Credential]]:
        """Copies of all credentials in insertion order."""
        async with self.reading() as credentials:
            return [
                (credential_id, credential.model_copy(deep=True))
                for credential_id, credential in credentials.items()
            ]

    async def update(
        self, credential_id: str, mutate: Callable[[Credential], T]
    ) -> T:
        """Apply ``mutate`` to the stored credential under the write lock.

        ``mutate`` must be a quick field update; it must not await.

        Raises:
            CredentialsNotFoundError: If the identifier is unknown
        """
        async with self.writing() as credentials:
            credential = credentials.get(credential_id)
            if credential is None:
                raise CredentialsNotFoundError(credential_id)
            return mutate(credential)

    async def count(self) -> int:
        async with self.reading() as credentials:
            return len(credentials)
