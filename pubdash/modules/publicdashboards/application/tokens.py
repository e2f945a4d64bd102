from __future__ import annotations

import logging
import secrets
import string
import uuid
from typing import Callable

from pubdash.errors import IdentifierGenerationError
from pubdash.modules.publicdashboards.domain.ports import IdentifierGeneratorPort, PublicDashboardStorePort

logger = logging.getLogger("uvicorn.error")

MAX_GENERATION_ATTEMPTS = 3
_UID_ALPHABET = string.ascii_letters + string.digits


class ShortUidGenerator:
    def __init__(self, length: int = 14) -> None:
        self._length = length

    def new_random_id(self) -> str:
        return "".join(secrets.choice(_UID_ALPHABET) for _ in range(self._length))


class AccessTokenGenerator:
    def new_random_id(self) -> str:
        # 128 bits of randomness, hex encoded
        return uuid.uuid4().hex


class TokenLifecycleManager:
    """Hands out public dashboard identifiers that are not yet taken in the store.

    Each candidate is checked once before being returned. The check and the later
    insert are not atomic; the unique index on ``access_token`` is what finally
    rejects a concurrent duplicate.
    """

    def __init__(
        self,
        store: PublicDashboardStorePort,
        *,
        uid_generator: IdentifierGeneratorPort | None = None,
        token_generator: IdentifierGeneratorPort | None = None,
        max_attempts: int = MAX_GENERATION_ATTEMPTS,
    ) -> None:
        self._store = store
        self._uid_generator = uid_generator or ShortUidGenerator()
        self._token_generator = token_generator or AccessTokenGenerator()
        self._max_attempts = max_attempts

    def new_uid(self, preset: str | None = None) -> str:
        if preset:
            return preset
        uid = self._generate(
            kind="uid",
            generator=self._uid_generator,
            is_taken=lambda candidate: self._store.find(candidate) is not None,
        )
        if uid is None:
            raise IdentifierGenerationError(
                code="failed_generate_unique_uid",
                message="Failed to generate a unique public dashboard uid",
            )
        return uid

    def new_access_token(self) -> str:
        token = self._generate(
            kind="access_token",
            generator=self._token_generator,
            is_taken=lambda candidate: self._store.find_by_access_token(candidate) is not None,
        )
        if token is None:
            raise IdentifierGenerationError(
                code="failed_generate_access_token",
                message="Failed to generate a unique public dashboard access token",
            )
        return token

    def _generate(
        self,
        *,
        kind: str,
        generator: IdentifierGeneratorPort,
        is_taken: Callable[[str], bool],
    ) -> str | None:
        for attempt in range(1, self._max_attempts + 1):
            candidate = generator.new_random_id()
            if not is_taken(candidate):
                return candidate
            logger.warning(
                "publicdashboards.identifier.collision | %s",
                {"kind": kind, "attempt": attempt, "max_attempts": self._max_attempts},
            )
        return None
