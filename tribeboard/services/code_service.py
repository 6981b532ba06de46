"""
Family code generation and uniqueness resolution.

A family code is checked against the local store first and then, when it
is reachable, against the remote sync backend. Repeated remote outages
downgrade the call to local-only checking instead of failing it; the caller
learns about it through ``CodeGenerationResult.degraded``.

The service never writes a code anywhere. Persisting it is the caller's job.
"""
import asyncio
import logging
import random
import secrets
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Awaitable, Callable, Optional

from .stores import LocalStore, RemoteLookupResult, RemoteStore

logger = logging.getLogger(__name__)

# no 0/O or 1/I, they get mixed up when a code is read aloud
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 8
_VALID_CHARS = frozenset(CODE_ALPHABET + CODE_ALPHABET.lower())


class CodeFormatError(ValueError):
    pass


class CodeGenerationError(Exception):
    """Raised when every attempt was used up without a confirmed-unique code."""

    def __init__(self, attempts: list["GenerationAttempt"]):
        self.attempts = attempts
        super().__init__(f"Unable to generate a unique family code after {len(attempts)} attempts")


class AttemptOutcome(StrEnum):
    UNIQUE = "unique"
    LOCAL_COLLISION = "local_collision"
    REMOTE_COLLISION = "remote_collision"
    REMOTE_UNREACHABLE = "remote_unreachable"


@dataclass(frozen=True)
class GenerationAttempt:
    index: int
    candidate: str
    outcome: AttemptOutcome


@dataclass
class CodeGenerationResult:
    code: str
    degraded: bool = False
    attempts: list[GenerationAttempt] = field(default_factory=list)


def normalize_code(raw: str) -> str:
    return raw.strip().upper()


def validate_format(code: str) -> bool:
    """True if ``code`` is 6-8 characters from the code alphabet (any case)."""
    if not isinstance(code, str):
        return False
    if not MIN_CODE_LENGTH <= len(code) <= MAX_CODE_LENGTH:
        return False
    return all(ch in _VALID_CHARS for ch in code)


class FamilyCodeService:
    def __init__(
        self,
        local_store: LocalStore,
        remote_store: Optional[RemoteStore] = None,
        *,
        code_length: int = MIN_CODE_LENGTH,
        max_attempts: int = 10,
        remote_failure_threshold: int = 3,
        backoff_base: float = 0.1,
        backoff_multiplier: float = 2.0,
        backoff_max: float = 5.0,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        if remote_failure_threshold < 1:
            raise ValueError("remote_failure_threshold must be positive")
        self.local_store = local_store
        self.remote_store = remote_store
        self.code_length = max(MIN_CODE_LENGTH, min(MAX_CODE_LENGTH, code_length))
        self.max_attempts = max_attempts
        self.remote_failure_threshold = remote_failure_threshold
        self.backoff_base = backoff_base
        self.backoff_multiplier = backoff_multiplier
        self.backoff_max = backoff_max
        self.rng = rng or secrets.SystemRandom()
        self.sleep = sleep

    def generate_candidate(self) -> str:
        return "".join(self.rng.choice(CODE_ALPHABET) for _ in range(self.code_length))

    def backoff_delay(self, consecutive_failures: int) -> float:
        delay = self.backoff_base * self.backoff_multiplier ** (consecutive_failures - 1)
        return min(delay, self.backoff_max)

    async def generate_unique_code(
        self, max_attempts: Optional[int] = None, check_remote: bool = True
    ) -> CodeGenerationResult:
        """
        Produce a code that neither store knows about.

        Every attempt (collision or inconclusive remote lookup) counts
        against ``max_attempts``. Local store errors propagate; remote store
        errors are absorbed into the backoff/downgrade policy.

        Raises:
            CodeGenerationError: all attempts used up.
        """
        limit = max_attempts if max_attempts is not None else self.max_attempts
        if limit < 1:
            raise ValueError("max_attempts must be positive")

        use_remote = check_remote and self.remote_store is not None
        degraded = False
        remote_failures = 0
        attempts: list[GenerationAttempt] = []

        for index in range(1, limit + 1):
            candidate = self.generate_candidate()
            if not validate_format(candidate):
                raise CodeFormatError(f"Generated candidate {candidate!r} has an invalid format")
            logger.debug(f"Family code attempt {index}/{limit}: {candidate}")

            outcome = await self._check_candidate(candidate, use_remote)
            attempts.append(GenerationAttempt(index=index, candidate=candidate, outcome=outcome))

            if outcome is AttemptOutcome.UNIQUE:
                logger.info(f"Generated family code after {index} attempt(s), degraded={degraded}")
                return CodeGenerationResult(code=candidate, degraded=degraded, attempts=attempts)

            if outcome is AttemptOutcome.REMOTE_UNREACHABLE:
                remote_failures += 1
                if remote_failures >= self.remote_failure_threshold:
                    logger.warning(
                        f"Remote store unreachable {remote_failures} time(s) in a row, "
                        f"falling back to local-only code checks"
                    )
                    use_remote = False
                    degraded = True
                elif index < limit:
                    delay = self.backoff_delay(remote_failures)
                    logger.info(f"Remote store unreachable, retrying in {delay:.2f}s")
                    await self.sleep(delay)
                continue

            if outcome is AttemptOutcome.REMOTE_COLLISION:
                remote_failures = 0
            logger.warning(f"Family code collision ({outcome}) on attempt {index}, retrying")

        logger.error(f"Family code generation exhausted after {limit} attempts")
        raise CodeGenerationError(attempts)

    async def _check_candidate(self, candidate: str, use_remote: bool) -> AttemptOutcome:
        if await self.local_store.exists_by_code(candidate):
            return AttemptOutcome.LOCAL_COLLISION
        if not use_remote:
            return AttemptOutcome.UNIQUE

        try:
            result = await self.remote_store.exists_by_code(candidate)
        except Exception as e:
            logger.warning(f"Remote store lookup raised {e!r}, treating as unreachable", exc_info=True)
            return AttemptOutcome.REMOTE_UNREACHABLE

        if result == RemoteLookupResult.NOT_FOUND:
            return AttemptOutcome.UNIQUE
        if result == RemoteLookupResult.FOUND:
            return AttemptOutcome.REMOTE_COLLISION
        return AttemptOutcome.REMOTE_UNREACHABLE
