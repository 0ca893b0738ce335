"""Per-path content retrieval with partial-failure tolerance.

Paths are fetched on a bounded thread pool.  Every worker shares one
``RateLimitGate`` so a rate-limit response from GitHub pauses the whole pool,
not just the worker that saw it.  Results are buffered by listing index and
returned in listing order, which keeps the tree fold deterministic no matter
which fetch finishes first.

A failure on one path never aborts the run: it becomes a
``ContentFetchSkip`` and the loop moves on.  Only cancellation is fatal.
"""

from __future__ import annotations

import base64
import binascii
import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from playground_import.lib.errors import ImportCancelledError
from playground_import.lib.github import ContentFetchError, FilePayload, RateLimitedError

logger = logging.getLogger(__name__)

__all__ = [
    "ContentFetchSkip",
    "ContentRetriever",
    "RateLimitGate",
    "RetrievalResult",
    "RetrievedFile",
    "decode_payload",
]

SUPPORTED_ENCODING = "base64"

PayloadFetcher = Callable[[str], FilePayload]


@dataclass(frozen=True)
class RetrievedFile:
    """A listing path paired with its decoded text."""

    path: str
    content: str


@dataclass(frozen=True)
class ContentFetchSkip:
    """A path that was dropped during retrieval, and why."""

    path: str
    reason: str


@dataclass
class RetrievalResult:
    files: list[RetrievedFile] = field(default_factory=list)
    skipped: list[ContentFetchSkip] = field(default_factory=list)


def decode_payload(
    payload: FilePayload, *, strict_utf8: bool = True
) -> RetrievedFile | ContentFetchSkip:
    """Turn a contents-API payload into text, or explain why it can't be.

    Only ``base64`` payloads with inline content are accepted; GitHub
    declines to inline large files and reports them with another encoding.
    With *strict_utf8* a payload that is not valid UTF-8 is skipped rather
    than decoded with replacement characters.
    """
    if payload.encoding != SUPPORTED_ENCODING:
        return ContentFetchSkip(payload.path, f"unsupported encoding {payload.encoding!r}")
    if not payload.content:
        return ContentFetchSkip(payload.path, "no inline content")
    try:
        raw = base64.b64decode(payload.content)
    except (binascii.Error, ValueError) as exc:
        return ContentFetchSkip(payload.path, f"invalid base64: {exc}")
    try:
        text = raw.decode("utf-8") if strict_utf8 else raw.decode("utf-8", "replace")
    except UnicodeDecodeError:
        return ContentFetchSkip(payload.path, "content is not UTF-8 text")
    return RetrievedFile(path=payload.path, content=text)


class RateLimitGate:
    """Back-off state shared by every worker of one retrieval run."""

    def __init__(
        self,
        *,
        max_wait: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_wait = max_wait
        self._clock = clock
        self._lock = threading.Lock()
        self._resume_at = 0.0

    def trip(self, retry_after: float) -> float:
        """Pause all workers for *retry_after* seconds (capped at ``max_wait``)."""
        delay = min(max(retry_after, 0.0), self.max_wait)
        with self._lock:
            self._resume_at = max(self._resume_at, self._clock() + delay)
        return delay

    def remaining(self) -> float:
        with self._lock:
            return max(0.0, self._resume_at - self._clock())

    def wait(self, cancel: threading.Event | None = None) -> None:
        """Block until the gate is open; raise if *cancel* is set meanwhile."""
        while True:
            remaining = self.remaining()
            if remaining <= 0:
                return
            waiter = cancel if cancel is not None else threading.Event()
            if waiter.wait(remaining):
                raise ImportCancelledError("import cancelled while rate limited")


@dataclass
class ContentRetriever:
    """Fetches and decodes file contents for a filtered listing.

    Args:
        fetch: Callable returning the raw payload for a path; raises
            ``RateLimitedError`` or ``ContentFetchError`` on failure.
        max_workers: Upper bound on concurrent fetches.
        strict_utf8: Skip payloads that are not valid UTF-8.
        rate_limit_retries: Extra attempts for a path that hit the rate limit.
        gate: Shared back-off state; one is created per retriever by default.
    """

    fetch: PayloadFetcher
    max_workers: int = 8
    strict_utf8: bool = True
    rate_limit_retries: int = 2
    gate: RateLimitGate = field(default_factory=RateLimitGate)

    def retrieve(
        self, paths: Sequence[str], *, cancel: threading.Event | None = None
    ) -> RetrievalResult:
        """Fetch every path; return kept files and skips in listing order.

        Raises:
            ImportCancelledError: *cancel* was set before every fetch finished.
                Partial results are discarded.
        """
        outcomes: list[RetrievedFile | ContentFetchSkip | None] = [None] * len(paths)
        workers = max(1, min(self.max_workers, len(paths)))

        if workers == 1:
            for index, path in enumerate(paths):
                outcomes[index] = self._retrieve_one(path, cancel)
        else:
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="content-fetch"
            ) as pool:
                futures: dict[Future[RetrievedFile | ContentFetchSkip], int] = {
                    pool.submit(self._retrieve_one, path, cancel): index
                    for index, path in enumerate(paths)
                }
                try:
                    for future in as_completed(futures):
                        outcomes[futures[future]] = future.result()
                except ImportCancelledError:
                    for future in futures:
                        future.cancel()
                    raise

        if cancel is not None and cancel.is_set():
            raise ImportCancelledError("import cancelled during content retrieval")

        result = RetrievalResult()
        for outcome in outcomes:
            if isinstance(outcome, RetrievedFile):
                result.files.append(outcome)
            elif isinstance(outcome, ContentFetchSkip):
                result.skipped.append(outcome)
        return result

    def _retrieve_one(
        self, path: str, cancel: threading.Event | None
    ) -> RetrievedFile | ContentFetchSkip:
        attempts = 0
        while True:
            if cancel is not None and cancel.is_set():
                raise ImportCancelledError("import cancelled during content retrieval")
            self.gate.wait(cancel)
            try:
                payload = self.fetch(path)
            except RateLimitedError as exc:
                if attempts >= self.rate_limit_retries:
                    return self._skip(path, "rate limited")
                attempts += 1
                delay = self.gate.trip(exc.retry_after)
                logger.warning(
                    "Rate limited fetching %s; pausing fetches for %.1fs (attempt %d/%d)",
                    path,
                    delay,
                    attempts,
                    self.rate_limit_retries,
                )
                continue
            except ContentFetchError as exc:
                return self._skip(path, exc.reason)
            except ImportCancelledError:
                raise
            except Exception as exc:
                return self._skip(path, f"{type(exc).__name__}: {exc}")

            outcome = decode_payload(payload, strict_utf8=self.strict_utf8)
            if isinstance(outcome, ContentFetchSkip):
                return self._skip(outcome.path, outcome.reason)
            return outcome

    @staticmethod
    def _skip(path: str, reason: str) -> ContentFetchSkip:
        logger.warning("Skipping %s: %s", path, reason)
        return ContentFetchSkip(path=path, reason=reason)
