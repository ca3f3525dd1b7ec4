"""Parallel execution helpers shared by the sampler and the verification runner."""
from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import as_completed, Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from threading import Event
import time
from typing import Generic, TypeVar

from .errors import AccuracyError, AccuracyTimeoutError, ErrorReason, GeneratorCrashedError

T = TypeVar("T")

SyncWorker = Callable[[], T]

MIN_WAIT_SLICE = 0.001


@dataclass(slots=True)
class WorkerOutcome(Generic[T]):
    """Result or failure of a single worker, in submission order."""

    index: int
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _normalize_concurrency(total: int, limit: int | None) -> int:
    if limit is None or limit <= 0:
        return max(total, 1)
    return max(min(limit, total), 1)


def run_parallel_all_sync(
    workers: Sequence[SyncWorker[T]], *, max_concurrency: int | None = None
) -> list[T]:
    """Execute workers concurrently and return all results, failing fast on the first error."""

    if not workers:
        raise ValueError("workers must not be empty")
    max_workers = _normalize_concurrency(len(workers), max_concurrency)
    responses: list[T] = [None] * len(workers)  # type: ignore[list-item]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_map = {executor.submit(worker): idx for idx, worker in enumerate(workers)}
        try:
            for future in as_completed(future_map):
                responses[future_map[future]] = future.result()
        except BaseException:
            for pending in future_map:
                pending.cancel()
            raise
    return responses


def iter_outcomes_sync(
    workers: Sequence[SyncWorker[T]],
    *,
    max_concurrency: int | None = None,
    timeout: float | None = None,
) -> Iterator[WorkerOutcome[T]]:
    """Submit every worker at once and yield outcomes in submission order.

    Each wait is bounded by what remains of ``timeout`` (never less than a
    minimal slice). A worker that does not finish in time yields an outcome
    carrying :class:`AccuracyTimeoutError`; siblings are unaffected. Workers
    still pending when the iterator is closed are cancelled.
    """

    if not workers:
        return
    max_workers = _normalize_concurrency(len(workers), max_concurrency)
    executor = ThreadPoolExecutor(max_workers=max_workers)
    started = time.monotonic()
    futures: list[Future[T]] = [executor.submit(worker) for worker in workers]
    try:
        for index, future in enumerate(futures):
            wait_for: float | None = None
            if timeout is not None:
                wait_for = max(timeout - (time.monotonic() - started), MIN_WAIT_SLICE)
            try:
                yield WorkerOutcome(index=index, value=future.result(timeout=wait_for))
            except FutureTimeout:
                future.cancel()
                yield WorkerOutcome(
                    index=index,
                    error=AccuracyTimeoutError(f"worker {index} timed out", reason=ErrorReason.TIMEOUT),
                )
            except Exception as exc:  # noqa: BLE001
                yield WorkerOutcome(index=index, error=exc)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def collect_outcomes_sync(
    workers: Sequence[SyncWorker[T]],
    *,
    max_concurrency: int | None = None,
    timeout: float | None = None,
) -> list[WorkerOutcome[T]]:
    return list(iter_outcomes_sync(workers, max_concurrency=max_concurrency, timeout=timeout))


def run_with_deadline(
    work: Callable[[Event], T],
    *,
    timeout: float,
    label: str = "operation",
) -> T:
    """Run ``work`` as one deadline-bounded unit on a worker thread.

    ``work`` receives a cancellation :class:`~threading.Event`. When the
    deadline passes the event is set, the result of the unit is discarded and
    :class:`AccuracyTimeoutError` is raised. Library errors raised by ``work``
    propagate unchanged; anything else is wrapped in
    :class:`GeneratorCrashedError`.
    """

    cancel_event = Event()
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(work, cancel_event)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as exc:
        cancel_event.set()
        future.cancel()
        raise AccuracyTimeoutError(f"{label} exceeded {timeout:.3f}s", reason=ErrorReason.TIMEOUT) from exc
    except AccuracyError:
        raise
    except Exception as exc:
        raise GeneratorCrashedError(f"{label} crashed: {exc}") from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


__all__ = [
    "MIN_WAIT_SLICE",
    "SyncWorker",
    "WorkerOutcome",
    "collect_outcomes_sync",
    "iter_outcomes_sync",
    "run_parallel_all_sync",
    "run_with_deadline",
]
