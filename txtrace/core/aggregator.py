from __future__ import annotations

import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import structlog

from txtrace.core.errors import SchedulingError, StoreError, SubtaskTimeoutError
from txtrace.core.records import Direction, ReportOutcome, TaskFailure, TransactionRow
from txtrace.core.timestamps import format_bound

logger = structlog.get_logger(__name__)

AccountExpander = Callable[[str], set[str]]


class TransactionSource(Protocol):
    def fetch_incoming(self, accounts: set[str], start: datetime, end: datetime) -> list[TransactionRow]: ...

    def fetch_outgoing(self, accounts: set[str], start: datetime, end: datetime) -> list[TransactionRow]: ...


def single_account(account: str) -> set[str]:
    """Default wallet set for an account: the account alone.

    Associated wallets (lockup or custodial accounts) would be added by a
    custom expander passed to ``Aggregator``.
    """
    return {account}


@dataclass
class _Subtask:
    account: str
    direction: Direction
    wallets: set[str]
    pool: ThreadPoolExecutor | None = None
    started_at: float | None = None


_Futures = dict[Future[list[TransactionRow]], _Subtask]


class Aggregator:
    """Fans out one incoming and one outgoing fetch per account and merges the results.

    Subtask failures are collected into the returned ``ReportOutcome`` and
    never abort the report. ``subtask_timeout`` is measured from the moment a
    worker starts the fetch; an expired subtask is reported as a
    ``SubtaskTimeoutError`` and its worker is abandoned. When every worker of
    a pool is held by an abandoned fetch, the subtasks still queued on it are
    moved to a fresh pool.
    """

    def __init__(
        self,
        gateway: TransactionSource,
        max_workers: int | None = None,
        subtask_timeout: float | None = None,
        account_expander: AccountExpander | None = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if subtask_timeout is not None and subtask_timeout <= 0:
            raise ValueError("subtask_timeout must be positive")
        self.gateway = gateway
        self.max_workers = max_workers
        self.subtask_timeout = subtask_timeout
        self.account_expander = account_expander or single_account

    def build_report(self, accounts: set[str], start: datetime, end: datetime) -> ReportOutcome:
        logger.info("Got request", accounts=sorted(accounts), start=format_bound(start), end=format_bound(end))
        outcome = ReportOutcome()
        if not accounts:
            return outcome

        subtasks = [
            _Subtask(account=account, direction=direction, wallets=self.account_expander(account))
            for account in sorted(accounts)
            for direction in (Direction.INCOMING, Direction.OUTGOING)
        ]
        workers = len(subtasks) if self.max_workers is None else min(self.max_workers, len(subtasks))

        pools: list[ThreadPoolExecutor] = []
        try:
            pool = self._new_pool(workers, pools)
            futures: _Futures = {}
            for subtask in subtasks:
                self._submit(pool, subtask, start, end, futures, outcome)
            self._gather(futures, outcome, workers, start, end, pools)
        finally:
            # every future is settled or abandoned past its deadline here
            for pool in pools:
                pool.shutdown(wait=False, cancel_futures=True)

        logger.info("Done", rows=len(outcome.rows), failures=len(outcome.failures))
        return outcome

    @staticmethod
    def _new_pool(workers: int, pools: list[ThreadPoolExecutor]) -> ThreadPoolExecutor:
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="txtrace-fetch")
        pools.append(pool)
        return pool

    def _submit(
        self,
        pool: ThreadPoolExecutor,
        subtask: _Subtask,
        start: datetime,
        end: datetime,
        futures: _Futures,
        outcome: ReportOutcome,
    ) -> Future[list[TransactionRow]] | None:
        subtask.pool = pool
        try:
            future = pool.submit(self._run, subtask, start, end)
        except RuntimeError as error:
            self._fail(outcome, subtask, SchedulingError(f"could not schedule subtask: {error}", cause=error))
            return None
        futures[future] = subtask
        return future

    def _run(self, subtask: _Subtask, start: datetime, end: datetime) -> list[TransactionRow]:
        subtask.started_at = time.monotonic()
        if subtask.direction == Direction.INCOMING:
            return self.gateway.fetch_incoming(subtask.wallets, start, end)
        return self.gateway.fetch_outgoing(subtask.wallets, start, end)

    def _gather(
        self,
        futures: _Futures,
        outcome: ReportOutcome,
        workers: int,
        start: datetime,
        end: datetime,
        pools: list[ThreadPoolExecutor],
    ) -> None:
        pending = set(futures)
        abandoned: list[Future[list[TransactionRow]]] = []
        while pending:
            done, pending = wait(pending, timeout=self._wait_timeout(pending, futures), return_when=FIRST_COMPLETED)
            for future in done:
                self._collect(future, futures[future], outcome)
            for future in self._expired(pending, futures):
                pending.discard(future)
                abandoned.append(future)
                self._fail(outcome, futures[future], SubtaskTimeoutError(self.subtask_timeout or 0))

            pool = pools[-1]
            stuck = sum(1 for future in abandoned if future.running() and futures[future].pool is pool)
            if pending and stuck >= workers:
                pending = self._move_queued(pending, futures, outcome, workers, start, end, pools)

    def _move_queued(
        self,
        pending: set[Future[list[TransactionRow]]],
        futures: _Futures,
        outcome: ReportOutcome,
        workers: int,
        start: datetime,
        end: datetime,
        pools: list[ThreadPoolExecutor],
    ) -> set[Future[list[TransactionRow]]]:
        """Resubmit subtasks that never started to a fresh pool.

        A future that ``cancel()`` refuses has already started on the old
        pool and stays pending there.
        """
        logger.warning("All workers held by abandoned fetches", workers=workers, pending=len(pending))
        pools[-1].shutdown(wait=False)
        pool = self._new_pool(workers, pools)
        remaining: set[Future[list[TransactionRow]]] = set()
        for future in pending:
            if not future.cancel():
                remaining.add(future)
                continue
            moved = self._submit(pool, futures.pop(future), start, end, futures, outcome)
            if moved is not None:
                remaining.add(moved)
        return remaining

    def _wait_timeout(self, pending: set[Future[list[TransactionRow]]], futures: dict[Future[list[TransactionRow]], _Subtask]) -> float | None:
        if self.subtask_timeout is None:
            return None
        now = time.monotonic()
        remaining = [
            futures[future].started_at + self.subtask_timeout - now  # type: ignore[operator]
            for future in pending
            if futures[future].started_at is not None
        ]
        if not remaining:
            return self.subtask_timeout
        return max(0.0, min(remaining))

    def _expired(self, pending: set[Future[list[TransactionRow]]], futures: dict[Future[list[TransactionRow]], _Subtask]) -> list[Future[list[TransactionRow]]]:
        if self.subtask_timeout is None:
            return []
        now = time.monotonic()
        expired: list[Future[list[TransactionRow]]] = []
        for future in pending:
            started_at = futures[future].started_at
            if started_at is not None and now - started_at >= self.subtask_timeout:
                expired.append(future)
        return expired

    def _collect(self, future: Future[list[TransactionRow]], subtask: _Subtask, outcome: ReportOutcome) -> None:
        try:
            rows = future.result()
        except StoreError as error:
            self._fail(outcome, subtask, error)
        except Exception as error:
            self._fail(outcome, subtask, SchedulingError(f"subtask crashed: {error}", cause=error))
        else:
            outcome.rows.extend(rows)

    @staticmethod
    def _fail(outcome: ReportOutcome, subtask: _Subtask, error: Exception) -> None:
        logger.warning("Got error", account=subtask.account, direction=subtask.direction.value, error=str(error))
        outcome.failures.append(TaskFailure(account=subtask.account, direction=subtask.direction, error=error))
