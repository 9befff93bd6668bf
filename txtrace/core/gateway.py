from __future__ import annotations

from collections.abc import Iterable
from dataclasses import fields
from datetime import datetime

import structlog
from sqlalchemy import Select, Table, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement, Label

from txtrace.core.errors import StoreError
from txtrace.core.records import (
    BlockRecord,
    Direction,
    ExecutionOutcomeRecord,
    JoinedRecord,
    ReceiptActionRecord,
    ReceiptRecord,
    TransactionActionRecord,
    TransactionRecord,
    TransactionRow,
)
from txtrace.core.schema import (
    SUCCESS_STATUSES,
    action_receipt_actions_table,
    blocks_table,
    execution_outcomes_table,
    receipts_table,
    transaction_actions_table,
    transactions_table,
)
from txtrace.core.timestamps import bound_to_nanos, format_bound

logger = structlog.get_logger(__name__)

_SOURCES: tuple[tuple[type[JoinedRecord], Table], ...] = (
    (TransactionRecord, transactions_table),
    (ReceiptRecord, receipts_table),
    (TransactionActionRecord, transaction_actions_table),
    (ReceiptActionRecord, action_receipt_actions_table),
    (BlockRecord, blocks_table),
    (ExecutionOutcomeRecord, execution_outcomes_table),
)


def _labelled_columns() -> list[Label[object]]:
    columns: list[Label[object]] = []
    for record_type, table in _SOURCES:
        for item in fields(record_type):  # type: ignore[arg-type]
            columns.append(table.c[item.name].label(f"{record_type.PREFIX}{item.name}"))
    return columns


def _account_column(direction: Direction) -> ColumnElement[str]:
    if direction == Direction.OUTGOING:
        return action_receipt_actions_table.c.receipt_predecessor_account_id
    return action_receipt_actions_table.c.receipt_receiver_account_id


def build_trace_query(direction: Direction, accounts: Iterable[str], start_ns: int, end_ns: int) -> Select[tuple[object, ...]]:
    """Correlated read of transaction, receipt, actions, block and outcome.

    Every join is a left join, but the outcome status and block timestamp
    predicates drop rows without a receipt, block or successful outcome.
    """
    t = transactions_table
    r = receipts_table
    ta = transaction_actions_table
    ara = action_receipt_actions_table
    b = blocks_table
    eo = execution_outcomes_table

    joined = (
        t.outerjoin(
            r,
            or_(
                t.c.converted_into_receipt_id == r.c.receipt_id,
                t.c.transaction_hash == r.c.originated_from_transaction_hash,
            ),
        )
        .outerjoin(ta, t.c.transaction_hash == ta.c.transaction_hash)
        .outerjoin(ara, ara.c.receipt_id == r.c.receipt_id)
        .outerjoin(b, b.c.block_hash == r.c.included_in_block_hash)
        .outerjoin(eo, eo.c.receipt_id == r.c.receipt_id)
    )

    return (
        select(*_labelled_columns())
        .select_from(joined)
        .where(
            _account_column(direction).in_(sorted(accounts)),
            eo.c.status.in_(SUCCESS_STATUSES),
            b.c.block_timestamp >= start_ns,
            b.c.block_timestamp < end_ns,
        )
    )


class QueryGateway:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def fetch_outgoing(self, accounts: set[str], start: datetime, end: datetime) -> list[TransactionRow]:
        return self.fetch(Direction.OUTGOING, accounts, start, end)

    def fetch_incoming(self, accounts: set[str], start: datetime, end: datetime) -> list[TransactionRow]:
        return self.fetch(Direction.INCOMING, accounts, start, end)

    def fetch(self, direction: Direction, accounts: set[str], start: datetime, end: datetime) -> list[TransactionRow]:
        """Run the trace query for ``accounts`` over the half-open range ``[start, end)``.

        Raises:
            StoreError: The store failed; the SQLAlchemy exception is the cause.
        """
        if not accounts:
            return []

        log = logger.bind(direction=direction.value, accounts=len(accounts), start=format_bound(start), end=format_bound(end))
        query = build_trace_query(direction, accounts, bound_to_nanos(start), bound_to_nanos(end))
        log.debug("Querying transactions")

        try:
            with self.engine.connect() as conn:
                result = conn.execute(query)
                rows = [TransactionRow.from_mapping(mapping) for mapping in result.mappings()]
        except SQLAlchemyError as error:
            raise StoreError(f"{direction.value} query failed: {error}", cause=error) from error

        log.info("Got transactions", rows=len(rows))
        return rows
