"""Fold flat join rows into one trace per transaction.

The gateway returns the cross product of a transaction with its actions and
receipt actions, and the aggregator may hold the same row twice when an
account is on both sides of a transaction. Report formatters consume
``TransactionTrace`` values instead of raw rows.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from txtrace.core.records import (
    BlockRecord,
    ExecutionOutcomeRecord,
    ReceiptActionRecord,
    ReceiptRecord,
    TransactionActionRecord,
    TransactionRecord,
    TransactionRow,
)


@dataclass
class TransactionTrace:
    transaction: TransactionRecord
    receipts: list[ReceiptRecord] = field(default_factory=list)
    transaction_actions: list[TransactionActionRecord] = field(default_factory=list)
    receipt_actions: list[ReceiptActionRecord] = field(default_factory=list)
    blocks: list[BlockRecord] = field(default_factory=list)
    execution_outcomes: list[ExecutionOutcomeRecord] = field(default_factory=list)

    @property
    def transaction_hash(self) -> str:
        return self.transaction.transaction_hash

    @property
    def receipt(self) -> ReceiptRecord | None:
        return self.receipts[0] if self.receipts else None

    @property
    def block(self) -> BlockRecord | None:
        return self.blocks[0] if self.blocks else None


class _TraceBuilder:
    def __init__(self, transaction: TransactionRecord) -> None:
        self.transaction = transaction
        self.receipts: dict[str, ReceiptRecord] = {}
        self.transaction_actions: dict[int | None, TransactionActionRecord] = {}
        self.receipt_actions: dict[tuple[str, int | None], ReceiptActionRecord] = {}
        self.blocks: dict[str, BlockRecord] = {}
        self.outcomes: dict[str, ExecutionOutcomeRecord] = {}

    def add(self, row: TransactionRow) -> None:
        if row.receipt is not None:
            self.receipts.setdefault(row.receipt.receipt_id, row.receipt)
        if row.transaction_action is not None:
            self.transaction_actions.setdefault(row.transaction_action.index_in_transaction, row.transaction_action)
        if row.receipt_action is not None:
            key = (row.receipt_action.receipt_id, row.receipt_action.index_in_action_receipt)
            self.receipt_actions.setdefault(key, row.receipt_action)
        if row.block is not None:
            self.blocks.setdefault(row.block.block_hash, row.block)
        if row.execution_outcome is not None:
            self.outcomes.setdefault(row.execution_outcome.receipt_id, row.execution_outcome)

    def build(self) -> TransactionTrace:
        return TransactionTrace(
            transaction=self.transaction,
            receipts=list(self.receipts.values()),
            transaction_actions=sorted(self.transaction_actions.values(), key=lambda item: _index(item.index_in_transaction)),
            receipt_actions=sorted(
                self.receipt_actions.values(),
                key=lambda item: (item.receipt_id, _index(item.index_in_action_receipt)),
            ),
            blocks=list(self.blocks.values()),
            execution_outcomes=list(self.outcomes.values()),
        )


def _index(value: int | None) -> int:
    return -1 if value is None else value


def fold_transactions(rows: Iterable[TransactionRow]) -> list[TransactionTrace]:
    """Group rows by transaction hash, keeping first-seen transaction order.

    Rows without a transaction are skipped. Actions are ordered by their index
    and every other sub-record is deduplicated on its identity key.
    """
    builders: dict[str, _TraceBuilder] = {}
    for row in rows:
        if row.transaction is None:
            continue
        builder = builders.get(row.transaction.transaction_hash)
        if builder is None:
            builder = builders[row.transaction.transaction_hash] = _TraceBuilder(row.transaction)
        builder.add(row)
    return [builder.build() for builder in builders.values()]
