from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, TypeVar


class Direction(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


_R = TypeVar("_R", bound="JoinedRecord")


class JoinedRecord:
    """Mixin for sub-records read from a prefixed, flattened join row.

    ``PREFIX`` is the label prefix used in the gateway's SELECT list and
    ``KEY`` the column that is NULL when the left join found nothing.
    """

    PREFIX: ClassVar[str]
    KEY: ClassVar[str]

    @classmethod
    def from_mapping(cls: type[_R], mapping: Mapping[str, Any]) -> _R | None:
        if mapping.get(f"{cls.PREFIX}{cls.KEY}") is None:
            return None
        values = {item.name: mapping.get(f"{cls.PREFIX}{item.name}") for item in fields(cls)}  # type: ignore[arg-type]
        return cls(**values)


@dataclass(frozen=True)
class TransactionRecord(JoinedRecord):
    PREFIX: ClassVar[str] = "t_"
    KEY: ClassVar[str] = "transaction_hash"

    transaction_hash: str
    included_in_block_hash: str | None
    included_in_chunk_hash: str | None
    index_in_chunk: int | None
    block_timestamp: int | None
    signer_account_id: str | None
    signer_public_key: str | None
    nonce: int | None
    receiver_account_id: str | None
    signature: str | None
    status: str | None
    converted_into_receipt_id: str | None
    receipt_conversion_gas_burnt: int | None
    receipt_conversion_tokens_burnt: int | None


@dataclass(frozen=True)
class ReceiptRecord(JoinedRecord):
    PREFIX: ClassVar[str] = "r_"
    KEY: ClassVar[str] = "receipt_id"

    receipt_id: str
    included_in_block_hash: str | None
    included_in_chunk_hash: str | None
    index_in_chunk: int | None
    included_in_block_timestamp: int | None
    predecessor_account_id: str | None
    receiver_account_id: str | None
    receipt_kind: str | None
    originated_from_transaction_hash: str | None


@dataclass(frozen=True)
class TransactionActionRecord(JoinedRecord):
    PREFIX: ClassVar[str] = "ta_"
    KEY: ClassVar[str] = "transaction_hash"

    transaction_hash: str
    index_in_transaction: int | None
    action_kind: str | None
    args: Any = field(default=None, hash=False)


@dataclass(frozen=True)
class ReceiptActionRecord(JoinedRecord):
    PREFIX: ClassVar[str] = "ara_"
    KEY: ClassVar[str] = "receipt_id"

    receipt_id: str
    index_in_action_receipt: int | None
    receipt_predecessor_account_id: str | None
    receipt_receiver_account_id: str | None
    receipt_included_in_block_timestamp: int | None
    action_kind: str | None
    args: Any = field(default=None, hash=False)


@dataclass(frozen=True)
class BlockRecord(JoinedRecord):
    PREFIX: ClassVar[str] = "b_"
    KEY: ClassVar[str] = "block_hash"

    block_height: int | None
    block_hash: str
    prev_block_hash: str | None
    block_timestamp: int | None
    gas_price: int | None
    author_account_id: str | None


@dataclass(frozen=True)
class ExecutionOutcomeRecord(JoinedRecord):
    PREFIX: ClassVar[str] = "eo_"
    KEY: ClassVar[str] = "receipt_id"

    receipt_id: str
    executed_in_block_hash: str | None
    executed_in_block_timestamp: int | None
    index_in_chunk: int | None
    gas_burnt: int | None
    tokens_burnt: int | None
    executor_account_id: str | None
    shard_id: int | None
    status: str | None


@dataclass(frozen=True)
class TransactionRow:
    """One flat row of the transaction/receipt/action/block/outcome join."""

    transaction: TransactionRecord | None
    receipt: ReceiptRecord | None = None
    transaction_action: TransactionActionRecord | None = None
    receipt_action: ReceiptActionRecord | None = None
    block: BlockRecord | None = None
    execution_outcome: ExecutionOutcomeRecord | None = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "TransactionRow":
        return cls(
            transaction=TransactionRecord.from_mapping(mapping),
            receipt=ReceiptRecord.from_mapping(mapping),
            transaction_action=TransactionActionRecord.from_mapping(mapping),
            receipt_action=ReceiptActionRecord.from_mapping(mapping),
            block=BlockRecord.from_mapping(mapping),
            execution_outcome=ExecutionOutcomeRecord.from_mapping(mapping),
        )

    @property
    def transaction_hash(self) -> str | None:
        return self.transaction.transaction_hash if self.transaction else None


@dataclass(frozen=True)
class TaskFailure:
    account: str
    direction: Direction
    error: Exception


@dataclass
class ReportOutcome:
    rows: list[TransactionRow] = field(default_factory=list)
    failures: list[TaskFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def failed_accounts(self) -> set[str]:
        return {failure.account for failure in self.failures}

    def failure_summary(self) -> list[str]:
        return [
            f"{failure.account} ({failure.direction.value}): {failure.error}"
            for failure in sorted(self.failures, key=lambda item: (item.account, item.direction.value))
        ]
