"""SQLAlchemy Core table definitions for the indexer tables read by the gateway.

Only the columns the gateway selects are declared. The production store owns
these tables; ``metadata.create_all`` is used by tests and local fixtures.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Column, Integer, MetaData, Numeric, PrimaryKeyConstraint, String, Table, Text
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator, TypeEngine

SUCCESS_STATUSES: tuple[str, ...] = ("SUCCESS_RECEIPT_ID", "SUCCESS_VALUE")


class ExactInteger(TypeDecorator[int]):
    """Unsigned integer column (u64 or u128) read back as a Python ``int``.

    PostgreSQL stores these as ``NUMERIC(p, 0)``. SQLite integers are signed
    64-bit, so there every value is kept as text left-padded with zeros to
    ``precision`` digits. Padded text sorts in numeric order, which keeps
    range filters such as ``block_timestamp >= :start`` correct.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = 45) -> None:
        super().__init__()
        self.precision = precision

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(self.precision))
        return dialect.type_descriptor(Numeric(self.precision, 0))

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        number = int(value)
        if dialect.name == "sqlite":
            return str(number).zfill(self.precision)
        return Decimal(number)

    def process_result_value(self, value: Any, dialect: Dialect) -> int | None:
        if value is None:
            return None
        return int(value)


U64 = ExactInteger(20)
U128 = ExactInteger(45)

metadata = MetaData()

transactions_table = Table(
    "transactions",
    metadata,
    Column("transaction_hash", Text, primary_key=True),
    Column("included_in_block_hash", Text, nullable=False),
    Column("included_in_chunk_hash", Text, nullable=False),
    Column("index_in_chunk", Integer, nullable=False),
    Column("block_timestamp", U64, nullable=False),
    Column("signer_account_id", Text, nullable=False),
    Column("signer_public_key", Text, nullable=False),
    Column("nonce", U64, nullable=False),
    Column("receiver_account_id", Text, nullable=False),
    Column("signature", Text, nullable=False),
    Column("status", Text, nullable=False),
    Column("converted_into_receipt_id", Text, nullable=False),
    Column("receipt_conversion_gas_burnt", U64),
    Column("receipt_conversion_tokens_burnt", U128),
)

receipts_table = Table(
    "receipts",
    metadata,
    Column("receipt_id", Text, primary_key=True),
    Column("included_in_block_hash", Text, nullable=False),
    Column("included_in_chunk_hash", Text, nullable=False),
    Column("index_in_chunk", Integer, nullable=False),
    Column("included_in_block_timestamp", U64, nullable=False),
    Column("predecessor_account_id", Text, nullable=False),
    Column("receiver_account_id", Text, nullable=False),
    Column("receipt_kind", Text, nullable=False),
    Column("originated_from_transaction_hash", Text, nullable=False),
)

transaction_actions_table = Table(
    "transaction_actions",
    metadata,
    Column("transaction_hash", Text, nullable=False),
    Column("index_in_transaction", Integer, nullable=False),
    Column("action_kind", Text, nullable=False),
    Column("args", JSON, nullable=False),
    PrimaryKeyConstraint("transaction_hash", "index_in_transaction"),
)

action_receipt_actions_table = Table(
    "action_receipt_actions",
    metadata,
    Column("receipt_id", Text, nullable=False),
    Column("index_in_action_receipt", Integer, nullable=False),
    Column("action_kind", Text, nullable=False),
    Column("args", JSON, nullable=False),
    Column("receipt_predecessor_account_id", Text, nullable=False),
    Column("receipt_receiver_account_id", Text, nullable=False),
    Column("receipt_included_in_block_timestamp", U64, nullable=False),
    PrimaryKeyConstraint("receipt_id", "index_in_action_receipt"),
)

blocks_table = Table(
    "blocks",
    metadata,
    Column("block_height", U64, nullable=False),
    Column("block_hash", Text, primary_key=True),
    Column("prev_block_hash", Text, nullable=False),
    Column("block_timestamp", U64, nullable=False),
    Column("gas_price", U128, nullable=False),
    Column("author_account_id", Text, nullable=False),
)

execution_outcomes_table = Table(
    "execution_outcomes",
    metadata,
    Column("receipt_id", Text, primary_key=True),
    Column("executed_in_block_hash", Text, nullable=False),
    Column("executed_in_block_timestamp", U64, nullable=False),
    Column("index_in_chunk", Integer, nullable=False),
    Column("gas_burnt", U64, nullable=False),
    Column("tokens_burnt", U128, nullable=False),
    Column("executor_account_id", Text, nullable=False),
    Column("status", Text, nullable=False),
    Column("shard_id", U64, nullable=False),
)
