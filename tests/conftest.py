from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from txtrace.config.schemas import StoreConfig
from txtrace.core.schema import (
    action_receipt_actions_table,
    blocks_table,
    execution_outcomes_table,
    metadata,
    receipts_table,
    transaction_actions_table,
    transactions_table,
)
from txtrace.core.store import create_store_engine

NOON = 1672574400 * 10**9  # 2023-01-01T12:00:00Z


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    store = create_store_engine(StoreConfig(url=f"sqlite:///{tmp_path / 'indexer.db'}"))
    metadata.create_all(store)
    yield store
    store.dispose()


@pytest.fixture
def seed(engine: Engine) -> Callable[..., str]:
    """Insert one transaction with its receipt, actions, block and outcome."""

    def _seed(
        tx_hash: str,
        signer: str,
        receiver: str,
        block_timestamp: int = NOON,
        status: str = "SUCCESS_VALUE",
        actions: int = 1,
        receipt_actions: int = 1,
        tokens_burnt: int = 242_800_000_000_000_000_000,
        gas_burnt: int = 223_182_562_500,
    ) -> str:
        receipt_id = f"receipt-{tx_hash}"
        block_hash = f"block-{tx_hash}"
        with engine.begin() as conn:
            conn.execute(
                transactions_table.insert().values(
                    transaction_hash=tx_hash,
                    included_in_block_hash=block_hash,
                    included_in_chunk_hash=f"chunk-{tx_hash}",
                    index_in_chunk=0,
                    block_timestamp=block_timestamp,
                    signer_account_id=signer,
                    signer_public_key="ed25519:signer",
                    nonce=96_000_000_000_001,
                    receiver_account_id=receiver,
                    signature="ed25519:signature",
                    status=status,
                    converted_into_receipt_id=receipt_id,
                    receipt_conversion_gas_burnt=2_428_000_000_000,
                    receipt_conversion_tokens_burnt=tokens_burnt,
                )
            )
            conn.execute(
                receipts_table.insert().values(
                    receipt_id=receipt_id,
                    included_in_block_hash=block_hash,
                    included_in_chunk_hash=f"chunk-{tx_hash}",
                    index_in_chunk=0,
                    included_in_block_timestamp=block_timestamp,
                    predecessor_account_id=signer,
                    receiver_account_id=receiver,
                    receipt_kind="ACTION",
                    originated_from_transaction_hash=tx_hash,
                )
            )
            for index in range(actions):
                conn.execute(
                    transaction_actions_table.insert().values(
                        transaction_hash=tx_hash,
                        index_in_transaction=index,
                        action_kind="TRANSFER",
                        args={"deposit": str(10**24 * (index + 1))},
                    )
                )
            for index in range(receipt_actions):
                conn.execute(
                    action_receipt_actions_table.insert().values(
                        receipt_id=receipt_id,
                        index_in_action_receipt=index,
                        action_kind="TRANSFER",
                        args={"deposit": str(10**24 * (index + 1))},
                        receipt_predecessor_account_id=signer,
                        receipt_receiver_account_id=receiver,
                        receipt_included_in_block_timestamp=block_timestamp,
                    )
                )
            conn.execute(
                blocks_table.insert().values(
                    block_height=83_000_000,
                    block_hash=block_hash,
                    prev_block_hash=f"prev-{tx_hash}",
                    block_timestamp=block_timestamp,
                    gas_price=100_000_000,
                    author_account_id="validator.poolv1.near",
                )
            )
            conn.execute(
                execution_outcomes_table.insert().values(
                    receipt_id=receipt_id,
                    executed_in_block_hash=block_hash,
                    executed_in_block_timestamp=block_timestamp,
                    index_in_chunk=0,
                    gas_burnt=gas_burnt,
                    tokens_burnt=tokens_burnt,
                    executor_account_id=receiver,
                    status=status,
                    shard_id=0,
                )
            )
        return receipt_id

    return _seed
