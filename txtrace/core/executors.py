from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.engine import Engine

from txtrace.config.loader import ConfigLoader
from txtrace.config.schemas import TraceConfig
from txtrace.core.aggregator import AccountExpander, Aggregator
from txtrace.core.gateway import QueryGateway
from txtrace.core.records import ReportOutcome
from txtrace.core.store import create_store_engine


@dataclass
class ExecutorContext:
    engine: Engine
    aggregator: Aggregator
    config: TraceConfig


class ReportExecutor:
    """Wires store, gateway and aggregator from a trace config file."""

    def __init__(self, config_path: str, account_expander: AccountExpander | None = None) -> None:
        self.config_path = config_path
        self.account_expander = account_expander

    def build(self, config: TraceConfig | None = None) -> ExecutorContext:
        config = config or ConfigLoader.load_trace_config(self.config_path)
        engine = create_store_engine(config.store)
        aggregator = Aggregator(
            gateway=QueryGateway(engine),
            max_workers=config.aggregator.max_workers,
            subtask_timeout=config.aggregator.subtask_timeout,
            account_expander=self.account_expander,
        )
        return ExecutorContext(engine=engine, aggregator=aggregator, config=config)

    def run(self, accounts: set[str], start: datetime, end: datetime, config: TraceConfig | None = None) -> ReportOutcome:
        context = self.build(config)
        try:
            return context.aggregator.build_report(accounts, start, end)
        finally:
            context.engine.dispose()
