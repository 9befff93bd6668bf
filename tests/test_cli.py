import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import structlog
from sqlalchemy.engine import Engine

from txtrace.cli import main
from txtrace.core.schema import metadata


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def _write_config(tmp_path: Path, engine: Engine) -> Path:
    path = tmp_path / "trace.yaml"
    path.write_text(
        f"""
version: 1
store:
  url: "{engine.url.render_as_string(hide_password=False)}"
aggregator:
  subtask_timeout: 30
logging:
  level: WARNING
""",
        encoding="utf-8",
    )
    return path


def _args(config: Path, *extra: str) -> list[str]:
    return [
        "--config",
        str(config),
        "--account",
        "alice.near",
        "--start",
        "2023-01-01T00:00:00Z",
        "--end",
        "2023-01-02T00:00:00Z",
        *extra,
    ]


def test_cli_prints_json_rows(tmp_path: Path, engine: Engine, seed: Callable[..., str], capsys: pytest.CaptureFixture[str]) -> None:
    seed("tx1", signer="alice.near", receiver="bob.near", tokens_burnt=10**30 + 1)
    config = _write_config(tmp_path, engine)

    code = main(_args(config, "--json"))

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["failures"] == []
    assert [row["transaction"]["transaction_hash"] for row in payload["rows"]] == ["tx1"]
    assert payload["rows"][0]["execution_outcome"]["tokens_burnt"] == 10**30 + 1


def test_cli_folds_transactions(tmp_path: Path, engine: Engine, seed: Callable[..., str], capsys: pytest.CaptureFixture[str]) -> None:
    seed("tx1", signer="alice.near", receiver="bob.near", actions=2, receipt_actions=2)
    config = _write_config(tmp_path, engine)

    code = main(_args(config, "--json", "--fold"))

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    [trace] = payload["transactions"]
    assert len(trace["transaction_actions"]) == 2
    assert len(trace["receipt_actions"]) == 2


def test_cli_reports_failures(tmp_path: Path, engine: Engine, capsys: pytest.CaptureFixture[str]) -> None:
    metadata.drop_all(engine)
    config = _write_config(tmp_path, engine)

    code = main(_args(config))

    out = capsys.readouterr().out
    assert code == 1
    assert "0 rows, 0 transactions for 1 account(s)" in out
    assert "FAILED alice.near (incoming)" in out
    assert "FAILED alice.near (outgoing)" in out
