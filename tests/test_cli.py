import json
import logging
import os

import pytest

from conftest import JAZZCASH_TEXT, STATEMENT_TEXT
from transaction_extractor.cli import CONSOLE_HANDLER_MARK, main


def test_writes_statement_json(tmp_path):
    source = tmp_path / "statement.txt"
    source.write_text(STATEMENT_TEXT, encoding="utf-8")
    target = tmp_path / "out.json"

    assert main([str(source), "-o", str(target)]) == 0

    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload["documentType"] == "bank_statement"
    assert payload["data"]["summary"]["totalTransactions"] == 2


def test_prints_receipt_json(tmp_path, capsys):
    source = tmp_path / "receipt.txt"
    source.write_text(JAZZCASH_TEXT, encoding="utf-8")

    assert main([str(source), "--type", "receipt"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["documentType"] == "mobile_payment"
    assert payload["data"]["service"] == "JazzCash"


def test_strategy_flag(tmp_path):
    source = tmp_path / "statement.txt"
    source.write_text(STATEMENT_TEXT, encoding="utf-8")
    target = tmp_path / "out.json"

    assert main([str(source), "-o", str(target), "--strategy", "proximity"]) == 0
    assert json.loads(target.read_text(encoding="utf-8"))["data"]["transactions"]


def test_missing_input(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "nope.txt")])
    assert exc.value.code == 2


def test_binary_input(tmp_path):
    source = tmp_path / "scan.bin"
    source.write_bytes(b"\xff\xfe\xfa")
    with pytest.raises(SystemExit) as exc:
        main([str(source)])
    assert exc.value.code == 3


@pytest.fixture
def root_handlers():
    root = logging.getLogger()
    before = list(root.handlers)
    yield root
    for handler in root.handlers[:]:
        if handler not in before:
            root.removeHandler(handler)
            handler.close()


def test_repeated_runs_do_not_stack_handlers(tmp_path, root_handlers):
    source = tmp_path / "statement.txt"
    source.write_text(STATEMENT_TEXT, encoding="utf-8")
    log_file = tmp_path / "run.log"

    for _ in range(3):
        assert main([str(source), "-o", str(tmp_path / "out.json"), "--log-file", str(log_file)]) == 0

    console = [h for h in root_handlers.handlers if getattr(h, CONSOLE_HANDLER_MARK, False)]
    files = [h for h in root_handlers.handlers
             if isinstance(h, logging.FileHandler) and h.baseFilename == os.path.abspath(str(log_file))]
    assert len(console) == 1
    assert len(files) == 1
    assert log_file.read_text(encoding="utf-8").count("Wrote bank_statement result") == 3
