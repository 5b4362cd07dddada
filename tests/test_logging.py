from __future__ import annotations

import json
import logging

from deucalion.provider.logging_events import emit_event
from deucalion.utils import log_context, setup_logging
from deucalion.utils.env_flags import env_list, is_truthy



def test_emit_event_format(caplog):
    caplog.set_level(logging.INFO)
    log = logging.getLogger("deucalion.test")
    emit_event(log, "poller.pass.complete", poller="instances", duration=0.12345, labels=("id", "type"))
    assert caplog.records[-1].message == "poller.pass.complete poller=instances duration=0.123 labels=id,type"


def test_emit_event_level(caplog):
    emit_event(logging.getLogger("deucalion.test"), "runner.overrun", level=logging.WARNING, runner="r")
    assert caplog.records[-1].levelno == logging.WARNING


def test_push_context_is_scoped():
    with log_context.push_context(poller="instances", region="us-east-1"):
        with log_context.push_context(pass_no=3):
            assert log_context.get_context() == {"poller": "instances", "region": "us-east-1", "pass_no": 3}
        assert "pass_no" not in log_context.get_context()
    assert log_context.get_context() == {}


def test_json_console_includes_context(monkeypatch, capsys, restore_root_logging):
    monkeypatch.setenv("DEUCALION_JSON_LOGS", "1")
    setup_logging("INFO")
    with log_context.push_context(poller="spot_prices"):
        logging.getLogger("deucalion.test").info("hello")
    line = capsys.readouterr().out.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["msg"] == "hello"
    assert payload["ctx"] == {"poller": "spot_prices"}


def test_log_file_uses_full_format(tmp_path, restore_root_logging):
    log_file = tmp_path / "logs" / "deucalion.log"
    setup_logging("DEBUG", log_file=str(log_file))
    logging.getLogger("deucalion.test").debug("to file")
    for h in logging.getLogger().handlers:
        h.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "deucalion.test - DEBUG - to file" in text
    assert logging.getLogger("botocore").level == logging.WARNING


def test_env_flag_helpers(monkeypatch):
    assert is_truthy("Yes") and not is_truthy("0") and not is_truthy(None)
    monkeypatch.setenv("DEUCALION_EXPOSE_TAGS", " a, ,b ")
    assert env_list("DEUCALION_EXPOSE_TAGS") == ["a", "b"]
    assert env_list("DEUCALION_UNSET_LIST") is None
