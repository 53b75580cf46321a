import io
import json
import logging
import logging.handlers
import sys

from auto_updater import logging_utils
from auto_updater.args import parse_args
from auto_updater.logging_utils import configure_logging, log_event, target_logger


def _configure(argv):
    args = parse_args(argv)
    configure_logging(
        args.verbose, args.log_file, args.log_json, args.log_level, args.log_syslog
    )


def test_logging_default_level(caplog):
    _configure([])
    logging.debug("debug")
    logging.info("info")
    logging.warning("warn")
    assert [r.getMessage() for r in caplog.records] == ["info", "warn"]


def test_logging_verbose_level(caplog):
    _configure(["--verbose"])
    logging.debug("debug")
    logging.info("info")
    assert [r.getMessage() for r in caplog.records] == ["debug", "info"]


def test_explicit_level_overrides_verbose(caplog):
    _configure(["--verbose", "--log-level", "error"])
    logging.warning("warn")
    logging.error("error")
    assert [r.getMessage() for r in caplog.records] == ["error"]


def test_log_file_handler(tmp_path):
    log_path = tmp_path / "nested" / "run.log"
    _configure(["--log-file", str(log_path)])
    logging.info("file-log")
    assert "file-log" in log_path.read_text(encoding="utf-8")


def test_log_json_handler_includes_structured_fields(monkeypatch):
    buf = io.StringIO()
    monkeypatch.setattr(sys, "stdout", buf)
    _configure(["--log-json"])
    log_event(
        "target_error",
        'bad "quote"\nhere',
        level=logging.ERROR,
        source="github-release",
        target_process="app",
    )
    payload = json.loads(buf.getvalue().strip().splitlines()[-1])
    assert payload == {
        "level": "ERROR",
        "message": 'bad "quote"\nhere',
        "event": "target_error",
        "source": "github-release",
        "target_process": "app",
    }


def test_syslog_handler(monkeypatch):
    calls = []
    monkeypatch.setattr(logging_utils, "_syslog_address", lambda: ("localhost", 514))
    monkeypatch.setattr(
        logging.handlers.SysLogHandler, "emit", lambda self, record: calls.append(record.getMessage())
    )
    _configure(["--log-syslog"])
    logging.warning("to-syslog")
    assert calls == ["to-syslog"]


def test_reconfigure_logging_replaces_handlers(monkeypatch):
    buf = io.StringIO()
    monkeypatch.setattr(sys, "stdout", buf)
    _configure(["--log-json"])
    _configure(["--log-json"])
    logging.warning("once")
    assert len(buf.getvalue().strip().splitlines()) == 1


def test_reconfigure_logging_closes_file_handlers(tmp_path):
    _configure(["--log-file", str(tmp_path / "one.log")])
    old = next(
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.FileHandler)
        and getattr(h, "_added_by_configure_logging", False)
    )
    _configure(["--log-file", str(tmp_path / "two.log")])
    assert old.stream is None or old.stream.closed


def test_log_event_defaults_message_to_event(caplog):
    with caplog.at_level(logging.INFO):
        log_event("run_start")
    assert caplog.records[-1].getMessage() == "run_start"
    assert caplog.records[-1].event == "run_start"


def test_target_logger_writes_per_source_file(tmp_path, caplog):
    with caplog.at_level(logging.INFO):
        logger = target_logger("github-release", "my-app", tmp_path)
        logger.info("hello from source")
        target_logger("github-release", "my-app", tmp_path).info("again")
    text = (tmp_path / "github-release" / "updater.log").read_text(encoding="utf-8")
    assert "[source: github-release, process: my-app] hello from source" in text
    assert text.count("again") == 1
    assert caplog.records[-1].source == "github-release"
