import json
import logging

import pytest

from latest_drop.app import App, run_once
from latest_drop.config import Config
from latest_drop.outcome import Priority
from tests.conftest import FakeNotifier, make_file


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in root.handlers[:]:
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


@pytest.fixture
def settings(src, dst, tmp_path):
    return {
        "action": "Copy",
        "source_folder": str(src),
        "destination_folder": str(dst),
        "mail_to": ["ops@example.com"],
        "log_file": str(tmp_path / "logs" / "run.log"),
    }


def test_copy_run(src, dst, settings, notifier):
    make_file(src, "old.csv", content="old", age=1)
    make_file(src, "new.csv", content="new", age=2)
    code = run_once(Config(data=settings), notifier)
    assert code == 0
    assert (dst / "new.csv").read_text(encoding="utf-8") == "new"
    assert (src / "new.csv").exists()
    report, recipients = notifier.sent[0]
    assert report.subject == "File copied"
    assert report.body.startswith("Copy the most recently edited file")
    assert recipients == ["ops@example.com"]


def test_move_run_with_rename(src, dst, settings, notifier):
    make_file(src, "report.final.csv", content="x")
    settings.update(action="Move", destination_file_name="A")
    assert run_once(Config(data=settings), notifier) == 0
    assert (dst / "A.csv").read_text(encoding="utf-8") == "x"
    assert not (src / "report.final.csv").exists()
    assert notifier.sent[0][0].subject == "File moved"


def test_no_match_exits_zero(src, dst, settings, notifier):
    make_file(src, "a.zip")
    make_file(src, "b.zip")
    settings.update(file_extension=".zip", file_name_starts_with="notfound")
    assert run_once(Config(data=settings), notifier) == 0
    assert list(dst.iterdir()) == []
    report = notifier.sent[0][0]
    assert report.subject == "No file copied"
    assert report.priority is Priority.NORMAL


def test_conflict_fails_and_reports(src, dst, settings, notifier):
    make_file(src, "data.csv", content="new")
    make_file(dst, "data.csv", content="old")
    assert run_once(Config(data=settings), notifier) == 1
    assert (dst / "data.csv").read_text(encoding="utf-8") == "old"
    report = notifier.sent[0][0]
    assert report.subject == "FAILURE"
    assert report.priority is Priority.HIGH
    assert "DestinationConflict" in report.body


def test_missing_source_folder_fails(tmp_path, settings, notifier):
    settings["source_folder"] = str(tmp_path / "gone")
    assert run_once(Config(data=settings), notifier) == 1
    assert "DirectoryUnavailable" in notifier.sent[0][0].body


def test_invalid_config_exits_two_and_reports(settings, notifier):
    settings["overwrite"] = "perhaps"
    assert run_once(Config(data=settings), notifier) == 2
    report = notifier.sent[0][0]
    assert report.subject == "FAILURE"
    assert "overwrite" in report.body


def test_invalid_config_without_recipients_is_not_mailed(settings, notifier):
    settings["mail_to"] = []
    assert run_once(Config(data=settings), notifier) == 2
    assert notifier.sent == []


def test_notifier_failure_does_not_change_exit_code(src, settings):
    make_file(src, "data.csv")
    assert run_once(Config(data=settings), FakeNotifier(fail=True)) == 0


def test_dry_run_touches_nothing(src, dst, settings, notifier):
    make_file(src, "data.csv")
    settings["action"] = "Move"
    assert run_once(Config(data=settings), notifier, dry_run=True) == 0
    assert (src / "data.csv").exists()
    assert list(dst.iterdir()) == []
    assert notifier.sent == []


def test_app_run_from_config_file(src, dst, settings, tmp_path, monkeypatch):
    make_file(src, "data.csv", content="payload")
    path = tmp_path / "job.json"
    path.write_text(json.dumps(settings), encoding="utf-8")
    sent = []
    monkeypatch.setattr("latest_drop.notify.MailNotifier.send", lambda self, r, to: sent.append(r))
    assert App(config_path=path).run() == 0
    assert (dst / "data.csv").read_text(encoding="utf-8") == "payload"
    assert sent[0].subject == "File copied"
    assert (tmp_path / "logs" / "run.log").exists()


def test_app_run_with_unreadable_config(tmp_path):
    path = tmp_path / "job.json"
    path.write_text("{", encoding="utf-8")
    assert App(config_path=path).run() == 2


def test_dry_run_reports_destination_conflict(src, dst, settings, notifier):
    make_file(src, "data.csv", content="new")
    make_file(dst, "data.csv", content="old")
    assert run_once(Config(data=settings), notifier, dry_run=True) == 1
    assert (dst / "data.csv").read_text(encoding="utf-8") == "old"


@pytest.mark.parametrize("bad", [{"max_log_size_mb": "big"}, {"smtp_port": "twenty-five"}])
def test_app_with_unusable_settings_exits_two(src, settings, tmp_path, bad):
    make_file(src, "data.csv")
    path = tmp_path / "job.json"
    path.write_text(json.dumps({**settings, **bad}), encoding="utf-8")
    assert App(config_path=path).run() == 2
