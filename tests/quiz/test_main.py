from __future__ import annotations

import json

import httpx
import pytest

from classroom_quiz.quiz import _main as qmain
from classroom_quiz.quiz.catalog import HttpQuizCatalog
from classroom_quiz.quiz.results import (
    BufferedResultSink,
    JsonlResultSink,
    ResultSinkError,
)
from classroom_quiz.quiz.runner import QuizRunner
from fixtures import ManualTimerFactory, make_record


def _write_catalog(home, *records):
    path = home / "catalog" / "quizzes.jsonl"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "".join(json.dumps(record) + "\n" for record in records),
        encoding="utf-8",
    )
    return path


def _args(home, command, *extra):
    return [
        command,
        *extra,
        "--workspace",
        str(home),
        "--source",
        "file",
    ]


class ScriptedApp:
    """Stands in for the Textual app and plays a fixed set of answers."""

    script: list[str] = ["4"]
    abandon = False
    instances: list["ScriptedApp"] = []

    def __init__(self, quiz, **kwargs):
        self.quiz = quiz
        self.kwargs = kwargs
        self.abandoned = False
        self.runner = QuizRunner(
            timer_factory=ManualTimerFactory(),
            sink=kwargs.get("sink"),
            taker_id=kwargs.get("taker_id"),
        )
        ScriptedApp.instances.append(self)

    def run(self):
        self.runner.select_quiz(self.quiz)
        if self.abandon:
            self.runner.abandon()
            self.abandoned = True
            return None
        for position, value in enumerate(self.script):
            self.runner.answer(value)
            if position < len(self.script) - 1:
                self.runner.next()
        self.runner.submit()
        return self.runner.session


@pytest.fixture
def scripted_app(monkeypatch):
    ScriptedApp.instances = []
    ScriptedApp.script = ["4"]
    ScriptedApp.abandon = False
    monkeypatch.setattr(qmain, "QuizApp", ScriptedApp)
    return ScriptedApp


def test_catalog_lists_quizzes_from_file(tmp_path, capsys):
    home = tmp_path / "home"
    _write_catalog(home, make_record(), make_record(_id="q2", title="Spelling"))

    code = qmain.main(_args(home, "catalog", "--class-id", "class-1"))

    out = capsys.readouterr().out
    assert code == 0
    assert "Available Quizzes" in out
    assert "Arithmetic" in out
    assert "Spelling" in out


def test_catalog_search_without_match(tmp_path, capsys):
    home = tmp_path / "home"
    _write_catalog(home, make_record())

    code = qmain.main(
        _args(home, "catalog", "--class-id", "class-1", "--search", "history")
    )

    assert code == 1
    assert "No quizzes match 'history'" in capsys.readouterr().out


def test_catalog_empty_class_shows_panel(tmp_path, capsys):
    home = tmp_path / "home"
    _write_catalog(home, make_record(teacherClassId="class-9"))

    code = qmain.main(_args(home, "catalog", "--class-id", "class-1"))

    assert code == 0
    assert "No Quizzes Available" in capsys.readouterr().out


def test_catalog_missing_file_is_data_unavailable(tmp_path, capsys):
    home = tmp_path / "home"

    code = qmain.main(_args(home, "catalog", "--class-id", "class-1"))

    assert code == 1
    assert "Failed to load quizzes" in capsys.readouterr().err


def test_catalog_http_failure_is_data_unavailable(tmp_path, capsys, monkeypatch):
    home = tmp_path / "home"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    monkeypatch.setattr(
        qmain,
        "build_catalog",
        lambda config: HttpQuizCatalog(
            config.catalog.base_url, transport=httpx.MockTransport(handler)
        ),
    )

    code = qmain.main(
        ["catalog", "--class-id", "class-1", "--workspace", str(home)]
    )

    assert code == 1
    assert "500" in capsys.readouterr().err


def test_take_records_attempt_and_prints_summary(tmp_path, capsys, scripted_app):
    home = tmp_path / "home"
    _write_catalog(home, make_record())

    code = qmain.main(
        _args(home, "take", "q1", "--class-id", "class-1", "--taker", "s-7")
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "Quiz Completed!" in out
    assert "1/2" in out
    app = scripted_app.instances[-1]
    assert app.kwargs["taker_id"] == "s-7"
    assert app.kwargs["pass_percentage"] == 70

    attempts = JsonlResultSink(home / "results" / "attempts.jsonl").load()
    assert [(a.quiz_id, a.taker_id, a.correct_count) for a in attempts] == [
        ("q1", "s-7", 1)
    ]


class _TargetSink:
    def __init__(self, events, *, fail=False):
        self.events = events
        self.fail = fail

    def record(self, attempt):
        if self.fail:
            raise ResultSinkError("service down")
        self.events.append(("recorded", attempt.quiz_id))


def test_take_records_only_after_app_exits(
    tmp_path, capsys, scripted_app, monkeypatch
):
    home = tmp_path / "home"
    _write_catalog(home, make_record())
    events = []
    monkeypatch.setattr(qmain, "build_sink", lambda config: _TargetSink(events))
    real_run = scripted_app.run

    def run(self):
        session = real_run(self)
        events.append(("app exited", len(self.kwargs["sink"].pending)))
        return session

    monkeypatch.setattr(scripted_app, "run", run)

    code = qmain.main(_args(home, "take", "q1", "--class-id", "class-1"))

    assert code == 0
    assert events == [("app exited", 1), ("recorded", "q1")]
    assert isinstance(scripted_app.instances[-1].kwargs["sink"], BufferedResultSink)


def test_take_reports_failed_recording(
    tmp_path, capsys, scripted_app, monkeypatch
):
    home = tmp_path / "home"
    _write_catalog(home, make_record())
    monkeypatch.setattr(
        qmain, "build_sink", lambda config: _TargetSink([], fail=True)
    )

    code = qmain.main(_args(home, "take", "q1", "--class-id", "class-1"))

    out = capsys.readouterr().out
    assert code == 0
    assert "Quiz Completed!" in out
    assert "Attempt was not recorded" in out
    assert "service down" in out
    session = scripted_app.instances[-1].runner.session
    assert session.persist_error == "service down"


def test_take_unknown_quiz(tmp_path, capsys, scripted_app):
    home = tmp_path / "home"
    _write_catalog(home, make_record())

    code = qmain.main(_args(home, "take", "nope", "--class-id", "class-1"))

    assert code == 1
    assert "not available" in capsys.readouterr().err
    assert scripted_app.instances == []


def test_take_refuses_invalid_quiz(tmp_path, capsys, scripted_app):
    home = tmp_path / "home"
    _write_catalog(home, make_record(questions=[]))

    code = qmain.main(_args(home, "take", "q1", "--class-id", "class-1"))

    assert code == 1
    assert "cannot be started" in capsys.readouterr().err
    assert scripted_app.instances == []


def test_take_abandoned_records_nothing(tmp_path, capsys, scripted_app):
    home = tmp_path / "home"
    _write_catalog(home, make_record())
    scripted_app.abandon = True

    code = qmain.main(_args(home, "take", "q1", "--class-id", "class-1"))

    assert code == 1
    assert "abandoned" in capsys.readouterr().out
    assert not (home / "results" / "attempts.jsonl").exists()


def test_take_with_sink_none_skips_recording(tmp_path, capsys, scripted_app):
    home = tmp_path / "home"
    _write_catalog(home, make_record())

    code = qmain.main(
        _args(home, "take", "q1", "--class-id", "class-1", "--sink", "none")
    )

    assert code == 0
    assert scripted_app.instances[-1].kwargs["sink"] is None
    assert not (home / "results" / "attempts.jsonl").exists()


def test_results_lists_and_filters_attempts(tmp_path, capsys, scripted_app):
    home = tmp_path / "home"
    _write_catalog(home, make_record())
    qmain.main(_args(home, "take", "q1", "--class-id", "class-1"))
    capsys.readouterr()

    code = qmain.main(["results", "--workspace", str(home)])
    out = capsys.readouterr().out
    assert code == 0
    assert "Recorded Attempts" in out
    assert "Arithmetic" in out

    code = qmain.main(["results", "--workspace", str(home), "--quiz-id", "zz"])
    assert code == 1
    assert "No recorded attempts." in capsys.readouterr().out


def test_config_init_writes_template_once(tmp_path, capsys):
    home = tmp_path / "home"
    target = home / "config" / "quiz.toml"

    assert qmain.main(["config", "init", "--workspace", str(home)]) == 0
    assert target.is_file()
    assert str(target.resolve()) in capsys.readouterr().out

    assert qmain.main(["config", "init", "--workspace", str(home)]) == 2
    assert "already exists" in capsys.readouterr().err

    assert (
        qmain.main(["config", "init", "--workspace", str(home), "--force"])
        == 0
    )


def test_invalid_config_is_a_usage_error(tmp_path, capsys):
    home = tmp_path / "home"
    config_path = home / "config" / "quiz.toml"
    config_path.parent.mkdir(parents=True)
    config_path.write_text('[results]\nsink = "database"\n', encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        qmain.main(["results", "--workspace", str(home)])

    assert excinfo.value.code == 2
    assert "results.sink" in capsys.readouterr().err


def test_commands_write_json_logs(tmp_path, capsys):
    home = tmp_path / "home"
    _write_catalog(home, make_record())

    qmain.main(
        _args(home, "catalog", "--class-id", "class-1", "--log-level", "debug")
    )

    log_path = home / "logs" / "quiz.log"
    lines = [json.loads(line) for line in log_path.read_text().splitlines()]
    assert any(line["message"] == "quiz CLI invoked" for line in lines)
