from __future__ import annotations

from classroom_quiz.workspace import cli


def test_classroom_init_creates_workspace(tmp_path, capsys, monkeypatch):
    target = tmp_path / "workspace"
    monkeypatch.setenv("CLASSROOM_QUIZ_HOME", str(target))

    code = cli.main([])

    captured = capsys.readouterr()
    assert code == 0
    assert "Workspace ready" in captured.out
    assert "(created)" in captured.out
    for name in ("config", "logs", "results", "catalog"):
        assert (target / name).is_dir()
        assert name in captured.out


def test_classroom_init_supports_custom_path(tmp_path, capsys):
    target = tmp_path / "custom"

    code = cli.main(["--workspace", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert target.is_dir()
    assert str(target) in captured.out


def test_classroom_init_reports_existing(tmp_path, capsys):
    target = tmp_path / "again"
    cli.main(["--workspace", str(target), "--quiet"])

    code = cli.main(["--workspace", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert "(created)" not in captured.out
    assert "(exists)" in captured.out


def test_classroom_init_quiet_mode(tmp_path, capsys, monkeypatch):
    target = tmp_path / "quiet"
    monkeypatch.setenv("CLASSROOM_QUIZ_HOME", str(target))

    code = cli.main(["--quiet"])

    captured = capsys.readouterr()
    assert code == 0
    assert captured.out == ""


def test_classroom_init_rejects_file_path(tmp_path, capsys):
    target = tmp_path / "file"
    target.write_text("x", encoding="utf-8")

    code = cli.main(["--workspace", str(target)])

    assert code == 2
    assert "not a directory" in capsys.readouterr().err
