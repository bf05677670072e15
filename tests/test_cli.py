from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import pytest

from examsim.cli.main import main
from examsim.store import ExamLibrary, FileBlobStore

ROOT = Path(__file__).resolve().parents[1]


def _run(cli_config, *args):
    return main(["--config", str(cli_config), *args])


def _stored_ids(tmp_path):
    return [e.id for e in ExamLibrary(FileBlobStore(tmp_path / "data")).list_exams()]


def test_validate_ok(cli_config, write_json, two_question_exam, capsys):
    path = write_json("exam.json", two_question_exam)
    assert _run(cli_config, "validate", str(path)) == 0
    assert "[validate_exam] OK" in capsys.readouterr().out


def test_upload_list_score_export(cli_config, write_json, two_question_exam, tmp_path, capsys):
    exam_path = write_json("exam.json", two_question_exam)
    assert _run(cli_config, "upload", str(exam_path)) == 0
    out = capsys.readouterr().out
    assert "Exam uploaded and saved" in out

    [exam_id] = _stored_ids(tmp_path)
    assert exam_id in out

    assert _run(cli_config, "list") == 0
    assert f"{exam_id}  T  (2 questions) [private]" in capsys.readouterr().out

    answers = write_json("answers.json", {"1": "42", "2": "b"})
    out_dir = tmp_path / "reports"
    rc = _run(
        cli_config, "score", exam_id, "--answers", str(answers),
        "--duration-ms", "65000", "--export", "both", "-o", str(out_dir), "--by-domain",
    )
    assert rc == 0
    out = capsys.readouterr().out
    assert "T - Results" in out
    assert "Time taken: 01:05" in out
    assert "Your Score: 1 / 2" in out
    assert "Saved JSON report" in out and "Saved CSV report" in out

    [json_report] = list(out_dir.glob("T_results_*.json"))
    [csv_report] = list(out_dir.glob("T_results_*.csv"))
    payload = json.loads(json_report.read_text(encoding="utf-8"))
    assert payload["id"] == exam_id
    assert payload["resultSummary"]["score"] == "1/2"
    assert csv_report.read_text(encoding="utf-8").splitlines()[3] == "Score,1/2"


def test_score_exam_file_without_key(cli_config, write_json, two_question_exam, capsys):
    two_question_exam["includeAnswerKey"] = False
    exam_path = write_json("exam.json", two_question_exam)
    answers = write_json("answers.json", {"1": "42"})
    assert _run(cli_config, "score", str(exam_path), "-a", str(answers)) == 0
    assert "Score: Not Scored" in capsys.readouterr().out


def test_score_unknown_exam(cli_config, write_json, capsys):
    answers = write_json("answers.json", {})
    assert _run(cli_config, "score", "123", "-a", str(answers)) == 1
    assert "not found" in capsys.readouterr().out


@pytest.mark.parametrize(
    "mutate,code,message",
    [
        (lambda d: d.pop("questions"), 4, "Invalid exam file structure"),
        (lambda d: d["questions"][1].update(options=[]), 5, "Invalid question: Question \"Q2\" (at index 1)"),
    ],
)
def test_upload_rejects_invalid(cli_config, write_json, two_question_exam, tmp_path, capsys, mutate, code, message):
    mutate(two_question_exam)
    path = write_json("exam.json", two_question_exam)
    assert _run(cli_config, "upload", str(path)) == code
    assert message in capsys.readouterr().out
    assert _stored_ids(tmp_path) == []


def test_upload_bad_json(cli_config, tmp_path, capsys):
    path = tmp_path / "broken.json"
    path.write_text("{", encoding="utf-8")
    assert _run(cli_config, "upload", str(path)) == 3
    assert "Invalid JSON" in capsys.readouterr().out


def test_accounts_and_ownership(cli_config, write_json, two_question_exam, capsys):
    assert _run(cli_config, "list", "--mine") == 1
    assert _run(cli_config, "register", "alice") == 0
    assert _run(cli_config, "register", "alice") == 1
    assert _run(cli_config, "whoami") == 0
    capsys.readouterr()

    path = write_json("exam.json", two_question_exam)
    assert _run(cli_config, "upload", str(path), "--public") == 0
    assert _run(cli_config, "list", "--public") == 0
    assert "[public] owner=" in capsys.readouterr().out

    assert _run(cli_config, "logout") == 0
    assert _run(cli_config, "whoami") == 0
    assert "Not logged in" in capsys.readouterr().out
    assert _run(cli_config, "login", "alice") == 0
    assert _run(cli_config, "login", "bob") == 1


def test_show_multilingual(cli_config, write_json, multilingual_exam, capsys):
    path = write_json("exam.json", multilingual_exam)
    assert _run(cli_config, "show", str(path)) == 0
    out = capsys.readouterr().out
    assert "Question 1 of 3 [Europe]: Capital of France?" in out
    assert "    ¿Capital de Francia?" in out
    assert "  A. Paris / París" in out
    assert "  B. Lyon\n" in out


def test_delete(cli_config, write_json, two_question_exam, tmp_path):
    path = write_json("exam.json", two_question_exam)
    assert _run(cli_config, "upload", str(path)) == 0
    [exam_id] = _stored_ids(tmp_path)
    assert _run(cli_config, "delete", exam_id) == 0
    assert _run(cli_config, "delete", exam_id) == 1
    assert _stored_ids(tmp_path) == []


def test_missing_config(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "nope.json"), "list"]) == 1
    assert "not found" in capsys.readouterr().out


def test_log_file_written(cli_config, write_json, two_question_exam, tmp_path):
    path = write_json("exam.json", two_question_exam)
    assert _run(cli_config, "upload", str(path)) == 0
    log_text = (tmp_path / "logs" / "cli.log").read_text(encoding="utf-8")
    assert "Stored exam 'T' with 2 questions" in log_text


def _validate_subprocess(path):
    return subprocess.run(
        [sys.executable, "-m", "examsim.cli.validate_exam", str(path)],
        capture_output=True,
        text=True,
        cwd=str(ROOT),
    )


def test_validate_exam_cli_exit_codes(tmp_path, write_json, two_question_exam):
    ok = write_json("ok.json", two_question_exam)
    proc = _validate_subprocess(ok)
    assert proc.returncode == 0, proc.stdout + proc.stderr

    broken = tmp_path / "broken.json"
    broken.write_text('{"title": ', encoding="utf-8")
    proc = _validate_subprocess(broken)
    assert proc.returncode == 3, proc.stdout + proc.stderr

    bad = write_json("bad.json", {"title": "", "questions": [{"id": 1}]})
    proc = _validate_subprocess(bad)
    assert proc.returncode == 4, proc.stdout + proc.stderr
    combined = proc.stdout + proc.stderr
    assert "Schema validation failed with 3 errors" in combined
    assert "questions[0].type: is required" in combined

    two_question_exam["questions"][1]["options"] = []
    rule = write_json("rule.json", two_question_exam)
    proc = _validate_subprocess(rule)
    assert proc.returncode == 5, proc.stdout + proc.stderr
    assert "(at index 1)" in proc.stdout


def test_register_with_corrupt_users_file(cli_config, tmp_path, capsys):
    users = FileBlobStore(tmp_path / "data").path_for("@App:users")
    users.parent.mkdir(parents=True, exist_ok=True)
    users.write_bytes(b"{not json")
    assert _run(cli_config, "register", "newbie") == 1
    assert "Storage error" in capsys.readouterr().out
    assert users.read_bytes() == b"{not json"
