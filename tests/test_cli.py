"""
Smoke tests for the command line interface
"""

import json

import pytest

from qeeg_engine.cli.main import create_parser, main


@pytest.fixture
def recording_path(tmp_path):
    path = tmp_path / "demo.edf"
    assert main(["--generate", str(path), "--duration", "4", "--channels", "6", "--seed", "1"]) == 0
    return path


def test_generate(recording_path):
    assert recording_path.stat().st_size == 256 + 6 * 16 + 6 * 4 * 256 * 2


def test_analyze(recording_path, tmp_path, capsys):
    out = tmp_path / "report.json"
    code = main(["--analyze", str(recording_path), "--patient", "p1", "--session", "s1",
                 "--n-jobs", "1", "--out", str(out)])
    assert code == 0
    report = json.loads(out.read_text())
    assert report["session_id"] == "s1"
    assert len(report["connectivity"]) == 15
    assert "Quality" in capsys.readouterr().out


def test_submit(recording_path, tmp_path):
    store_dir = tmp_path / "reports"
    code = main(["--submit", str(recording_path), "--session", "s1", "--n-jobs", "1",
                 "--poll-interval", "0.01", "--poll-attempts", "3000",
                 "--store-dir", str(store_dir)])
    assert code == 0
    assert len(list(store_dir.glob("*.json"))) == 1


def test_analyze_corrupt_file(tmp_path):
    path = tmp_path / "bad.edf"
    path.write_bytes(b"garbage" * 10)
    assert main(["--analyze", str(path)]) == 1


def test_analyze_missing_file(tmp_path):
    assert main(["--analyze", str(tmp_path / "missing.edf")]) == 1


def test_modes_are_exclusive():
    with pytest.raises(SystemExit):
        create_parser().parse_args(["--analyze", "a", "--submit", "b"])
