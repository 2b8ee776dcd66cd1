"""Command-line dispatch of scripts/run_job.py."""
import importlib.util
import sys
from datetime import date
from pathlib import Path

import pytest

RUN_JOB = Path(__file__).resolve().parent.parent / "scripts" / "run_job.py"


@pytest.fixture
def run_job():
    found = importlib.util.spec_from_file_location("run_job", RUN_JOB)
    module = importlib.util.module_from_spec(found)
    found.loader.exec_module(module)
    return module


class TestRunJob:
    def test_dispatches_named_job(self, run_job, monkeypatch, capsys):
        monkeypatch.setitem(run_job.JOBS, "expire-holds", lambda: 3)
        monkeypatch.setattr(sys, "argv", ["run_job.py", "expire-holds"])

        assert run_job.main() == 0
        assert "expire-holds: 3" in capsys.readouterr().out

    def test_load_analysis_date(self, run_job, monkeypatch):
        days = []
        monkeypatch.setattr(run_job, "run_load_analysis_job", days.append)
        monkeypatch.setattr(sys, "argv", ["run_job.py", "load-analysis", "--date", "2030-03-04"])

        assert run_job.main() == 0
        assert days == [date(2030, 3, 4)]

    def test_load_analysis_defaults_to_tomorrow(self, run_job, monkeypatch):
        days = []
        monkeypatch.setattr(run_job, "run_load_analysis_job", days.append)
        monkeypatch.setattr(sys, "argv", ["run_job.py", "load-analysis"])

        run_job.main()
        assert days == [None]

    @pytest.mark.parametrize("argv", [[], ["nope"], ["load-analysis", "--date", "March"]])
    def test_bad_arguments_exit_2(self, run_job, monkeypatch, argv):
        monkeypatch.setattr(sys, "argv", ["run_job.py", *argv])
        with pytest.raises(SystemExit) as exc:
            run_job.main()
        assert exc.value.code == 2
