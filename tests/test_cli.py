"""Tests for the administrative CLI."""

import json
from unittest.mock import patch

import pytest

from conftest import FakeProvider
from reviewcheck import cli
from reviewcheck.core.models import AnalysisStatus
from reviewcheck.services.router import ProviderRouter
from reviewcheck.services.store import InMemoryProductStore


class TestCli:
    """Commands run against in-process providers and an in-memory store."""

    def setup_method(self):
        self.a = FakeProvider("a", cost_per_review=0.001)
        self.b = FakeProvider("b", available=False)
        self.router = ProviderRouter([self.a, self.b])
        self.store = InMemoryProductStore()
        self.patches = [
            patch.object(cli, "build_router", return_value=self.router),
            patch.object(cli, "build_store", return_value=self.store),
        ]
        for p in self.patches:
            p.start()

    def teardown_method(self):
        for p in self.patches:
            p.stop()

    def test_no_command_prints_help(self, capsys):
        cli.main([])
        assert "usage" in capsys.readouterr().out

    def test_status(self, capsys):
        cli.main(["status"])
        out = capsys.readouterr().out
        assert "Optimal provider: a" in out
        assert "unavailable" in out

    def test_switch(self, capsys):
        self.b.available = True
        cli.main(["switch", "b"])
        assert "Switched primary provider to b" in capsys.readouterr().out
        assert self.router.override == "b"

        cli.main(["switch", "--clear"])
        assert self.router.override is None

    def test_switch_to_unavailable_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["switch", "b"])
        assert exc_info.value.code == 1

    def test_costs(self, capsys):
        cli.main(["costs", "--reviews", "500"])
        out = capsys.readouterr().out
        assert "Estimated cost for 500 reviews" in out
        assert "$0.500000" in out
        assert any(line.split() == ["b", "unavailable"] for line in out.splitlines())

    def test_analyze_and_show(self, tmp_path, capsys):
        request = {
            "asin": "B0CLI00001",
            "reported_total": 3,
            "reviews": [{"id": i, "text": f"review {i}", "rating": 5} for i in range(3)],
        }
        path = tmp_path / "input.json"
        path.write_text(json.dumps(request))
        out_path = tmp_path / "out.json"

        cli.main(["analyze", str(path), "--out", str(out_path)])
        out = capsys.readouterr().out
        assert "Grade: A" in out
        assert json.loads(out_path.read_text())["summary"]["grade"] == "A"
        assert self.store.get("B0CLI00001").status == AnalysisStatus.COMPLETED

        cli.main(["show", "B0CLI00001", "--pretty"])
        shown = json.loads(capsys.readouterr().out)
        assert shown["asin"] == "B0CLI00001"

    def test_analyze_requires_asin(self, tmp_path):
        path = tmp_path / "input.json"
        path.write_text("[]")
        with pytest.raises(SystemExit):
            cli.main(["analyze", str(path)])

    def test_failed_analysis_exits_nonzero(self, tmp_path, capsys):
        self.a.fail_always = True
        path = tmp_path / "input.json"
        path.write_text(json.dumps({"asin": "B2", "reviews": [{"id": 1, "text": "x", "rating": 4}]}))
        with pytest.raises(SystemExit):
            cli.main(["analyze", str(path)])
        assert "Error:" in capsys.readouterr().out

    def test_show_missing(self):
        with pytest.raises(SystemExit):
            cli.main(["show", "NOTHERE"])

    def test_bad_input_file(self):
        with pytest.raises(SystemExit):
            cli.main(["analyze", "/nonexistent/input.json"])
