import json
import logging

import pytest

import generate_dashboards
from build_cluster import build_cluster
from panel_builders import row, standard_templating, tgt, ts, wrap_dashboard
from validate_dashboard import DashboardValidationError


def _broken(did):
    return lambda: wrap_dashboard("broken", "Broken", [], [row("R"), ts("P", [tgt("up", "{{job}}")])],
                                  standard_templating())


def test_generate_writes_json(tmp_path):
    results = generate_dashboards.generate(out_dir=str(tmp_path))
    assert results == [("cluster", str(tmp_path / "cluster.json"), 11)]
    written = (tmp_path / "cluster.json").read_text()
    assert written == build_cluster().to_json()
    assert json.loads(written)["title"] == "Cluster Information"


def test_generate_skips_unknown_ids(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        results = generate_dashboards.generate(["nope", "cluster"], out_dir=str(tmp_path))
    assert [r[0] for r in results] == ["cluster"]
    assert "Unknown dashboard ID: nope" in caplog.text


def test_generate_raises_and_writes_nothing_on_validation_failure(tmp_path, monkeypatch):
    monkeypatch.setattr(generate_dashboards, "load_builder", _broken)
    with pytest.raises(DashboardValidationError):
        generate_dashboards.generate(out_dir=str(tmp_path))
    assert not (tmp_path / "cluster.json").exists()


def test_generate_without_check_writes_anyway(tmp_path, monkeypatch):
    monkeypatch.setattr(generate_dashboards, "load_builder", _broken)
    generate_dashboards.generate(out_dir=str(tmp_path), check=False)
    assert json.loads((tmp_path / "cluster.json").read_text())["uid"] == "broken"


def test_main_stdout(capsys):
    assert generate_dashboards.main(["--stdout"]) == 0
    out = capsys.readouterr().out
    assert out == build_cluster().to_json()


def test_main_writes_to_out_dir(tmp_path):
    assert generate_dashboards.main(["--out-dir", str(tmp_path), "--dashboard", "cluster"]) == 0
    assert (tmp_path / "cluster.json").exists()


def test_main_unknown_only_returns_2(tmp_path):
    assert generate_dashboards.main(["--out-dir", str(tmp_path), "--dashboard", "nope"]) == 2


def test_main_validation_failure_returns_1(tmp_path, monkeypatch):
    monkeypatch.setattr(generate_dashboards, "load_builder", _broken)
    assert generate_dashboards.main(["--out-dir", str(tmp_path)]) == 1


def test_unknown_ids_leave_no_output_dir(tmp_path):
    out_dir = tmp_path / "out"
    assert generate_dashboards.generate(["nope"], out_dir=str(out_dir)) == []
    assert not out_dir.exists()
    assert generate_dashboards.main(["--out-dir", str(out_dir), "--dashboard", "nope"]) == 2
    assert not out_dir.exists()


def test_output_dir_created_on_first_write(tmp_path):
    out_dir = tmp_path / "nested" / "out"
    generate_dashboards.generate(out_dir=str(out_dir))
    assert (out_dir / "cluster.json").exists()


def test_validation_failure_leaves_no_output_dir(tmp_path, monkeypatch):
    out_dir = tmp_path / "out"
    monkeypatch.setattr(generate_dashboards, "load_builder", _broken)
    assert generate_dashboards.main(["--out-dir", str(out_dir)]) == 1
    assert not out_dir.exists()
