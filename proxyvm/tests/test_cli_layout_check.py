from __future__ import annotations

import json

import pytest

from proxyvm.cli.layout_check import main
from proxyvm.version import __version__

from .test_layout import LINEAGE_YAML

GAP_MISMATCH_YAML = """
layouts:
  - name: A
    fields:
      - {name: value, type: uint256}
      - {name: __gap, type: gap, size: 10}
  - name: B
    fields:
      - {name: value, type: uint256}
      - {name: extra, type: uint256}
      - {name: __gap, type: gap, size: 10}
"""


@pytest.fixture
def lineage(tmp_path):
    path = tmp_path / "layouts.yaml"
    path.write_text(LINEAGE_YAML)
    return str(path)


def test_clean_lineage_exits_zero(lineage, capsys):
    assert main([lineage]) == 0
    out = capsys.readouterr().out
    assert "LINEAGE CounterV1 -> CounterV2 SCHEME=erc1967" in out
    assert out.rstrip().endswith("OK")


def test_sequential_scheme_reports_violations(lineage, capsys):
    assert main([lineage, "--scheme", "sequential"]) == 1
    out = capsys.readouterr().out
    assert "VIOLATION STORAGE_COLLISION" in out
    assert "FAILED (2 violation(s))" in out


def test_json_report(lineage, capsys):
    assert main([lineage, "--scheme", "sequential", "--json"]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["ok"] is False
    assert report["scheme"] == "sequential"
    assert report["version"] == __version__
    assert [e["code"] for e in report["errors"]] == ["STORAGE_COLLISION"] * 2


def test_gap_mismatch_strict_and_lenient(tmp_path, capsys):
    path = tmp_path / "gaps.yaml"
    path.write_text(GAP_MISMATCH_YAML)
    assert main([str(path)]) == 1
    assert "VIOLATION LAYOUT_ERROR" in capsys.readouterr().out
    assert main([str(path), "--lenient"]) == 0
    out = capsys.readouterr().out
    assert "WARNING" in out and out.rstrip().endswith("OK")


def test_unreadable_input_exits_two(tmp_path, capsys):
    assert main([str(tmp_path / "missing.yaml")]) == 2
    assert "layout file not found" in capsys.readouterr().err


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_non_integer_gap_size_exits_two(tmp_path, capsys):
    path = tmp_path / "bad.yaml"
    path.write_text(LINEAGE_YAML.replace("size: 48", "size: abc"))
    assert main([str(path)]) == 2
    assert "size must be an integer" in capsys.readouterr().err


def test_directory_argument_exits_two(tmp_path, capsys):
    assert main([str(tmp_path)]) == 2
    assert "cannot read" in capsys.readouterr().err
