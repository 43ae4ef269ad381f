"""Tests for the command-line interface."""

import json

import pytest

from conftest import robot
from urdfix.cli import main

DUPLICATES = robot('<link name="base_link"/><link name="base_link"/>')
DANGLING = robot(
    '<link name="base"/>'
    '<joint name="arm_joint" type="fixed"><parent link="base"/><child link="missing_arm"/></joint>'
)
TWO_ROOTS = robot('<link name="a"/><link name="b"/><link name="c"/>'
                  '<joint name="j" type="fixed"><parent link="a"/><child link="b"/></joint>')


@pytest.fixture
def write(tmp_path):
    def _write(text, name="robot.urdf"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write


def test_lint_clean(arm_path, capsys):
    assert main(["lint", str(arm_path)]) == 0
    assert "no issues found" in capsys.readouterr().out


def test_lint_reports_errors(write, capsys):
    assert main(["lint", write(DUPLICATES)]) == 1
    out = capsys.readouterr().out
    assert "error[DuplicateElementName] /robot/link[base_link]" in out


def test_lint_info_only_exits_zero(write, capsys):
    path = write(robot('<link name="a"><visual><geometry><sphere radius="1"/></geometry></visual></link>'))
    assert main(["lint", path]) == 0
    assert "info[MissingInertial]" in capsys.readouterr().out


def test_lint_json(write, capsys):
    assert main(["--json", "lint", write(DANGLING)]) == 1
    (report,) = json.loads(capsys.readouterr().out)
    assert report["code"] == "DanglingReference"
    assert report["severity"] == "error"
    assert report["path"] == "/robot/joint[arm_joint]/child"


def test_validate_reports_errors_only(write, capsys):
    path = write(TWO_ROOTS)
    assert main(["validate", path]) == 0
    assert "no issues found" in capsys.readouterr().out
    assert main(["--strict", "validate", path]) == 1
    out = capsys.readouterr().out
    assert "error[MultipleRoots]" in out
    assert "error[OrphanLink]" in out


def test_fix_to_stdout(write, capsys):
    assert main(["fix", write(DUPLICATES)]) == 0
    captured = capsys.readouterr()
    assert captured.out.count("<link ") == 1
    assert "deduplicate: /robot/link[base_link]: Removed duplicate link 'base_link'" in captured.err


def test_fix_reports_unresolved(write, capsys):
    assert main(["fix", write(DANGLING)]) == 1
    captured = capsys.readouterr()
    assert '<child link="missing_arm"/>' in captured.out
    assert "error[UnresolvableFix]" in captured.err


def test_fix_json_log(write, capsys):
    assert main(["--json", "fix", write(DUPLICATES)]) == 0
    report = json.loads(capsys.readouterr().err)
    assert report["unresolved"] == []
    assert report["log"][0]["pass"] == "deduplicate"


def test_fix_to_file_and_in_place(write, tmp_path, capsys):
    source = write(DUPLICATES)
    output = tmp_path / "fixed.urdf"
    assert main(["fix", source, "-o", str(output)]) == 0
    assert output.read_text(encoding="utf-8").count("<link ") == 1
    assert capsys.readouterr().out == ""

    assert main(["fix", source, "--in-place"]) == 0
    assert main(["lint", source]) == 0


def test_fix_duplicate_policy(write, capsys):
    path = write(robot('<link name="a"/><link name="a"><inertial><mass value="3"/></inertial></link>'))
    assert main(["--duplicate-policy", "most_complete", "fix", path]) == 0
    assert '<mass value="3"/>' in capsys.readouterr().out


def test_fix_naming_flag(write, capsys):
    path = write(robot('<link name="Base Link"/>'))
    assert main(["fix", path]) == 0
    assert '<link name="Base Link"/>' in capsys.readouterr().out
    assert main(["--fix-naming", "fix", path]) == 0
    captured = capsys.readouterr()
    assert '<link name="base_link"/>' in captured.out
    assert "Renamed link 'Base Link' to 'base_link'" in captured.err


def test_format_check(arm_path, write, capsys):
    assert main(["format", "--check", str(arm_path)]) == 0
    messy = write('<robot name="r"><link name="a" /></robot>')
    assert main(["format", "--check", messy]) == 1
    assert f"would reformat {messy}" in capsys.readouterr().out

    assert main(["format", "--in-place", messy]) == 0
    assert main(["format", "--check", messy]) == 0


def test_format_to_stdout(write, capsys):
    assert main(["format", write('<robot name="r"><link name="a" /></robot>')]) == 0
    assert capsys.readouterr().out == '<?xml version="1.0"?>\n<robot name="r">\n  <link name="a"/>\n</robot>\n'


def test_analyze(arm_path, capsys):
    assert main(["analyze", str(arm_path)]) == 0
    out = capsys.readouterr().out
    assert "Robot: simple_arm" in out
    assert "Tree depth: 3" in out
    assert "base_link -> upper_arm -> forearm" in out

    assert main(["--json", "analyze", str(arm_path)]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["total_links"] == 3


def test_diff(write, capsys):
    before = write(robot('<link name="arm1"/>'), "before.urdf")
    after = write(robot('<link name="arm2"/>'), "after.urdf")
    assert main(["diff", before, before]) == 0
    assert main(["diff", before, after]) == 1
    assert "~ /robot/link[arm1]/@name: arm1 -> arm2" in capsys.readouterr().out

    assert main(["--json", "diff", before, after]) == 1
    (entry,) = json.loads(capsys.readouterr().out)
    assert entry == {"kind": "modified", "path": "/robot/link[arm1]/@name", "before": "arm1", "after": "arm2"}


def test_missing_file(tmp_path, capsys):
    assert main(["lint", str(tmp_path / "absent.urdf")]) == 2
    assert capsys.readouterr().err.startswith("error:")


def test_malformed_xml(write, capsys):
    path = write('<robot name="r"><link name="a"></robot>')
    assert main(["lint", path]) == 2
    assert "XML parse error" in capsys.readouterr().err


def test_wrong_root(write, capsys):
    assert main(["format", write('<model name="m"/>')]) == 2
    assert "Root element must be 'robot'" in capsys.readouterr().err


def test_invalid_jobs(arm_path, capsys):
    assert main(["--jobs", "0", "lint", str(arm_path)]) == 2
    assert "lint_workers" in capsys.readouterr().err


def test_unknown_policy_is_rejected_by_argparse(arm_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["--duplicate-policy", "last", "fix", str(arm_path)])
    assert excinfo.value.code == 2
