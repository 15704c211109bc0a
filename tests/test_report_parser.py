from __future__ import annotations

import logging

from sclmdelta.models import Snapshot
from sclmdelta.report_parser import (
    SPOOL_END_MARKER,
    extract,
    is_report_shape,
    select_report,
    split_spool_files,
)

from conftest import report_line

JES_LOG = "\n".join(
    [
        " J E S 2  J O B  L O G  --  S Y S T E M  S 0 W 1",
        "10.14.03 JOB01234 IEF403I SCLMJOB - STARTED - TIME=10.14.03",
        "10.14.05 JOB01234 IEF404I SCLMJOB - ENDED - TIME=10.14.05",
    ]
)


def _spool(*blocks: str, newline: str = "\n") -> str:
    return "".join(f"{block}{newline}{SPOOL_END_MARKER}{newline}" for block in blocks)


def test_report_shape_accepts_report_lines_and_blank_lines() -> None:
    text = "\n".join(
        [
            report_line("A"),
            "   ",
            report_line("B", type="COPY", version=12),
            "",
        ]
    )
    assert is_report_shape(text)


def test_report_shape_accepts_empty_text() -> None:
    assert is_report_shape("")
    assert is_report_shape(" \n\t\n")


def test_report_shape_rejects_any_foreign_line() -> None:
    text = "\n".join([report_line("A"), "IEF142I SCLMJOB STEP1 - COND CODE 0000"])
    assert not is_report_shape(text)


def test_report_shape_rejects_non_numeric_version() -> None:
    assert not is_report_shape("CG1.COBOL(A) <2024/01/01 00:00:00> USER1 V1")


def test_report_line_allows_leading_and_trailing_tokens() -> None:
    line = "1 " + report_line("A", version=3) + "  trailing"
    files = extract(line, "PRJ", "ALT", "GRP")
    assert len(files) == 1
    assert files[0].name == "A"
    assert files[0].version == 3


def test_extract_builds_file_states() -> None:
    text = report_line(
        "PAYROLL",
        type="COBOL",
        version=7,
        change_date="2024/03/05 14:15:16",
        user="IBMUSER",
        change_group="PROJ1",
    )
    (file,) = extract(text, "PRJ", "ALT", "GRP")
    assert file.identity_path == "PRJ.ALT.GRP.COBOL(PAYROLL)"
    assert file.version == 7
    assert file.formatted_date == "2024/03/05 14:15:16"
    assert file.change_user_id == "IBMUSER"
    assert file.change_group == "PROJ1"
    assert file.edit_type is None


def test_extract_handles_whitespace_inside_member_parentheses() -> None:
    (file,) = extract(
        "CG1 .COBOL (PAYROLL  ) <2024/01/01 00:00:00>  USER1  2", "P", "A", "G"
    )
    assert file.change_group == "CG1"
    assert file.type == "COBOL"
    assert file.name == "PAYROLL"


def test_extract_applies_type_filter() -> None:
    text = "\n".join(
        [report_line("A", type="COBOL"), report_line("B", type="COPY")]
    )
    assert [f.name for f in extract(text, "P", "A", "G", ["COPY"])] == ["B"]
    assert len(extract(text, "P", "A", "G", [])) == 2
    assert len(extract(text, "P", "A", "G", None)) == 2


def test_extract_returns_display_order() -> None:
    text = "\n".join(
        [
            report_line("OLD", change_date="2023/01/01 00:00:00"),
            report_line("NEW", change_date="2024/06/01 00:00:00"),
        ]
    )
    assert [f.name for f in extract(text, "P", "A", "G")] == ["NEW", "OLD"]


def test_extract_drops_records_with_invalid_dates(caplog) -> None:
    text = "\n".join(
        [report_line("BAD", change_date="2024/13/40 10:00:00"), report_line("OK")]
    )
    with caplog.at_level(logging.WARNING, logger="sclmdelta.report_parser"):
        files = extract(text, "P", "A", "G")
    assert [f.name for f in files] == ["OK"]
    assert "BAD" in caplog.text


def test_split_spool_files_handles_all_line_terminators() -> None:
    for newline in ("\n", "\r\n", "\r"):
        parts = split_spool_files(_spool("one", "two", newline=newline))
        assert [p.strip() for p in parts] == ["one", "two"]


def test_select_report_uses_first_report_shaped_spool_file() -> None:
    output = _spool(
        JES_LOG,
        report_line("A"),
        report_line("B"),
    )
    selection = select_report(output, "P", "A", "G")
    assert selection.found
    assert selection.index == 1
    assert [f.name for f in selection.files] == ["A"]


def test_select_report_skips_block_with_one_bad_line() -> None:
    bad_block = "\n".join([report_line("X"), "not a report line"])
    output = _spool(JES_LOG, bad_block, report_line("Y"))
    selection = select_report(output, "P", "A", "G")
    assert selection.index == 2
    assert [f.name for f in selection.files] == ["Y"]


def test_select_report_without_report_yields_empty_incomplete_snapshot() -> None:
    selection = select_report(_spool(JES_LOG, JES_LOG), "P", "A", "G")
    assert not selection.found
    assert selection.index is None
    assert selection.files == ()
    assert selection.to_snapshot() == Snapshot(files=(), complete=False)


def test_select_report_dedupes_identity() -> None:
    report = "\n".join(
        [
            report_line("A", version=1, change_date="2024/01/01 00:00:00"),
            report_line("A", version=2, change_date="2024/02/01 00:00:00"),
        ]
    )
    selection = select_report(_spool(JES_LOG, report), "P", "A", "G")
    assert len(selection.files) == 1
    assert selection.files[0].version == 2
