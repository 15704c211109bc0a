from __future__ import annotations

import logging
import re
from collections.abc import Collection
from dataclasses import dataclass

from .models import FileState, Snapshot, TimestampParseError, parse_timestamp

logger = logging.getLogger(__name__)

# Handed to FLMCMD DBUTIL so every member is printed as one report line.
DBUTIL_FORMAT = "@@FLMCLV.@@FLMTYP(@@FLMMBR) <@@FLMCD4 @@FLMCTM> @@FLMCUS @@FLMMVR"

SPOOL_END_MARKER = "!! END OF JES SPOOL FILE !!"

REPORT_LINE = re.compile(
    r".*?(?P<change_group>\S+)\s*\.(?P<type>\S+)\s*\((?P<member>\S+)\s*\)"
    r"\s+<(?P<changed>\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2})>"
    r"\s+(?P<user>\S+)\s+(?P<version>\d+)(?:\s.*)?"
)

_SPOOL_SPLIT = re.compile(re.escape(SPOOL_END_MARKER) + r"(?:\r\n|\r|\n)")
_LINE_SPLIT = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class ReportSelection:
    found: bool
    index: int | None
    files: tuple[FileState, ...]

    def to_snapshot(self) -> Snapshot:
        return Snapshot(files=self.files, complete=self.found)


def _lines(text: str) -> list[str]:
    return _LINE_SPLIT.split(text)


def _is_blank(line: str) -> bool:
    return not line.strip()


def split_spool_files(output: str) -> list[str]:
    """Split job output into spool files, dropping empty trailing pieces."""
    parts = _SPOOL_SPLIT.split(output)
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def is_report_shape(text: str) -> bool:
    """Return True when every non-blank line is a DBUTIL report line.

    Empty or all-blank text is accepted as well.
    """
    for line in _lines(text):
        if _is_blank(line):
            continue
        if REPORT_LINE.fullmatch(line) is None:
            return False
    return True


def extract(
    text: str,
    project: str,
    alternate: str,
    group: str,
    type_filter: Collection[str] | None = None,
) -> list[FileState]:
    """Build file states from a DBUTIL report, newest change first.

    Lines that do not match are skipped; callers gate the text through
    `is_report_shape` first. Records whose timestamp does not parse are dropped.
    """
    wanted = set(type_filter or ())
    files: list[FileState] = []
    for line in _lines(text):
        if _is_blank(line):
            continue
        match = REPORT_LINE.fullmatch(line)
        if match is None:
            continue
        member_type = match["type"]
        if wanted and member_type not in wanted:
            continue
        try:
            change_date = parse_timestamp(match["changed"])
        except TimestampParseError as exc:
            logger.warning("Dropping %s(%s): %s", member_type, match["member"], exc)
            continue
        files.append(
            FileState(
                project=project,
                alternate=alternate,
                group=group,
                type=member_type,
                name=match["member"],
                version=int(match["version"]),
                change_date=change_date,
                change_user_id=match["user"],
                change_group=match["change_group"],
            )
        )
    return list(Snapshot.of(files).files)


def select_report(
    output: str,
    project: str,
    alternate: str,
    group: str,
    type_filter: Collection[str] | None = None,
) -> ReportSelection:
    """Pick the first spool file shaped like a DBUTIL report and parse it."""
    for index, spool in enumerate(split_spool_files(output)):
        if not is_report_shape(spool):
            continue
        files = extract(spool, project, alternate, group, type_filter)
        logger.debug("DBUTIL report found in spool file %d: %d members", index, len(files))
        return ReportSelection(found=True, index=index, files=tuple(files))
    return ReportSelection(found=False, index=None, files=())
