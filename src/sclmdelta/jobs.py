from __future__ import annotations

from .report_parser import DBUTIL_FORMAT


def build_dbutil_job(job_card: str, project: str, alternate: str, group: str) -> str:
    """Return the JCL that runs FLMCMD DBUTIL for one project/alternate/group.

    `job_card` holds the JOB statement and any preceding EXEC/STEPLIB lines;
    the DBUTIL step is appended after it.
    """
    for label, value in (("project", project), ("alternate", alternate), ("group", group)):
        if not value or not value.strip():
            raise ValueError(f"SCLM {label} must not be empty")

    lines = [
        job_card.rstrip("\r\n"),
        "//SYSTSIN  DD *",
        "  ISPSTART CMD(FLMCMD FILE,DBUWORK)",
        "/*",
        "//MSGS     DD SYSOUT=*",
        "//REPT     DD SYSOUT=*",
        "//TAIL     DD SYSOUT=*",
        "//DBUWORK  DD *",
        "DBUTIL,",
        f"+{project},",
        f"+{alternate},",
        f"+{group},,,,,,",
        "+*,*,*,*,*,*,*,YES,*,*,,,,NORMAL,N,N,,MSGS,REPT,TAIL,",
        f"+{DBUTIL_FORMAT}",
        "/*",
    ]
    return "\n".join(lines)
