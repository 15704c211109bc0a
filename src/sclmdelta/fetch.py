from __future__ import annotations

import io
import logging

from .config import LibraryConfig
from .jobs import build_dbutil_job
from .models import Snapshot
from .report_parser import select_report
from .text_utils import decode_spool
from .transport import JobTransport

logger = logging.getLogger(__name__)


def fetch_snapshot(
    transport: JobTransport,
    library: LibraryConfig,
    *,
    wait_seconds: int = 0,
) -> Snapshot:
    """Run the DBUTIL job and turn its report into a snapshot.

    A failed submission or output without a DBUTIL report yields an empty
    snapshot marked incomplete.
    """
    job = build_dbutil_job(
        library.job_card, library.project, library.alternate, library.group
    )
    buffer = io.BytesIO()
    if not transport.submit(
        job.encode("utf-8"),
        output=buffer,
        capture_output=True,
        wait_seconds=wait_seconds,
    ):
        logger.warning("DBUTIL job for %s failed", library.library_key)
        return Snapshot.failed()

    selection = select_report(
        decode_spool(buffer.getvalue()),
        library.project,
        library.alternate,
        library.group,
        library.types,
    )
    if not selection.found:
        logger.warning("No DBUTIL report in job output for %s", library.library_key)
    return selection.to_snapshot()
