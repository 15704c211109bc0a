from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .models import (
    EditType,
    FileState,
    Snapshot,
    canonical_compare,
    unique_by_identity,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevisionSummary:
    added: int
    edited: int
    deleted: int
    unchanged: int

    @property
    def changed(self) -> int:
        return self.added + self.edited + self.deleted


def _unchanged_in(file: FileState, baseline: Iterable[FileState]) -> bool:
    return any(canonical_compare(base, file) == 0 for base in baseline)


class Revision:
    """Classified, display-ordered state of one SCLM library.

    Built from a fresh snapshot and the previous revision. The previous
    revision is only read during construction and never kept.
    """

    def __init__(
        self,
        files: Iterable[FileState],
        types: Iterable[str] = (),
        *,
        complete: bool = True,
    ) -> None:
        self._files = unique_by_identity(files)
        self._types = tuple(types)
        self._complete = complete

    @classmethod
    def build(
        cls,
        remote: Snapshot,
        baseline: Revision | None = None,
        types: Iterable[str] = (),
    ) -> Revision:
        if baseline is None:
            added = [f.with_edit_type(EditType.ADDED) for f in remote.files]
            logger.debug("First revision: %d members added", len(added))
            return cls(added, types, complete=remote.complete)

        base_files = baseline.files
        if not remote.complete:
            logger.warning(
                "Remote snapshot is incomplete; carrying %d baseline members forward",
                len(base_files),
            )
            carried = [
                f.with_edit_type(EditType.UNCLASSIFIED)
                for f in base_files
                if f.edit_type is not EditType.DELETED
            ]
            return cls(carried, types, complete=False)

        base_paths = {f.identity_path for f in base_files}
        added = [f for f in remote.files if f.identity_path not in base_paths]
        added_paths = {f.identity_path for f in added}
        common = [f for f in remote.files if f.identity_path not in added_paths]
        common_paths = {f.identity_path for f in common}
        deleted = [f for f in base_files if f.identity_path not in common_paths]

        files = [f.with_edit_type(EditType.ADDED) for f in added]
        for f in common:
            edit_type = (
                EditType.UNCLASSIFIED if _unchanged_in(f, base_files) else EditType.EDITED
            )
            files.append(f.with_edit_type(edit_type))
        files.extend(f.with_edit_type(EditType.DELETED) for f in deleted)

        revision = cls(files, types)
        logger.debug("Reconciled revision: %s", revision.counts())
        return revision

    @classmethod
    def restore(cls, files: Iterable[FileState], types: Iterable[str] = ()) -> Revision:
        """Rebuild a revision from records that were classified before being stored."""
        restored = [
            f if f.edit_type is not None else f.with_edit_type(EditType.UNCLASSIFIED)
            for f in files
        ]
        return cls(restored, types)

    @property
    def files(self) -> tuple[FileState, ...]:
        return tuple(self._files)

    @property
    def types(self) -> tuple[str, ...]:
        return self._types

    @property
    def complete(self) -> bool:
        return self._complete

    def changed_only(self) -> list[FileState]:
        return [f for f in self._files if f.edit_type is not EditType.UNCLASSIFIED]

    def remove_deleted(self) -> None:
        self._files = [f for f in self._files if f.edit_type is not EditType.DELETED]

    def counts(self) -> RevisionSummary:
        tally = {edit_type: 0 for edit_type in EditType}
        for f in self._files:
            if f.edit_type is not None:
                tally[f.edit_type] += 1
        return RevisionSummary(
            added=tally[EditType.ADDED],
            edited=tally[EditType.EDITED],
            deleted=tally[EditType.DELETED],
            unchanged=tally[EditType.UNCLASSIFIED],
        )

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[FileState]:
        return iter(tuple(self._files))
