from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path

from .models import EditType, FileState
from .reconcile import Revision


@dataclass(frozen=True)
class ChangeLogEntry:
    path: str
    edit_type: str
    change_date: str
    user_id: str
    change_group: str
    version: int
    project: str
    alternate: str
    group: str
    type: str
    name: str

    @classmethod
    def from_file(cls, file: FileState) -> ChangeLogEntry:
        edit_type = file.edit_type or EditType.UNCLASSIFIED
        return cls(
            path=file.identity_path,
            edit_type=edit_type.value.upper(),
            change_date=file.formatted_date,
            user_id=file.change_user_id,
            change_group=file.change_group,
            version=file.version,
            project=file.project,
            alternate=file.alternate,
            group=file.group,
            type=file.type,
            name=file.name,
        )

    def to_file_state(self) -> FileState:
        return FileState.from_fields(
            project=self.project,
            alternate=self.alternate,
            group=self.group,
            type=self.type,
            name=self.name,
            version=self.version,
            change_date=self.change_date,
            change_user_id=self.user_id,
            change_group=self.change_group,
            edit_type=self.edit_type,
        )


def changelog_entries(
    revision: Revision, *, changed_only: bool = True
) -> list[ChangeLogEntry]:
    files = revision.changed_only() if changed_only else revision.files
    return [ChangeLogEntry.from_file(f) for f in files]


def write_changelog(
    path: Path, revision: Revision, *, changed_only: bool = True
) -> None:
    entries = changelog_entries(revision, changed_only=changed_only)
    payload = {
        "types": list(revision.types),
        "entries": [asdict(entry) for entry in entries],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=True) + "\n", encoding="utf-8")


def read_changelog(path: Path) -> list[FileState]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    return [
        ChangeLogEntry(**entry).to_file_state() for entry in payload.get("entries", [])
    ]
