from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from functools import cmp_to_key
from typing import Any

DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


class EditType(str, Enum):
    ADDED = "add"
    EDITED = "edit"
    DELETED = "delete"
    UNCLASSIFIED = "unclassified"


class TimestampParseError(ValueError):
    pass


def parse_timestamp(text: str) -> datetime:
    """Parse a `yyyy/MM/dd HH:mm:ss` timestamp as printed by SCLM."""
    try:
        return datetime.strptime(text.strip(), DATE_FORMAT)
    except ValueError as exc:
        raise TimestampParseError(f"Invalid SCLM timestamp {text!r}: {exc}") from exc


def format_timestamp(value: datetime) -> str:
    return value.strftime(DATE_FORMAT)


def parse_edit_type(name: str | None) -> EditType:
    """Map a stored edit type name (`ADD`, `edit`, ...) to an EditType.

    Unknown or empty names mean the record did not change.
    """
    if not name:
        return EditType.UNCLASSIFIED
    try:
        return EditType(name.strip().lower())
    except ValueError:
        return EditType.UNCLASSIFIED


def _cmp(left: Any, right: Any) -> int:
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


@dataclass(frozen=True, eq=False)
class FileState:
    """One SCLM member at one version.

    Equality and hashing follow the identity path only, so a set of FileState
    never holds the same member twice. Field-level comparison goes through
    `canonical_compare`.
    """

    project: str
    alternate: str
    group: str
    type: str
    name: str
    version: int
    change_date: datetime
    change_user_id: str
    change_group: str
    edit_type: EditType | None = field(default=None)

    def __post_init__(self) -> None:
        if not isinstance(self.change_date, datetime):
            raise TypeError(
                f"change_date must be a datetime, got {type(self.change_date).__name__}"
            )
        if self.version < 0:
            raise ValueError(f"version must be non-negative, got {self.version}")

    @classmethod
    def from_fields(
        cls,
        *,
        project: str,
        alternate: str,
        group: str,
        type: str,
        name: str,
        version: str | int,
        change_date: str,
        change_user_id: str,
        change_group: str,
        edit_type: str | None = None,
    ) -> FileState:
        return cls(
            project=project,
            alternate=alternate,
            group=group,
            type=type,
            name=name,
            version=int(version),
            change_date=parse_timestamp(change_date),
            change_user_id=change_user_id,
            change_group=change_group,
            edit_type=parse_edit_type(edit_type) if edit_type is not None else None,
        )

    @property
    def identity_path(self) -> str:
        return f"{self.project}.{self.alternate}.{self.group}.{self.type}({self.name})"

    @property
    def formatted_date(self) -> str:
        return format_timestamp(self.change_date)

    def canonical_key(self) -> tuple[str, str, str, str, str, int, datetime, str, str]:
        return (
            self.project,
            self.alternate,
            self.group,
            self.type,
            self.name,
            self.version,
            self.change_date,
            self.change_user_id,
            self.change_group,
        )

    def with_edit_type(self, edit_type: EditType) -> FileState:
        return replace(self, edit_type=edit_type)

    def describe(self) -> str:
        if self.edit_type is None:
            raise ValueError(f"{self.identity_path} has not been classified yet")
        return (
            f"{self.edit_type.value.upper()}: [{self.identity_path}] "
            f"{self.change_group} <{self.formatted_date}> | "
            f"{self.change_user_id}, ver.:{self.version}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileState):
            return NotImplemented
        return self.identity_path == other.identity_path

    def __hash__(self) -> int:
        return hash(self.identity_path)


def canonical_compare(left: FileState, right: FileState) -> int:
    """Order by project, alternate, group, type, name, version, date, user, change group.

    Returns 0 only when every field except the edit type matches.
    """
    return _cmp(left.canonical_key(), right.canonical_key())


def display_compare(left: FileState, right: FileState) -> int:
    """Newest change first, then type, name, version (descending), user, change group."""
    return (
        _cmp(right.change_date, left.change_date)
        or _cmp(left.type, right.type)
        or _cmp(left.name, right.name)
        or _cmp(right.version, left.version)
        or _cmp(left.change_user_id, right.change_user_id)
        or _cmp(left.change_group, right.change_group)
    )


display_sort_key = cmp_to_key(display_compare)


def sort_for_display(files: Iterable[FileState]) -> list[FileState]:
    return sorted(files, key=display_sort_key)


def unique_by_identity(files: Iterable[FileState]) -> list[FileState]:
    """Display-ordered files with one entry per identity path, newest change kept."""
    unique: dict[str, FileState] = {}
    for file in sort_for_display(files):
        unique.setdefault(file.identity_path, file)
    return list(unique.values())


@dataclass(frozen=True)
class Snapshot:
    """Library state observed at one point in time.

    `complete` is False when the fetch behind the snapshot failed, which keeps
    a failed fetch apart from a library that is really empty.
    """

    files: tuple[FileState, ...] = ()
    complete: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "files", tuple(unique_by_identity(self.files)))

    @classmethod
    def of(cls, files: Iterable[FileState], *, complete: bool = True) -> Snapshot:
        return cls(files=tuple(files), complete=complete)

    @classmethod
    def failed(cls) -> Snapshot:
        return cls(files=(), complete=False)

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[FileState]:
        return iter(self.files)
