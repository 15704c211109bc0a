from __future__ import annotations

from sclmdelta.models import EditType, FileState, parse_timestamp


def mk_file(
    name: str,
    *,
    type: str = "COBOL",
    version: int = 1,
    change_date: str = "2024/01/01 00:00:00",
    user: str = "USER1",
    change_group: str = "CG1",
    project: str = "PRJ",
    alternate: str = "ALT",
    group: str = "GRP",
    edit_type: EditType | None = None,
) -> FileState:
    return FileState(
        project=project,
        alternate=alternate,
        group=group,
        type=type,
        name=name,
        version=version,
        change_date=parse_timestamp(change_date),
        change_user_id=user,
        change_group=change_group,
        edit_type=edit_type,
    )


def report_line(
    name: str,
    *,
    type: str = "COBOL",
    version: int = 1,
    change_date: str = "2024/01/01 00:00:00",
    user: str = "USER1",
    change_group: str = "CG1",
) -> str:
    return f"{change_group}.{type}({name}) <{change_date}> {user} {version}"


class _FakeChannel:
    def __init__(self, exit_status: int = 0) -> None:
        self.exit_status = exit_status
        self.write_shut = False

    def shutdown_write(self) -> None:
        self.write_shut = True

    def recv_exit_status(self) -> int:
        return self.exit_status


class _FakeStdin:
    def __init__(self, channel: _FakeChannel) -> None:
        self.channel = channel
        self.data = b""

    def write(self, data: bytes) -> None:
        self.data += data


class _FakeStream:
    def __init__(self, data: bytes, channel: _FakeChannel) -> None:
        self._data = data
        self.channel = channel

    def read(self) -> bytes:
        return self._data


class FakeSSHClient:
    def __init__(
        self,
        *,
        stdout: str = "",
        stderr: str = "",
        exit_status: int = 0,
        connect_error: Exception | None = None,
    ) -> None:
        self.stdout = stdout
        self.stderr = stderr
        self.channel = _FakeChannel(exit_status)
        self.connect_error = connect_error
        self.connect_calls: list[dict[str, object]] = []
        self.commands: list[tuple[str, object]] = []
        self.stdin: _FakeStdin | None = None
        self.closed = False

    def load_system_host_keys(self) -> None:
        return None

    def set_missing_host_key_policy(self, policy: object) -> None:
        _ = policy

    def connect(self, **kwargs) -> None:
        self.connect_calls.append(kwargs)
        if self.connect_error is not None:
            raise self.connect_error

    def exec_command(self, command: str, timeout=None):
        self.commands.append((command, timeout))
        self.stdin = _FakeStdin(self.channel)
        return (
            self.stdin,
            _FakeStream(self.stdout.encode("utf-8"), self.channel),
            _FakeStream(self.stderr.encode("utf-8"), self.channel),
        )

    def close(self) -> None:
        self.closed = True


class DummyAutoAddPolicy:
    pass
