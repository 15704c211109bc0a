from __future__ import annotations

import concurrent.futures
import logging
import socket
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Protocol

import paramiko

from .config import RemoteConfig

logger = logging.getLogger(__name__)


class JobTransport(Protocol):
    def submit(
        self,
        job: bytes,
        *,
        output: BinaryIO,
        capture_output: bool = True,
        wait_seconds: int = 0,
    ) -> bool: ...


class SSHJobTransport:
    """Submit JCL through a command run on the mainframe host over SSH.

    `submit_command` reads the job from stdin, waits for it to end and prints
    its spool files separated by the JES end-of-spool marker.
    """

    def __init__(
        self,
        config: RemoteConfig,
        *,
        client_factory: Callable[[], Any] = paramiko.SSHClient,
        auto_add_policy_factory: Callable[[], Any] = paramiko.AutoAddPolicy,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self._auto_add_policy_factory = auto_add_policy_factory

    @contextmanager
    def _client(self) -> Iterator[Any]:
        client = self._client_factory()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(self._auto_add_policy_factory())
        try:
            client.connect(
                hostname=self.config.host,
                username=self.config.user,
                port=self.config.port,
                look_for_keys=True,
                allow_agent=True,
                timeout=self.config.timeout,
            )
            yield client
        finally:
            client.close()

    def submit(
        self,
        job: bytes,
        *,
        output: BinaryIO,
        capture_output: bool = True,
        wait_seconds: int = 0,
    ) -> bool:
        try:
            with self._client() as client:
                stdin, stdout, stderr = client.exec_command(
                    self.config.submit_command,
                    timeout=wait_seconds or None,
                )
                stdin.write(job)
                stdin.channel.shutdown_write()
                # stdout and stderr share one flow-control window.
                with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
                    future_stderr = pool.submit(stderr.read)
                    data = stdout.read()
                    error_bytes = future_stderr.result()
                exit_status = stdout.channel.recv_exit_status()
                error_text = error_bytes.decode("utf-8", errors="replace").strip()
        except (paramiko.SSHException, socket.timeout, OSError) as exc:
            logger.warning("Job submission to %s failed: %s", self.config.address, exc)
            return False

        if exit_status != 0:
            detail = error_text or "no stderr output"
            logger.warning(
                "Job submission to %s exited with %d: %s",
                self.config.address,
                exit_status,
                detail,
            )
            return False
        if capture_output:
            output.write(data)
        return True


class SpoolFileTransport:
    """Replay a spool dump captured earlier instead of running a job."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def submit(
        self,
        job: bytes,
        *,
        output: BinaryIO,
        capture_output: bool = True,
        wait_seconds: int = 0,
    ) -> bool:
        try:
            data = self.path.read_bytes()
        except OSError as exc:
            logger.warning("Cannot read spool file %s: %s", self.path, exc)
            return False
        if capture_output:
            output.write(data)
        return True
