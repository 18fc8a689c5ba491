# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/comm/ssh.py

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path, PurePosixPath
from typing import IO, Optional

import paramiko

from ..config.models import ConnectionSettings
from ..errors import TransportError
from .interface import RemoteCommand

log = logging.getLogger("ansible_bootstrap")


class SSHCommunicator:
    """
    Reaches the target over SSH with paramiko. Each connect() returns a
    fresh SSHSession; retrying is the caller's business.
    """

    def __init__(self, settings: ConnectionSettings, connect_timeout: float = 20.0):
        self.settings = settings
        self.timeout = settings.timeout
        self.connect_timeout = connect_timeout

    def describe(self) -> str:
        s = self.settings
        return f"{s.username}@{s.host}:{s.port}"

    def _load_pkey(self) -> Optional[paramiko.PKey]:
        key_path = self.settings.private_key_path
        if not key_path:
            return None
        path = str(Path(key_path).expanduser())
        for key_cls in (
            paramiko.Ed25519Key,
            paramiko.RSAKey,
            paramiko.ECDSAKey,
        ):
            try:
                return key_cls.from_private_key_file(path)
            except paramiko.SSHException:
                continue
        raise paramiko.SSHException(f"Unsupported private key format for {path}")

    def connect(self) -> "SSHSession":
        s = self.settings
        pkey = self._load_pkey()

        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=s.host,
                port=s.port,
                username=s.username,
                password=s.password if not pkey else None,
                pkey=pkey,
                timeout=self.connect_timeout,
                allow_agent=True,
                look_for_keys=pkey is None and s.password is None,
            )
        except Exception:
            client.close()
            raise

        log.debug("connected to %s", self.describe())
        return SSHSession(client)


class SSHSession:
    def __init__(self, client: paramiko.SSHClient):
        self.client = client
        self._sftp: Optional[paramiko.SFTPClient] = None

    def _sftp_client(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            self._sftp = self.client.open_sftp()
        return self._sftp

    def upload_file(self, remote_path: str, stream: IO[bytes], mode: Optional[int] = None) -> None:
        try:
            sftp = self._sftp_client()
            sftp.putfo(stream, remote_path)
            if mode is not None:
                sftp.chmod(remote_path, mode)
        except (OSError, paramiko.SSHException) as e:
            raise TransportError(f"Error uploading {remote_path}: {e}") from e
        log.debug("uploaded %s", remote_path)

    def upload_dir(self, remote_root: str, local_dir: Path) -> None:
        """
        Recursively upload the contents of local_dir into remote_root using SFTP.
        """
        try:
            sftp = self._sftp_client()
            self._put_dir_recursive(sftp, Path(local_dir), PurePosixPath(remote_root))
        except (OSError, paramiko.SSHException) as e:
            raise TransportError(f"Error uploading {local_dir} to {remote_root}: {e}") from e
        log.debug("uploaded directory %s -> %s", local_dir, remote_root)

    def _put_dir_recursive(self, sftp: paramiko.SFTPClient, local: Path, remote: PurePosixPath) -> None:
        try:
            sftp.stat(str(remote))
        except FileNotFoundError:
            sftp.mkdir(str(remote))

        for item in sorted(local.iterdir()):
            rpath = remote / item.name
            if item.is_dir():
                self._put_dir_recursive(sftp, item, rpath)
            else:
                sftp.put(str(item), str(rpath))

    def start(self, command: RemoteCommand) -> "ChannelProcess":
        transport = self.client.get_transport()
        if transport is None or not transport.is_active():
            raise TransportError(
                f"Error executing command {command.command!r}: SSH session is not active"
            )
        try:
            chan = transport.open_session()
            chan.exec_command(command.command)
        except (OSError, paramiko.SSHException) as e:
            raise TransportError(f"Error executing command {command.command!r}: {e}") from e
        return ChannelProcess(chan, command)

    def close(self) -> None:
        try:
            if self._sftp is not None:
                self._sftp.close()
        finally:
            self._sftp = None
            self.client.close()


class ChannelProcess:
    """
    A command running on an SSH channel. A pump thread copies channel
    output into the command's stdout/stderr sinks until the channel ends.
    """

    chunk_size = 4096
    poll_interval = 0.05

    def __init__(self, chan: paramiko.Channel, command: RemoteCommand):
        self._chan = chan
        self._command = command
        self._pump = threading.Thread(target=self._copy_output, name="ssh-pump", daemon=True)
        self._pump.start()

    def _write(self, sink: Optional[IO[bytes]], data: bytes) -> None:
        if sink is not None and data:
            sink.write(data)
            sink.flush()

    def _copy_output(self) -> None:
        chan = self._chan
        while not chan.exit_status_ready():
            busy = False
            if chan.recv_ready():
                self._write(self._command.stdout, chan.recv(self.chunk_size))
                busy = True
            if chan.recv_stderr_ready():
                self._write(self._command.stderr, chan.recv_stderr(self.chunk_size))
                busy = True
            if not busy:
                time.sleep(self.poll_interval)

        # drain whatever is left until EOF
        for data in iter(lambda: chan.recv(self.chunk_size), b""):
            self._write(self._command.stdout, data)
        for data in iter(lambda: chan.recv_stderr(self.chunk_size), b""):
            self._write(self._command.stderr, data)

    def wait(self) -> int:
        self._pump.join()
        rc = self._chan.recv_exit_status()
        self._chan.close()
        return rc
