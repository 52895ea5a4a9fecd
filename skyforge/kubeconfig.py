"""Kubeconfig retrieval from a freshly provisioned master.

The master writes its admin kubeconfig at the end of its bootstrap script.
Until then SSH either refuses connections or the file is missing, so the
fetch is retried on exactly those two conditions. Everything else
(authentication, protocol errors, timeouts) fails immediately.

Example:
    path = retrieve_kubeconfig(cluster)
"""

from __future__ import annotations

import getpass
import io
import os
import socket
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TypeAlias

import paramiko
from loguru import logger

from skyforge.cluster import Cluster
from skyforge.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    KubeconfigTimeoutError,
    RemoteUnavailableError,
    RetryExhaustedError,
)
from skyforge.retry import RetryPolicy, on_exception_message

RETRY_ATTEMPTS = 120
RETRY_SLEEP_SECONDS = 2.0
SSH_PORT = 22
DEFAULT_LOCAL_PATH = "~/.kube/config"

DEFAULT_RETRY = RetryPolicy(attempts=RETRY_ATTEMPTS, interval=RETRY_SLEEP_SECONDS)

_KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.ECDSAKey,
    paramiko.RSAKey,
)

PassphrasePrompt: TypeAlias = Callable[[str], str]

still_booting = on_exception_message("does not exist", "connection refused")


class FetchState(StrEnum):
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    FETCHING = "fetching"
    DONE = "done"
    RETRYING = "retrying"
    FAILED = "failed"


StateCallback: TypeAlias = Callable[[FetchState], None]


@dataclass(frozen=True, slots=True)
class KubeconfigTarget:
    """Where to fetch the kubeconfig from and where to write it."""

    host: str
    user: str
    private_key_path: Path
    remote_path: str
    local_path: Path
    port: int = SSH_PORT


def remote_config_path(user: str) -> str:
    if user == "root":
        return "/root/.kube/config"
    return f"/home/{user}/.kube/config"


def private_key_path(public_key_path: str) -> Path:
    """Private key path next to a public key (``id_rsa.pub`` -> ``id_rsa``)."""
    path = Path(public_key_path).expanduser()
    if path.suffix == ".pub":
        return path.with_suffix("")
    return path


def target_for(cluster: Cluster, local_path: str = DEFAULT_LOCAL_PATH) -> KubeconfigTarget:
    if not cluster.kubernetes_api.endpoint:
        raise ConfigurationError(f"Cluster [{cluster.name}] has no Kubernetes API endpoint yet")
    return KubeconfigTarget(
        host=cluster.kubernetes_api.endpoint,
        user=cluster.ssh.user,
        private_key_path=private_key_path(cluster.ssh.public_key_path),
        remote_path=remote_config_path(cluster.ssh.user),
        local_path=Path(local_path).expanduser(),
    )


def _parse_key(pem: str, passphrase: str | None) -> paramiko.PKey | None:
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(pem), password=passphrase)
        except (paramiko.SSHException, ValueError):
            continue
    return None


def load_private_key(pem: bytes, prompt: PassphrasePrompt = getpass.getpass) -> paramiko.PKey:
    """Parse a private key, asking for a passphrase only if needed.

    Args:
        pem: Private key file contents.
        prompt: Silent input function used when the key is encrypted.

    Raises:
        AuthenticationError: If the key can't be parsed with or without a passphrase.
    """
    text = pem.decode("utf-8", errors="replace")
    key = _parse_key(text, None)
    if key is not None:
        return key

    passphrase = prompt("SSH Key Passphrase [none]: ")
    key = _parse_key(text, passphrase or None)
    if key is None:
        raise AuthenticationError("Unable to parse SSH private key, with or without passphrase")
    return key


def append_local(path: Path, data: bytes) -> None:
    """Append to ``path``, creating it owner-only if absent. Never truncates."""
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o600)
    with os.fdopen(fd, "ab") as f:
        f.write(data)


class KubeconfigRetriever:
    """Fetch the kubeconfig over SFTP, retrying while the master boots.

    The private key is read (and the passphrase asked for) once, on the
    first successful connection, then reused for every later attempt.
    """

    def __init__(
        self,
        target: KubeconfigTarget,
        *,
        policy: RetryPolicy = DEFAULT_RETRY,
        prompt: PassphrasePrompt = getpass.getpass,
        on_state: StateCallback | None = None,
        connect_timeout: float = 10.0,
    ) -> None:
        self.target = target
        self.policy = policy
        self.prompt = prompt
        self.on_state = on_state
        self.connect_timeout = connect_timeout
        self.state = FetchState.CONNECTING
        self._key: paramiko.PKey | None = None

    def _transition(self, state: FetchState) -> None:
        logger.debug(f"kubeconfig: {self.state} -> {state}")
        self.state = state
        if self.on_state is not None:
            self.on_state(state)

    def _signer(self) -> paramiko.PKey:
        if self._key is None:
            try:
                pem = self.target.private_key_path.read_bytes()
            except OSError as e:
                raise ConfigurationError(
                    f"Unable to read SSH private key {self.target.private_key_path}: {e}"
                ) from e
            self._key = load_private_key(pem, self.prompt)
        return self._key

    def fetch(self) -> bytes:
        """One connect-authenticate-read attempt."""
        t = self.target
        self._transition(FetchState.CONNECTING)
        try:
            sock = socket.create_connection((t.host, t.port), timeout=self.connect_timeout)
        except ConnectionRefusedError as e:
            raise RemoteUnavailableError(f"connection refused: {t.host}:{t.port}") from e

        try:
            transport = paramiko.Transport(sock)
        except Exception:
            sock.close()
            raise

        try:
            transport.start_client(timeout=self.connect_timeout)

            self._transition(FetchState.AUTHENTICATING)
            transport.auth_publickey(t.user, self._signer())

            self._transition(FetchState.FETCHING)
            sftp = paramiko.SFTPClient.from_transport(transport)
            if sftp is None:
                raise paramiko.SSHException(f"Unable to open SFTP session on {t.host}")
            try:
                with sftp.open(t.remote_path, "rb") as remote:
                    return remote.read()
            except FileNotFoundError as e:
                raise RemoteUnavailableError(f"remote file does not exist: {t.remote_path}") from e
            finally:
                sftp.close()
        finally:
            transport.close()

    def _attempt(self) -> Path:
        try:
            data = self.fetch()
        except Exception as e:
            self._transition(FetchState.RETRYING if still_booting(e) else FetchState.FAILED)
            raise
        append_local(self.target.local_path, data)
        return self.target.local_path

    def retrieve(self) -> Path:
        """Fetch the kubeconfig and append it to the local path.

        Returns:
            The local kubeconfig path.

        Raises:
            KubeconfigTimeoutError: If the master never served the file in budget.
            AuthenticationError: If the private key can't be parsed.
        """
        try:
            path = self.policy.run(
                self._attempt,
                on=still_booting,
                description=f"Waiting for Kubernetes on {self.target.host}",
            )
        except RetryExhaustedError as e:
            self._transition(FetchState.FAILED)
            raise KubeconfigTimeoutError(
                f"Timed out writing kubeconfig from {self.target.host}:{self.target.remote_path} "
                f"after {e.attempts} attempts",
                attempts=e.attempts,
                last_error=e.last_error,
            ) from e

        self._transition(FetchState.DONE)
        logger.info(f"Wrote kubeconfig to [{path}]")
        return path


def retrieve_kubeconfig(
    cluster: Cluster,
    *,
    local_path: str = DEFAULT_LOCAL_PATH,
    policy: RetryPolicy = DEFAULT_RETRY,
    prompt: PassphrasePrompt = getpass.getpass,
) -> Path:
    """Fetch the cluster's kubeconfig into ``local_path``."""
    retriever = KubeconfigRetriever(target_for(cluster, local_path), policy=policy, prompt=prompt)
    return retriever.retrieve()
