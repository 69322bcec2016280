# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import os
from pathlib import Path
from typing import NamedTuple
from typing import Optional

from os_access import PosixHost
from os_access import Shell
from os_access import Ssh
from os_access import Sudo
from os_access.local_shell import local_shell
from vps._settings import Settings


class HostSpec(NamedTuple):

    username: str
    hostname: str
    port: int


def parse_host_spec(value: str) -> HostSpec:
    """Parse user@host[:port]; the user is root if omitted.

    >>> parse_host_spec('admin@vps.example.com:2222')
    HostSpec(username='admin', hostname='vps.example.com', port=2222)
    >>> parse_host_spec('203.0.113.5')
    HostSpec(username='root', hostname='203.0.113.5', port=22)
    """
    username, at, rest = value.rpartition('@')
    hostname, colon, port = rest.partition(':')
    if not hostname:
        raise ValueError(f"No host name in {value!r}")
    return HostSpec(username or 'root', hostname, int(port) if colon else 22)


def connect(settings: Settings, host_spec: Optional[HostSpec], key_path: Optional[Path]) -> PosixHost:
    """Open the target machine; commands run as root there."""
    shell: Shell
    if host_spec is None:
        shell = local_shell
        as_root = os.geteuid() == 0
    else:
        shell = Ssh(host_spec.hostname, host_spec.port, host_spec.username, key_path)
        as_root = host_spec.username == 'root'
    if not as_root:
        _logger.info("Not root on %r, commands run via sudo", shell)
        shell = Sudo(shell)
    return PosixHost(
        shell,
        app_executable=settings.app_name,
        app_user=settings.username,
        service_timeout_sec=settings.service_timeout_sec,
        )


_logger = logging.getLogger(__name__)
