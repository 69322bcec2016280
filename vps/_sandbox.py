# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import shlex
from typing import Mapping

from convergence import ProbeError
from convergence import State
from vps._kinds import HostResource

_DOCKER_DOWNLOAD = 'https://download.docker.com/linux/ubuntu'


def parse_os_release(text: str) -> Mapping[str, str]:
    """Parse /etc/os-release.

    >>> info = parse_os_release('NAME="Ubuntu"\\nVERSION_ID="24.04"\\nVERSION_CODENAME=noble\\n')
    >>> info['VERSION_CODENAME'], info['VERSION_ID']
    ('noble', '24.04')
    """
    info = {}
    for line in text.splitlines():
        line = line.strip()
        if '=' in line and not line.startswith('#'):
            key, _, value = line.partition('=')
            info[key] = value.strip('"')
    return info


class DockerRepository(HostResource):
    """APT source of Docker CE, signed by the Docker key."""

    _keyring = '/etc/apt/keyrings/docker.gpg'
    _source_list = '/etc/apt/sources.list.d/docker.list'

    def __init__(self, resource_id, host, **kwargs):
        kwargs.setdefault('description', "Docker CE APT repository configured")
        super().__init__(resource_id, **kwargs)
        self._host = host

    def _source_line(self) -> bytes:
        arch = self._host.shell.output(['dpkg', '--print-architecture'])
        os_release = self._host.files.read('/etc/os-release')
        if os_release is None:
            raise ProbeError(f"{self.id}: /etc/os-release not found")
        codename = parse_os_release(os_release.decode()).get('VERSION_CODENAME')
        if not codename:
            raise ProbeError(f"{self.id}: no VERSION_CODENAME in /etc/os-release")
        line = f'deb [arch={arch} signed-by={self._keyring}] {_DOCKER_DOWNLOAD} {codename} stable\n'
        return line.encode()

    def _probe(self):
        files = self._host.files
        has_key = files.exists(self._keyring)
        source = files.read(self._source_list)
        if not has_key and source is None:
            return State.ABSENT
        if has_key and source == self._source_line():
            return State.PRESENT
        return State.MISMATCHED

    def _create(self):
        files = self._host.files
        files.make_dir('/etc/apt/keyrings', 0o755)
        if not files.exists(self._keyring):
            self._host.packages.install('ca-certificates', 'curl', 'gnupg')
            self._host.shell.run(
                f'curl -fsSL {_DOCKER_DOWNLOAD}/gpg | gpg --dearmor --yes -o {shlex.quote(self._keyring)}',
                timeout_sec=300,
                )
            self._host.shell.run(['chmod', 'a+r', self._keyring])
        files.write(self._source_list, self._source_line(), 0o644, 'root')
        self._host.packages.update()


_logger = logging.getLogger(__name__)
