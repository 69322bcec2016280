# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from subprocess import CalledProcessError
from typing import Sequence

from os_access._command import Shell
from os_access._exceptions import PackageInstallError

_APT = ['env', 'DEBIAN_FRONTEND=noninteractive', 'apt-get', '-y', '-qq']
_APT_TIMEOUT_SEC = 1800


class AptPackages:
    """Debian package database of the target machine."""

    def __init__(self, shell: Shell):
        self._shell = shell

    def __repr__(self):
        return f'<{AptPackages.__name__} at {self._shell!r}>'

    def is_installed(self, name: str) -> bool:
        r = self._shell.run(['dpkg-query', '-W', '-f=${Status}', name], check=False)
        return r.returncode == 0 and r.stdout.strip().endswith(b'install ok installed')

    def install(self, *names: str):
        """Install packages or local .deb files; refresh lists once if needed."""
        command = [*_APT, 'install', *names]
        r = self._shell.run(command, timeout_sec=_APT_TIMEOUT_SEC, check=False)
        if r.returncode != 0:
            _logger.info("Install of %s failed, refresh package lists and retry", names)
            self.update()
            try:
                self._shell.run(command, timeout_sec=_APT_TIMEOUT_SEC)
            except CalledProcessError as e:
                raise PackageInstallError(f"Cannot install {' '.join(names)}: {e}")

    def update(self):
        self._shell.run([*_APT, 'update'], timeout_sec=_APT_TIMEOUT_SEC)

    def upgradable(self) -> Sequence[str]:
        """Names of packages that a plain upgrade would change. Simulated."""
        r = self._shell.run(['apt-get', '-s', 'upgrade'], timeout_sec=_APT_TIMEOUT_SEC)
        result = []
        for line in r.stdout.decode().splitlines():
            if line.startswith('Inst '):
                [_, name, *_] = line.split()
                result.append(name)
        return result

    def upgrade(self):
        self.update()
        self._shell.run([*_APT, 'upgrade'], timeout_sec=_APT_TIMEOUT_SEC)


_logger = logging.getLogger(__name__)
