# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging

from convergence import State
from vps._kinds import HostResource

_CHROME_URL = 'https://dl.google.com/linux/direct/google-chrome-stable_current_amd64.deb'


class NodeRuntime(HostResource):
    """Node.js of a given major version from the NodeSource repository."""

    def __init__(self, resource_id, host, major: int, **kwargs):
        kwargs.setdefault('description', f"Node.js v{major}")
        super().__init__(resource_id, **kwargs)
        self._host = host
        self._major = major

    def _probe(self):
        r = self._host.shell.run(['node', '-v'], check=False)
        if r.returncode != 0:
            return State.ABSENT
        version = r.stdout.decode().strip()
        if version.startswith(f'v{self._major}.'):
            return State.PRESENT
        _logger.info("%s: found Node.js %s", self.id, version)
        return State.MISMATCHED

    def _create(self):
        setup_url = f'https://deb.nodesource.com/setup_{self._major}.x'
        self._host.shell.run(f'curl -fsSL {setup_url} | bash -', timeout_sec=600)
        self._host.packages.install('nodejs')


class ChromeBrowser(HostResource):

    _package = 'google-chrome-stable'

    def __init__(self, resource_id, host, **kwargs):
        kwargs.setdefault('description', "headless Chrome installed")
        super().__init__(resource_id, **kwargs)
        self._host = host

    def _probe(self):
        if self._host.packages.is_installed(self._package):
            return State.PRESENT
        return State.ABSENT

    def _create(self):
        deb = f'/tmp/{self._package}_current_amd64.deb'
        self._host.shell.run(['wget', '-q', '-O', deb, _CHROME_URL], timeout_sec=600)
        try:
            self._host.packages.install(deb)
        finally:
            self._host.files.remove(deb)


def version_number(output: str) -> str:
    """Last word of a --version output.

    >>> version_number('openclaw 2026.1.30')
    '2026.1.30'
    >>> version_number('v1.2.3\\n')
    '1.2.3'
    """
    [*_, last] = output.split()
    return last.lstrip('v')


class ApplicationInstalled(HostResource):
    """Application installed with npm under the user's own prefix, at its latest version.

    If the registry cannot be reached, an installed application is considered
    good enough: the probe cannot tell otherwise.
    """

    def __init__(self, resource_id, host, package: str, user: str, **kwargs):
        kwargs.setdefault('description', f"latest {package} installed for {user}")
        super().__init__(resource_id, **kwargs)
        self._host = host
        self._package = package
        self._user = user

    def _latest(self):
        r = self._host.shell.run(['npm', 'view', self._package, 'version'], timeout_sec=120, check=False)
        if r.returncode != 0:
            _logger.warning(
                "%s: cannot get the latest version of %s: %s",
                self.id, self._package, r.stderr.decode(errors='backslashreplace'))
            return None
        return r.stdout.decode().strip()

    def _probe(self):
        installed = self._host.app.version()
        if installed is None:
            return State.ABSENT
        latest = self._latest()
        if latest is None or version_number(installed) == latest:
            return State.PRESENT
        _logger.info("%s: installed %s, latest %s", self.id, installed, latest)
        return State.MISMATCHED

    def _create(self):
        before = self._host.app.version()
        self._host.shell.run(
            ['sudo', '-u', self._user, '-H', 'npm', 'install', '--global', f'{self._package}@latest'],
            timeout_sec=900,
            )
        after = self._host.app.version()
        _logger.info("%s: %s: %s -> %s", self.id, self._package, before, after)


_logger = logging.getLogger(__name__)
