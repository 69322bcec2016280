# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from typing import Optional

from os_access._command import Shell
from os_access._exceptions import ServiceNotActive
from os_access._exceptions import ServiceNotFoundError
from os_access._waiting import WaitTimeout
from os_access._waiting import wait_for_truthy


class SystemdServices:
    """Control Systemd units with `systemctl`.

    Every restart is followed by a bounded wait for the active state;
    a unit that is not active in time is an error, not a retry.
    """

    def __init__(self, shell: Shell, timeout_sec: float = 30):
        self._shell = shell
        self._timeout_sec = timeout_sec

    def __repr__(self):
        return f'<{SystemdServices.__name__} at {self._shell!r}>'

    def exists(self, name: str) -> bool:
        return self.show(name, 'LoadState') not in ('not-found', '')

    def is_active(self, name: str) -> bool:
        return self._shell.succeeds(['systemctl', 'is-active', '--quiet', name])

    def is_enabled(self, name: str) -> bool:
        return self._shell.succeeds(['systemctl', 'is-enabled', '--quiet', name])

    def show(self, name: str, prop: str) -> str:
        r = self._shell.run(['systemctl', 'show', '-p', prop, '--value', name], check=False)
        return r.stdout.decode().strip()

    def main_pid(self, name: str) -> int:
        return int(self.show(name, 'MainPID') or 0)

    def active_since(self, name: str) -> Optional[int]:
        """Unix time the unit last entered the active state; None if never."""
        r = self._shell.run([
            'systemctl', 'show', '--timestamp=unix', '-p', 'ActiveEnterTimestamp', '--value', name,
            ], check=False)
        value = r.stdout.decode().strip()
        if not value.startswith('@'):
            return None
        return int(value[1:])

    def enable(self, name: str, now=True):
        self._require(name)
        self._shell.run(['systemctl', 'enable', *(['--now'] if now else []), name])
        if now:
            self._wait_active(name)

    def disable(self, name: str, now=True):
        self._shell.run(['systemctl', 'disable', *(['--now'] if now else []), name])

    def restart(self, name: str):
        self._require(name)
        _logger.info("Restart service %s", name)
        self._shell.run(['systemctl', 'restart', name])
        self._wait_active(name)

    def journal(self, name: str, lines: int = 10) -> str:
        r = self._shell.run(
            ['journalctl', '-u', name, '-n', str(lines), '--no-pager'], check=False)
        return r.stdout.decode(errors='backslashreplace')

    def _require(self, name):
        if not self.exists(name):
            raise ServiceNotFoundError(f"Service {name!r} not found")

    def _wait_active(self, name):
        try:
            wait_for_truthy(
                lambda: self.is_active(name),
                description=f"{name} is active",
                timeout_sec=self._timeout_sec,
                )
        except WaitTimeout as e:
            raise ServiceNotActive(f"{name} is not active after {e.timeout_sec} sec: {self.journal(name)}")


_logger = logging.getLogger(__name__)
