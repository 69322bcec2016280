# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from subprocess import CompletedProcess
from typing import Optional
from typing import Sequence

from os_access._command import Shell

# User-level npm prefix; the application is installed without root.
_WITH_USER_PATH = 'PATH="$HOME/.npm-global/bin:$PATH" exec "$@"'


class ApplicationCli:
    """Pass-through to the CLI of the hosted application.

    What the commands check and how they fail is up to the application.
    Results are returned as they are; only the version is interpreted.
    """

    def __init__(self, shell: Shell, executable: str, user: Optional[str] = None):
        self._shell = shell
        self._executable = executable
        self._user = user

    def __repr__(self):
        return f'<{ApplicationCli.__name__} {self._executable} at {self._shell!r}>'

    def version(self) -> Optional[str]:
        r = self._run(['--version'])
        if r.returncode != 0:
            return None
        return r.stdout.decode().strip() or None

    def doctor(self) -> CompletedProcess:
        return self._run(['doctor'], timeout_sec=300)

    def health(self) -> CompletedProcess:
        return self._run(['health'])

    def gateway_restart(self) -> CompletedProcess:
        return self._run(['gateway', 'restart'])

    def _run(self, args: Sequence[str], timeout_sec: float = 60) -> CompletedProcess:
        command = [self._executable, *args]
        if self._user is not None:
            command = ['sudo', '-u', self._user, '-H', 'sh', '-c', _WITH_USER_PATH, 'sh', *command]
        return self._shell.run(command, timeout_sec=timeout_sec, check=False)


_logger = logging.getLogger(__name__)
