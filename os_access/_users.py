# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from typing import Sequence

from os_access._command import Shell


class UserAccounts:

    def __init__(self, shell: Shell):
        self._shell = shell

    def __repr__(self):
        return f'<{UserAccounts.__name__} at {self._shell!r}>'

    def exists(self, name: str) -> bool:
        return self._shell.succeeds(['id', '-u', name])

    def add(self, name: str):
        r = self._shell.run(['adduser', '--disabled-password', '--gecos', '', name], check=False)
        if r.returncode == 0:
            _logger.info("%s: user added", name)
        elif b'already exists' in r.stderr.lower():
            _logger.info("%s: user already exists", name)
        else:
            r.check_returncode()

    def groups(self, name: str) -> Sequence[str]:
        r = self._shell.run(['id', '-nG', name], check=False)
        if r.returncode != 0:
            return []
        return r.stdout.decode().split()

    def add_to_group(self, name: str, group: str):
        self._shell.run(['usermod', '-aG', group, name])


_logger = logging.getLogger(__name__)
