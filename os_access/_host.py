# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from os_access._application import ApplicationCli
from os_access._command import Shell
from os_access._containers import DockerImages
from os_access._files import FileState
from os_access._packages import AptPackages
from os_access._posix_shell import quote_arg
from os_access._services import SystemdServices
from os_access._users import UserAccounts


class PosixHost:
    """All adapters of one machine, sharing one shell."""

    def __init__(
            self,
            shell: Shell,
            app_executable: str,
            app_user: str,
            service_timeout_sec: float = 30,
            ):
        self.shell = shell
        self.packages = AptPackages(shell)
        self.services = SystemdServices(shell, service_timeout_sec)
        self.files = FileState(shell)
        self.images = DockerImages(shell)
        self.users = UserAccounts(shell)
        self.app = ApplicationCli(shell, app_executable, user=app_user)

    def __repr__(self):
        return f'<{PosixHost.__name__} at {self.shell!r}>'

    def command_exists(self, name: str) -> bool:
        return self.shell.succeeds(f'command -v {quote_arg(name)}')

    def close(self):
        self.shell.close()
