# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from os_access._application import ApplicationCli
from os_access._command import Shell
from os_access._containers import DockerImages
from os_access._exceptions import ImageBuildError
from os_access._exceptions import PackageInstallError
from os_access._exceptions import ServiceNotActive
from os_access._exceptions import ServiceNotFoundError
from os_access._files import FileMeta
from os_access._files import FileState
from os_access._host import PosixHost
from os_access._packages import AptPackages
from os_access._posix_shell import Sudo
from os_access._posix_shell import command_to_script
from os_access._posix_shell import quote_arg
from os_access._services import SystemdServices
from os_access._ssh_shell import Ssh
from os_access._ssh_shell import SshNotConnected
from os_access._users import UserAccounts
from os_access._waiting import WaitTimeout
from os_access._waiting import wait_for_truthy

__all__ = [
    'AptPackages',
    'ApplicationCli',
    'DockerImages',
    'FileMeta',
    'FileState',
    'ImageBuildError',
    'PackageInstallError',
    'PosixHost',
    'ServiceNotActive',
    'ServiceNotFoundError',
    'Shell',
    'Ssh',
    'SshNotConnected',
    'Sudo',
    'SystemdServices',
    'UserAccounts',
    'WaitTimeout',
    'command_to_script',
    'quote_arg',
    'wait_for_truthy',
    ]
