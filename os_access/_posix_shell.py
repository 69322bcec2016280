# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import os
import shlex
from typing import Optional

from os_access._command import Args
from os_access._command import Shell


def quote_arg(arg):
    return shlex.quote(str(arg))


def command_to_script(command):
    """Join args into a line which is safe to paste into a terminal.

    >>> command_to_script(['install', '-m', 0o440, '/dev/stdin', '/etc/sudoers.d/claw bot'])
    "install -m 288 /dev/stdin '/etc/sudoers.d/claw bot'"
    >>> command_to_script(['echo', None])  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
    ...
    TypeError: Unsupported arg type None in command ['echo', None]
    """
    str_args = []
    for arg in command:
        if isinstance(arg, str):
            str_args.append(arg)
        elif isinstance(arg, int) and not isinstance(arg, bool):
            str_args.append(str(arg))
        elif isinstance(arg, os.PathLike):
            str_args.append(os.fspath(arg))
        else:
            raise TypeError(f"Unsupported arg type {arg} in command {command}")
    return shlex.join(str_args)


class Sudo(Shell):
    """Elevate every command of another shell.

    For logging in as an unprivileged user that has passwordless sudo.
    Non-interactive: sudo fails instead of asking for a password.

    >>> from doubles.fake_shell import FakeShell
    >>> shell = FakeShell()
    >>> _ = Sudo(shell).run(['systemctl', 'restart', 'ssh'])
    >>> _ = Sudo(shell).run('ufw status | grep -q active')
    >>> shell.commands
    ['sudo -n systemctl restart ssh', "sudo -n sh -c 'ufw status | grep -q active'"]
    """

    def __init__(self, shell: Shell):
        self._shell = shell

    def __repr__(self):
        return f'<{Sudo.__name__} {self._shell!r}>'

    def _execute(self, args: Args, input: Optional[bytes], timeout_sec: float):  # noqa PyShadowingBuiltins
        if isinstance(args, str):
            elevated = ['sudo', '-n', 'sh', '-c', args]
        else:
            elevated = ['sudo', '-n', *args]
        r = self._shell.run(elevated, input=input, timeout_sec=timeout_sec, check=False)
        return r.returncode, r.stdout, r.stderr

    def close(self):
        self._shell.close()
