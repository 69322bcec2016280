# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from subprocess import TimeoutExpired
from typing import Callable
from typing import Union

from os_access._command import Shell
from os_access._posix_shell import command_to_script


class FakeShell(Shell):
    """Record commands and answer them with scripted results.

    Commands are matched by prefix of their one-line form; the latest
    matching answer wins. Anything unmatched succeeds with no output.

    >>> shell = FakeShell()
    >>> shell.on('systemctl is-active', returncode=3)
    >>> shell.succeeds(['systemctl', 'is-active', '--quiet', 'ssh'])
    False
    >>> shell.output(['hostname'])
    ''
    >>> shell.commands
    ['systemctl is-active --quiet ssh', 'hostname']
    """

    def __init__(self):
        self.commands = []
        self.inputs = {}
        self._answers = []

    def __repr__(self):
        return '<FakeShell>'

    def on(
            self,
            prefix: str,
            returncode: int = 0,
            stdout: Union[bytes, str] = b'',
            stderr: Union[bytes, str] = b'',
            ):
        if isinstance(stdout, str):
            stdout = stdout.encode()
        if isinstance(stderr, str):
            stderr = stderr.encode()
        self._answers.append((prefix, lambda _command, _input: (returncode, stdout, stderr)))

    def on_call(self, prefix: str, handler: Callable):
        """Handler gets the command line and stdin, returns a triple."""
        self._answers.append((prefix, handler))

    def hang_on(self, prefix: str):

        def _hang(command, _input):
            raise TimeoutExpired(command, 0)

        self._answers.append((prefix, _hang))

    def ran(self, prefix: str) -> bool:
        return any(c.startswith(prefix) for c in self.commands)

    def _execute(self, args, input, timeout_sec):  # noqa PyShadowingBuiltins
        command = args if isinstance(args, str) else command_to_script(args)
        self.commands.append(command)
        if input is not None:
            self.inputs[command] = input
        for prefix, handler in reversed(self._answers):
            if command.startswith(prefix):
                return handler(command, input)
        return 0, b'', b''

    def close(self):
        pass
