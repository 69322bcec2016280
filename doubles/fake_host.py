# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import shlex
from typing import Dict
from typing import NamedTuple

from doubles.fake_shell import FakeShell
from os_access import PosixHost


class FakeFile(NamedTuple):

    content: bytes
    mode: int
    owner: str
    mtime: int


class FakeMachine:
    """FakeShell that keeps files in memory, wrapped in a PosixHost.

    File commands of FileState work on `files`; everything else is
    answered as FakeShell does. Each write moves the clock forward.
    """

    def __init__(self):
        self.shell = FakeShell()
        self.files: Dict[str, FakeFile] = {}
        self.clock = 1700000000
        self.shell.on_call('test -e ', self._test)
        self.shell.on_call('cat -- ', self._cat)
        self.shell.on_call('stat -c %a:%U:%G -- ', self._stat)
        self.shell.on_call('stat -c %Y -- ', self._mtime)
        self.shell.on_call('install -D ', self._install)
        self.shell.on_call('rm -f -- ', self._remove)
        self.shell.on_call('mv -f ', self._move)
        self.host = PosixHost(self.shell, 'openclaw', 'clawdbot', service_timeout_sec=0.1)

    def __repr__(self):
        return f'<FakeMachine with {len(self.files)} files>'

    def put(self, path: str, content: bytes, mode: int = 0o644, owner: str = 'root'):
        self.clock += 1
        self.files[path] = FakeFile(content, mode, owner, self.clock)

    def writes(self) -> int:
        return sum(1 for c in self.shell.commands if c.startswith('install -D '))

    def _test(self, command, _input):
        [*_, path] = shlex.split(command)
        return (0 if path in self.files else 1), b'', b''

    def _cat(self, command, _input):
        [*_, path] = shlex.split(command)
        if path not in self.files:
            return 1, b'', f'cat: {path}: No such file or directory'.encode()
        return 0, self.files[path].content, b''

    def _stat(self, command, _input):
        [*_, path] = shlex.split(command)
        if path not in self.files:
            return 1, b'', b''
        f = self.files[path]
        return 0, f'{f.mode:o}:{f.owner}:{f.owner}\n'.encode(), b''

    def _mtime(self, command, _input):
        [*_, path] = shlex.split(command)
        if path not in self.files:
            return 1, b'', b''
        return 0, f'{self.files[path].mtime}\n'.encode(), b''

    def _install(self, command, input):  # noqa PyShadowingBuiltins
        args = shlex.split(command)
        mode = int(args[args.index('-m') + 1], 8)
        owner = args[args.index('-o') + 1]
        self.put(args[-1], input or b'', mode, owner)
        return 0, b'', b''

    def _remove(self, command, _input):
        [*_, path] = shlex.split(command)
        self.files.pop(path, None)
        return 0, b'', b''

    def _move(self, command, _input):
        [*_, source, destination] = shlex.split(command)
        self.files[destination] = self.files.pop(source)
        return 0, b'', b''
