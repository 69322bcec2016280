# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from typing import NamedTuple
from typing import Optional

from os_access._command import Shell


class FileMeta(NamedTuple):

    mode: int
    owner: str
    group: str


class FileState:
    """Read and write files on the target machine through its shell.

    Contents are bytes. Text is encoded by callers.
    """

    def __init__(self, shell: Shell):
        self._shell = shell

    def __repr__(self):
        return f'<{FileState.__name__} at {self._shell!r}>'

    def exists(self, path: str) -> bool:
        return self._shell.succeeds(['test', '-e', path])

    def read(self, path: str) -> Optional[bytes]:
        """Contents or None if there is no such file."""
        if not self.exists(path):
            return None
        return self._shell.run(['cat', '--', path]).stdout

    def meta(self, path: str) -> Optional[FileMeta]:
        r = self._shell.run(['stat', '-c', '%a:%U:%G', '--', path], check=False)
        if r.returncode != 0:
            return None
        [mode, owner, group] = r.stdout.decode().strip().split(':')
        return FileMeta(int(mode, 8), owner, group)

    def mtime(self, path: str) -> Optional[int]:
        r = self._shell.run(['stat', '-c', '%Y', '--', path], check=False)
        if r.returncode != 0:
            return None
        return int(r.stdout.decode().strip())

    def matches(
            self,
            path: str,
            desired: bytes,
            mode: Optional[int] = None,
            owner: Optional[str] = None,
            ) -> bool:
        if self.read(path) != desired:
            return False
        if mode is None and owner is None:
            return True
        meta = self.meta(path)
        if meta is None:
            return False
        if mode is not None and meta.mode != mode:
            return False
        if owner is not None and (meta.owner, meta.group) != (owner, owner):
            return False
        return True

    def write(self, path: str, content: bytes, mode: int = 0o644, owner: str = 'root'):
        """Upload. Set permissions. Make dirs.

        The file is replaced in one step by `install`, so a reader never
        sees it half-written.
        """
        _logger.info("Write %s (%d bytes, mode %o, owner %s)", path, len(content), mode, owner)
        self._shell.run([
            'install', '-D', '-m', f'{mode:o}', '-o', owner, '-g', owner, '/dev/stdin', path,
            ], input=content)

    def make_dir(self, path: str, mode: int = 0o755, owner: str = 'root'):
        self._shell.run(['install', '-d', '-m', f'{mode:o}', '-o', owner, '-g', owner, path])

    def remove(self, path: str):
        self._shell.run(['rm', '-f', '--', path])

    def home(self, user: str) -> str:
        r = self._shell.run(['getent', 'passwd', user], check=False)
        if r.returncode != 0:
            return f'/home/{user}'
        return r.stdout.decode().strip().split(':')[5]


_logger = logging.getLogger(__name__)
