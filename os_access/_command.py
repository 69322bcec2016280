# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from abc import ABCMeta
from abc import abstractmethod
from subprocess import CalledProcessError
from subprocess import CompletedProcess
from typing import Optional
from typing import Sequence
from typing import Union

_logger = logging.getLogger(__name__)

DEFAULT_RUN_TIMEOUT_SEC = 60

Args = Union[str, Sequence[str]]


class _CalledProcessError(CalledProcessError):

    def __str__(self):
        stderr = (self.stderr or b'').decode(errors='backslashreplace')[:5000]
        if self.returncode is None:
            result = "no exit status"
        else:
            result = f"exit status {self.returncode} (0x{self.returncode & 0xff:x})"
        return f"Command {self.cmd} died with {result}: {stderr}"


class Shell(metaclass=ABCMeta):
    """Run commands on the target machine.

    A string is a shell script, a sequence is an executable with args.
    """

    def run(
            self,
            args: Args,
            input: Optional[bytes] = None,  # noqa PyShadowingBuiltins
            timeout_sec: float = DEFAULT_RUN_TIMEOUT_SEC,
            check=True,
            ) -> CompletedProcess:
        returncode, stdout, stderr = self._execute(args, input, timeout_sec)
        _logger.debug("Exit status %d; stdout: %s", returncode, stdout.decode(errors='backslashreplace'))
        if stderr:
            _logger.debug("Stderr: %s", stderr.decode(errors='backslashreplace'))
        if check and returncode != 0:
            raise _CalledProcessError(returncode, args, stdout, stderr)
        return CompletedProcess(args, returncode, stdout, stderr)

    def succeeds(self, args: Args, timeout_sec: float = DEFAULT_RUN_TIMEOUT_SEC) -> bool:
        """Shortcut for tests like `command -v docker` or `systemctl is-active`."""
        return self.run(args, timeout_sec=timeout_sec, check=False).returncode == 0

    def output(self, args: Args, timeout_sec: float = DEFAULT_RUN_TIMEOUT_SEC) -> str:
        return self.run(args, timeout_sec=timeout_sec).stdout.decode().strip()

    @abstractmethod
    def _execute(self, args: Args, input: Optional[bytes], timeout_sec: float):  # noqa PyShadowingBuiltins
        """Return exit status, stdout and stderr; raise TimeoutExpired."""
        pass

    @abstractmethod
    def close(self):
        pass
