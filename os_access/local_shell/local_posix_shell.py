# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import subprocess

from os_access._command import Shell
from os_access._posix_shell import command_to_script

_logger = logging.getLogger(__name__)


class _LocalPosixShell(Shell):

    def __repr__(self):
        return '<LocalShell>'

    def _execute(self, args, input, timeout_sec):
        if isinstance(args, str):
            if '\n' in args:
                _logger.info('Run local script:\n%s', args)
            else:
                _logger.info('Run local script: %s', args)
            command = ['sh', '-c', args]
        else:
            command = [str(arg) for arg in args]
            _logger.info('Run: %s', command_to_script(command))
        try:
            process = subprocess.run(
                command,
                input=b'' if input is None else input,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout_sec,
                )
        except FileNotFoundError:
            # Same as a shell would report for a missing executable.
            return 127, b'', f"{command[0]}: command not found".encode()
        return process.returncode, process.stdout, process.stderr

    def close(self):
        """Explicitly do nothing to close local shell."""
        pass


local_posix_shell = _LocalPosixShell()
