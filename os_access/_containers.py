# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from subprocess import CalledProcessError

from os_access._command import Shell
from os_access._exceptions import ImageBuildError

_BUILD_TIMEOUT_SEC = 1800


class DockerImages:

    def __init__(self, shell: Shell):
        self._shell = shell

    def __repr__(self):
        return f'<{DockerImages.__name__} at {self._shell!r}>'

    def is_available(self) -> bool:
        return self._shell.succeeds(['docker', 'info', '--format', '{{.ServerVersion}}'])

    def image_exists(self, tag: str) -> bool:
        return self._shell.succeeds(['docker', 'image', 'inspect', '--format', '{{.Id}}', tag])

    def build(self, tag: str, dockerfile: str):
        """Build from a Dockerfile alone; no build context is sent."""
        _logger.info("Build image %s", tag)
        try:
            self._shell.run(
                ['docker', 'build', '--tag', tag, '-'],
                input=dockerfile.encode(),
                timeout_sec=_BUILD_TIMEOUT_SEC,
                )
        except CalledProcessError as e:
            raise ImageBuildError(f"Cannot build {tag}: {e}")


_logger = logging.getLogger(__name__)
