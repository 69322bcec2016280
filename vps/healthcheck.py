# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Keep the application service running; meant for a timer or cron.

Exit status: 0 if running or restarted, 1 if it could not be restarted,
2 if it has been restarted too many times already and needs a person.

The log file is the memory of restart attempts. It is rotated daily,
so the limit is per day.
"""
import argparse
import logging
import os
import sys
from pathlib import Path
from subprocess import CalledProcessError
from subprocess import TimeoutExpired
from typing import Sequence

from config import read_config
from os_access import ServiceNotActive
from os_access import ServiceNotFoundError
from os_access import SystemdServices
from vps._connect import connect
from vps._logging import add_file_log
from vps._logging import init_logging
from vps._settings import make_settings

RESTART_MARKER = "Attempting restart"


def count_restart_attempts(log_file: Path) -> int:
    try:
        text = log_file.read_text(errors='backslashreplace')
    except FileNotFoundError:
        return 0
    return sum(1 for line in text.splitlines() if RESTART_MARKER in line)


class HealthCheck:

    def __init__(self, services: SystemdServices, service: str, log_file: Path, max_restarts: int):
        self._services = services
        self._service = service
        self._log_file = log_file
        self._max_restarts = max_restarts

    def __repr__(self):
        return f'<{HealthCheck.__name__} {self._service}>'

    def run(self) -> int:
        if not self._services.exists(self._service):
            _logger.error("ERROR: %s service not found", self._service)
            return 1
        if self._services.is_active(self._service):
            _logger.info("%s is running (pid %d)", self._service, self._services.main_pid(self._service))
            return 0
        _logger.warning("WARNING: %s is not running", self._service)
        attempts = count_restart_attempts(self._log_file)
        if attempts >= self._max_restarts:
            _logger.error(
                "ERROR: Too many recent restart attempts (%d). Manual intervention needed.", attempts)
            return 2
        _logger.warning("%s (#%d/%d)...", RESTART_MARKER, attempts + 1, self._max_restarts)
        try:
            self._services.restart(self._service)
        except ServiceNotActive as e:
            _logger.error("ERROR: %s failed to start after restart: %s", self._service, e)
            return 1
        except ServiceNotFoundError as e:
            _logger.error("ERROR: %s disappeared before restart: %s", self._service, e)
            return 1
        except (CalledProcessError, TimeoutExpired) as e:
            _logger.error("ERROR: Failed to restart %s: %s", self._service, e)
            return 1
        _logger.warning("OK: %s restarted successfully", self._service)
        return 0


def main(args: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(prog='python -m vps.healthcheck')
    parser.add_argument('--quiet', '-q', action='store_true', help="Log to the file only.")
    parsed_args = parser.parse_args(args)
    init_logging(quiet=parsed_args.quiet)
    settings = make_settings(read_config(), os.environ)
    log_file = Path(settings.health_log())
    add_file_log(_logger, log_file, logging.WARNING)
    host = connect(settings, None, None)
    try:
        health_check = HealthCheck(
            host.services, settings.app_service, log_file, settings.health_max_restarts)
        return health_check.run()
    finally:
        host.close()


_logger = logging.getLogger(__name__)

if __name__ == '__main__':
    exit(main(sys.argv[1:]))
