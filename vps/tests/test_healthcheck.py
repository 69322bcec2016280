# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from doubles.fake_shell import FakeShell
from os_access import SystemdServices
from vps import healthcheck
from vps._logging import add_file_log


class TestHealthCheck(unittest.TestCase):

    def setUp(self):
        self._dir = Path(tempfile.mkdtemp())
        self.log_file = self._dir / 'logs' / 'healthcheck.log'
        self._handler = add_file_log(healthcheck._logger, self.log_file, logging.WARNING)
        self.shell = FakeShell()
        self.shell.on('systemctl show -p LoadState', stdout='loaded')
        self.shell.on('systemctl show -p MainPID', stdout='4242')
        services = SystemdServices(self.shell, timeout_sec=0.1)
        self.health_check = healthcheck.HealthCheck(services, 'openclaw', self.log_file, max_restarts=3)

    def tearDown(self):
        healthcheck._logger.removeHandler(self._handler)
        self._handler.close()
        shutil.rmtree(self._dir)

    def _log(self):
        return self.log_file.read_text()

    def test_running(self):
        self.assertEqual(self.health_check.run(), 0)
        self.assertFalse(self.shell.ran('systemctl restart'))
        self.assertEqual(self._log(), '')

    def test_restarted(self):
        answers = iter([3])
        self.shell.on_call(
            'systemctl is-active',
            lambda _command, _input: (next(answers, 0), b'', b''))
        self.assertEqual(self.health_check.run(), 0)
        self.assertTrue(self.shell.ran('systemctl restart openclaw'))
        self.assertIn("Attempting restart (#1/3)", self._log())
        self.assertIn("OK: openclaw restarted successfully", self._log())

    def test_not_started(self):
        self.shell.on('systemctl is-active', returncode=3)
        self.shell.on('journalctl -u openclaw', stdout='openclaw: bad config\n')
        self.assertEqual(self.health_check.run(), 1)
        self.assertIn("openclaw: bad config", self._log())

    def test_restart_hangs(self):
        self.shell.on('systemctl is-active', returncode=3)
        self.shell.hang_on('systemctl restart')
        self.assertEqual(self.health_check.run(), 1)
        self.assertIn("ERROR: Failed to restart openclaw", self._log())

    def test_unit_removed_before_restart(self):
        self.shell.on('systemctl is-active', returncode=3)
        load_states = iter([b'loaded'])
        self.shell.on_call(
            'systemctl show -p LoadState',
            lambda _command, _input: (0, next(load_states, b'not-found'), b''))
        self.assertEqual(self.health_check.run(), 1)
        self.assertFalse(self.shell.ran('systemctl restart'))
        self.assertIn("disappeared before restart", self._log())

    def test_too_many_restarts(self):
        self.shell.on('systemctl is-active', returncode=3)
        self.log_file.write_text(''.join(
            f'[2026-01-01 00:0{i}:00 UTC] Attempting restart (#{i}/3)...\n' for i in range(1, 4)))
        self.assertEqual(self.health_check.run(), 2)
        self.assertFalse(self.shell.ran('systemctl restart'))
        self.assertIn("Manual intervention needed", self._log())

    def test_no_unit(self):
        self.shell.on('systemctl show -p LoadState', stdout='not-found')
        self.assertEqual(self.health_check.run(), 1)
        self.assertIn("service not found", self._log())

    def test_count(self):
        self.assertEqual(healthcheck.count_restart_attempts(self._dir / 'nonexistent.log'), 0)


if __name__ == '__main__':
    unittest.main()
