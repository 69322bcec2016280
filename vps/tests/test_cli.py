# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import io
import unittest
from contextlib import redirect_stdout
from unittest import mock

from convergence import Mode
from vps import HostSpec
from vps.__main__ import _parse_args
from vps.__main__ import _selector
from vps.__main__ import main


class TestArgs(unittest.TestCase):

    def test_modes_combined(self):
        args = _parse_args(['--system', '--sandbox', '--dry-run'])
        self.assertEqual(args.modes, [Mode.SYSTEM, Mode.SANDBOX])
        self.assertTrue(args.dry_run)

    def test_no_modes(self):
        self.assertIsNone(_parse_args([]).modes)

    def test_full(self):
        args = _parse_args(['--full', '--sandbox'])
        self.assertEqual(args.modes, [Mode.FULL, Mode.SANDBOX])
        selector = _selector(args.modes, enable_sandbox=False)
        self.assertEqual(selector.resource_groups, {'system', 'application', 'sandbox'})
        self.assertEqual(selector.check_groups, {'system', 'application', 'sandbox'})

    def test_host(self):
        args = _parse_args(['--host', 'admin@vps.example.com:2222'])
        self.assertEqual(args.host, HostSpec('admin', 'vps.example.com', 2222))

    def test_verbose_and_quiet_exclusive(self):
        with redirect_stdout(io.StringIO()), mock.patch('sys.stderr', io.StringIO()):
            with self.assertRaises(SystemExit):
                _parse_args(['--verbose', '--quiet'])


class TestSelector(unittest.TestCase):

    def test_sandbox_enabled_joins_implicit_full_run(self):
        selector = _selector([], enable_sandbox=True)
        self.assertEqual(selector.resource_groups, {'system', 'application', 'sandbox'})

    def test_sandbox_enabled_joins_explicit_full_run(self):
        selector = _selector([Mode.FULL], enable_sandbox=True)
        self.assertIn('sandbox', selector.resource_groups)

    def test_sandbox_disabled_full_run(self):
        selector = _selector([Mode.FULL], enable_sandbox=False)
        self.assertEqual(selector.resource_groups, {'system', 'application'})

    def test_scoped_run_ignores_sandbox_setting(self):
        selector = _selector([Mode.SYSTEM], enable_sandbox=True)
        self.assertEqual(selector.resource_groups, {'system'})
        self.assertEqual(selector.check_groups, set())


class TestList(unittest.TestCase):

    def test_list_touches_nothing(self):
        stdout = io.StringIO()
        with mock.patch.dict('os.environ', {'SSH_PUBKEY': 'ssh-ed25519 AAAAC3 me'}):
            with redirect_stdout(stdout):
                exit_status = main(['--list', '--quiet'])
        self.assertEqual(exit_status, 0)
        lines = stdout.getvalue().splitlines()
        ids = [line.split()[0] for line in lines]
        self.assertEqual(ids[0], 'user')
        self.assertIn('sandbox-gateway', ids)


if __name__ == '__main__':
    unittest.main()
