# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest

from convergence import APPLICATION
from convergence import Mode
from convergence import Reconciler
from convergence import ResourceFilter
from convergence import SANDBOX
from convergence import SYSTEM
from doubles.fake_host import FakeMachine
from vps import build_checks
from vps import build_resources
from vps import make_settings

_PUBKEY = 'ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIGm me@laptop'


class TestCatalog(unittest.TestCase):

    def setUp(self):
        self.machine = FakeMachine()

    def test_consistent(self):
        settings = make_settings({}, {'SSH_PUBKEY': _PUBKEY})
        reconciler = Reconciler(build_resources(settings, self.machine.host))
        ids = [r.id for r in reconciler.resources()]
        self.assertLess(ids.index('user'), ids.index('sudoers'))
        self.assertLess(ids.index('authorized-key'), ids.index('ssh-hardening'))
        self.assertLess(ids.index('application'), ids.index('gateway'))
        self.assertLess(ids.index('sandbox-config'), ids.index('sandbox-gateway'))
        self.assertEqual(self.machine.shell.commands, [])

    def test_every_group_populated(self):
        settings = make_settings({}, {})
        resources = build_resources(settings, self.machine.host)
        groups = {r.group for r in resources}
        self.assertEqual(groups, {SYSTEM, APPLICATION, SANDBOX})

    def test_no_key_no_key_resource(self):
        settings = make_settings({}, {})
        with self.assertLogs('vps._catalog', 'WARNING'):
            resources = build_resources(settings, self.machine.host)
        ids = [r.id for r in resources]
        self.assertNotIn('authorized-key', ids)
        [hardening] = [r for r in resources if r.id == 'ssh-hardening']
        self.assertEqual(hardening.depends_on, frozenset())

    def test_configured_names(self):
        settings = make_settings({'username': 'agent', 'ssh_port': '2222'}, {})
        resources = {r.id: r for r in build_resources(settings, self.machine.host)}
        self.assertEqual(resources['sudoers'].desired_description, 'agent has scoped passwordless sudo')
        self.assertIn('2222/tcp', resources['firewall'].desired_description)

    def test_dry_run_changes_nothing(self):
        settings = make_settings({}, {'SSH_PUBKEY': _PUBKEY})
        reconciler = Reconciler(build_resources(settings, self.machine.host))
        outcomes = reconciler.reconcile(ResourceFilter.from_modes([Mode.SYSTEM]), dry_run=True)
        self.assertTrue(outcomes)
        self.assertTrue(all(o.ok for o in outcomes))
        self.assertEqual(self.machine.writes(), 0)
        self.assertFalse(self.machine.shell.ran('systemctl restart'))
        self.assertFalse(self.machine.shell.ran('env DEBIAN_FRONTEND=noninteractive apt-get -y -qq install'))

    def test_unit_hardening_applied_after_onboarding(self):
        settings = make_settings({}, {'SSH_PUBKEY': _PUBKEY})
        resources = {r.id: r for r in build_resources(settings, self.machine.host)}
        hardening = resources['unit-hardening']
        self.assertEqual(hardening.depends_on, frozenset(['gateway']))
        hardening.converge()
        drop_in = self.machine.files['/etc/systemd/system/openclaw.service.d/hardening.conf'].content
        self.assertIn(b'NoNewPrivileges=yes\n', drop_in)
        self.assertIn(b'ProtectSystem=strict\n', drop_in)
        self.assertIn(b'ReadWritePaths=/home/clawdbot/.openclaw /home/clawdbot/.npm-global\n', drop_in)
        self.assertTrue(self.machine.shell.ran('systemctl daemon-reload'))
        self.assertTrue(self.machine.shell.ran('systemctl try-restart openclaw'))


class TestCheckCatalog(unittest.TestCase):

    def setUp(self):
        self.machine = FakeMachine()
        self.settings = make_settings({}, {})
        self.checks = build_checks(self.settings, self.machine.host)

    def test_groups(self):
        verify = self.checks.run_all(ResourceFilter.from_modes([Mode.VERIFY]))
        sandbox = self.checks.run_all(ResourceFilter.from_modes([Mode.SANDBOX]))
        self.assertEqual(len(verify.results) + len(sandbox.results), len(self.checks))
        self.assertIn("Docker: running", [r.name for r in sandbox.results])
        self.assertIn("Openclaw: running", [r.name for r in verify.results])

    def _result(self, name):
        [result] = [r for r in self.checks.run_all(ResourceFilter.everything()).results if r.name == name]
        return result

    def test_sshd(self):
        self.machine.shell.on('sshd -T', stdout='port 22\npermitrootlogin no\npasswordauthentication yes\n')
        self.assertTrue(self._result("SSH: root login disabled").passed)
        self.assertFalse(self._result("SSH: password auth disabled").passed)

    def test_resources(self):
        self.machine.shell.on('df --output=pcent /', stdout='Use%\n 85%\n')
        self.machine.put('/proc/meminfo', b'MemTotal: 2000 kB\nMemAvailable: 1000 kB\n')
        self.assertFalse(self._result("Disk: >20% free").passed)
        self.assertTrue(self._result("Memory: <90% used").passed)

    def test_fault_is_failure(self):
        result = self._result("Memory: <90% used")
        self.assertFalse(result.passed)
        self.assertIn('AttributeError', result.detail)

    def test_sudo_scoped(self):
        self.machine.put('/etc/sudoers.d/clawdbot', b'clawdbot ALL=(ALL) NOPASSWD:ALL\n')
        self.assertFalse(self._result("Sudo: scoped (no NOPASSWD:ALL)").passed)

    def test_sandbox_config(self):
        self.machine.put(self.settings.app_config(), b'{"agents": {"defaults": {"sandbox": {"mode": "off"}}}}')
        self.assertFalse(self._result("Config: sandbox enabled").passed)
        self.machine.put(self.settings.app_config(), b'{"agents": {"defaults": {"sandbox": {"mode": "all"}}}}')
        self.assertTrue(self._result("Config: sandbox enabled").passed)

    def test_doctor_reported_not_counted(self):
        self.machine.shell.on('openclaw doctor', returncode=1)
        self.machine.shell.on('sudo -u clawdbot', returncode=1)
        report = self.checks.run_all(ResourceFilter.from_modes([Mode.VERIFY]))
        [doctor] = [r for r in report.results if r.name == "Openclaw: doctor"]
        self.assertFalse(doctor.passed)
        self.assertTrue(doctor.warning)
        self.assertNotIn("Openclaw: doctor", [r.name for r in report.failed()])

    def test_unit_hardening_reported_not_counted(self):
        report = self.checks.run_all(ResourceFilter.from_modes([Mode.VERIFY]))
        for name in ["Systemd: NoNewPrivileges", "Systemd: ProtectSystem"]:
            [result] = [r for r in report.results if r.name == name]
            self.assertFalse(result.passed)
            self.assertTrue(result.warning)
        self.machine.shell.on('systemctl show -p NoNewPrivileges', stdout='yes\n')
        self.machine.shell.on('systemctl show -p ProtectSystem', stdout='strict\n')
        self.assertTrue(self._result("Systemd: NoNewPrivileges").passed)
        self.assertTrue(self._result("Systemd: ProtectSystem").passed)

    def test_pending_reboot(self):
        self.assertTrue(self._result("No pending reboot").passed)
        self.machine.put('/var/run/reboot-required', b'')
        self.assertFalse(self._result("No pending reboot").passed)


if __name__ == '__main__':
    unittest.main()
