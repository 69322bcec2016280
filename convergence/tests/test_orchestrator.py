# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest

from convergence import APPLICATION
from convergence import CheckRegistry
from convergence import Mode
from convergence import Orchestrator
from convergence import Reconciler
from convergence import ResourceFilter
from convergence import SANDBOX
from convergence import State
from convergence import Status
from doubles.fake_resource import FakeResource


class TestOrchestrator(unittest.TestCase):

    def setUp(self):
        self.swap = FakeResource('swap')
        self.app = FakeResource('app', State.PRESENT, group=APPLICATION)
        self.docker = FakeResource('docker', group=SANDBOX, fails=True)
        self.checks = CheckRegistry()
        self.checks.register('swap', lambda: self.swap.state is State.PRESENT)
        self.checks.register('app', lambda: True, group=APPLICATION)
        self.checks.register('docker', lambda: False, group=SANDBOX)
        reconciler = Reconciler([self.swap, self.app, self.docker])
        self.orchestrator = Orchestrator(reconciler, self.checks)

    def test_full(self):
        summary = self.orchestrator.run(ResourceFilter.from_modes([]))
        self.assertEqual([o.resource_id for o in summary.outcomes], ['swap', 'app'])
        self.assertEqual([r.name for r in summary.report.results], ['swap', 'app'])
        self.assertTrue(summary.report.results[0].passed)
        self.assertEqual(summary.exit_status(), 0)
        self.assertEqual(summary.lines()[-1], 'Results: 4 passed, 0 failed')

    def test_verify_only_changes_nothing(self):
        summary = self.orchestrator.run(ResourceFilter.from_modes([Mode.VERIFY]))
        self.assertEqual(summary.outcomes, [])
        self.assertEqual(self.swap.mutation_count, 0)
        self.assertEqual(summary.exit_status(), 1)

    def test_sandbox_failures_counted(self):
        summary = self.orchestrator.run(ResourceFilter.from_modes([Mode.SANDBOX]))
        [outcome] = summary.outcomes
        self.assertEqual(outcome.status, Status.FAILED)
        self.assertEqual(summary.exit_status(), 2)
        self.assertTrue(summary.lines()[0].startswith('[-] docker: failed: '))
        self.assertEqual(summary.lines()[-1], 'Results: 0 passed, 2 failed')

    def test_dry_run(self):
        summary = self.orchestrator.run(ResourceFilter.from_modes([Mode.SYSTEM]), dry_run=True)
        self.assertEqual([o.status for o in summary.outcomes], [Status.PLANNED])
        self.assertEqual(self.swap.mutation_count, 0)
        self.assertEqual(summary.exit_status(), 0)

    def test_failed_warning_keeps_success(self):
        self.checks.register('App: doctor', lambda: False, group=APPLICATION, warning=True)
        summary = self.orchestrator.run(ResourceFilter.from_modes([]))
        self.assertEqual(summary.exit_status(), 0)
        self.assertIn('[!] App: doctor', summary.lines())
        self.assertEqual(summary.lines()[-1], 'Results: 4 passed, 0 failed, 1 warnings')


if __name__ == '__main__':
    unittest.main()
