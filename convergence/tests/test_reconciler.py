# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest

from convergence import APPLICATION
from convergence import ConvergeError
from convergence import CyclicDependencyError
from convergence import DependencyFailed
from convergence import ProbeError
from convergence import Reconciler
from convergence import ResourceFilter
from convergence import State
from convergence import Status
from convergence import UnknownDependencyError
from convergence import VerificationMismatchError
from doubles.fake_resource import FakeResource


class TestConverge(unittest.TestCase):

    def test_present_is_no_op(self):
        resource = FakeResource('swap', State.PRESENT)
        resource.converge()
        self.assertEqual(resource.mutation_count, 0)

    def test_second_converge_does_nothing(self):
        resource = FakeResource('swap')
        resource.converge()
        resource.converge()
        self.assertEqual(resource.state, State.PRESENT)
        self.assertEqual(resource.mutation_count, 1)

    def test_mismatched_is_repaired(self):
        journal = []
        resource = FakeResource('sshd', State.MISMATCHED, journal=journal)
        resource.converge()
        self.assertIn('repair sshd', journal)
        self.assertEqual(resource.state, State.PRESENT)

    def test_unknown_is_created(self):
        journal = []
        resource = FakeResource('docker', probe_fails=True, journal=journal)
        resource.converge()
        self.assertEqual(journal, ['probe docker', 'create docker'])


class TestReconciler(unittest.TestCase):

    def test_satisfied_not_converged(self):
        resource = FakeResource('swap', State.PRESENT)
        [outcome] = Reconciler([resource]).reconcile()
        self.assertEqual(outcome.status, Status.SATISFIED)
        self.assertFalse(outcome.action_taken)
        self.assertEqual(resource.mutation_count, 0)

    def test_converged(self):
        resource = FakeResource('swap')
        [outcome] = Reconciler([resource]).reconcile()
        self.assertEqual(outcome.status, Status.CONVERGED)
        self.assertTrue(outcome.action_taken)
        self.assertEqual(outcome.initial_state, State.ABSENT)
        self.assertEqual(outcome.final_state, State.PRESENT)
        self.assertTrue(outcome.ok)

    def test_second_run_is_satisfied(self):
        resources = [FakeResource('swap'), FakeResource('firewall', State.MISMATCHED)]
        reconciler = Reconciler(resources)
        reconciler.reconcile()
        outcomes = reconciler.reconcile()
        self.assertEqual([o.status for o in outcomes], [Status.SATISFIED, Status.SATISFIED])
        self.assertEqual([r.mutation_count for r in resources], [1, 1])

    def test_dependency_goes_first(self):
        journal = []
        app = FakeResource('app', depends_on=['firewall'], journal=journal)
        firewall = FakeResource('firewall', journal=journal)
        outcomes = Reconciler([app, firewall]).reconcile()
        self.assertEqual([o.resource_id for o in outcomes], ['firewall', 'app'])
        self.assertLess(journal.index('create firewall'), journal.index('probe app'))

    def test_declaration_order_kept_for_independent(self):
        resources = [FakeResource(name) for name in ['c', 'a', 'b']]
        outcomes = Reconciler(resources).reconcile()
        self.assertEqual([o.resource_id for o in outcomes], ['c', 'a', 'b'])

    def test_cycle_rejected_before_anything_runs(self):
        a = FakeResource('a', depends_on=['b'])
        b = FakeResource('b', depends_on=['a'])
        with self.assertRaises(CyclicDependencyError):
            Reconciler([a, b])
        self.assertEqual(a.probe_count + b.probe_count, 0)

    def test_self_dependency_is_cycle(self):
        with self.assertRaises(CyclicDependencyError):
            Reconciler([FakeResource('a', depends_on=['a'])])

    def test_unknown_dependency_rejected(self):
        with self.assertRaises(UnknownDependencyError):
            Reconciler([FakeResource('app', depends_on=['nodejs'])])

    def test_duplicate_id_rejected(self):
        with self.assertRaises(ValueError):
            Reconciler([FakeResource('swap'), FakeResource('swap')])

    def test_failure_isolated(self):
        broken = FakeResource('firewall', fails=True)
        independent = FakeResource('swap')
        outcomes = Reconciler([broken, independent]).reconcile()
        self.assertEqual(outcomes[0].status, Status.FAILED)
        self.assertIsInstance(outcomes[0].error, ConvergeError)
        self.assertEqual(outcomes[1].status, Status.CONVERGED)

    def test_dependent_skipped(self):
        broken = FakeResource('firewall', fails=True)
        dependent = FakeResource('app', depends_on=['firewall'])
        outcomes = Reconciler([broken, dependent]).reconcile()
        self.assertEqual(outcomes[1].status, Status.SKIPPED)
        self.assertIsInstance(outcomes[1].error, DependencyFailed)
        self.assertEqual(dependent.probe_count, 0)

    def test_skip_is_transitive(self):
        broken = FakeResource('nodejs', fails=True)
        app = FakeResource('app', depends_on=['nodejs'])
        gateway = FakeResource('gateway', depends_on=['app'])
        outcomes = Reconciler([broken, app, gateway]).reconcile()
        self.assertEqual([o.status for o in outcomes], [Status.FAILED, Status.SKIPPED, Status.SKIPPED])

    def test_converge_without_effect_is_mismatch(self):
        resource = FakeResource('gateway', State.MISMATCHED, no_effect=True)
        [outcome] = Reconciler([resource]).reconcile()
        self.assertEqual(outcome.status, Status.FAILED)
        self.assertIsInstance(outcome.error, VerificationMismatchError)
        self.assertEqual(outcome.final_state, State.MISMATCHED)
        self.assertFalse(outcome.ok)

    def test_unreachable_probe_converges(self):
        resource = FakeResource('docker', probe_fails=True)
        [outcome] = Reconciler([resource]).reconcile()
        self.assertEqual(outcome.initial_state, State.UNKNOWN)
        self.assertEqual(outcome.status, Status.FAILED)
        self.assertIsInstance(outcome.error, ProbeError)
        self.assertEqual(outcome.final_state, State.UNKNOWN)

    def test_dry_run_changes_nothing(self):
        resource = FakeResource('swap')
        [outcome] = Reconciler([resource]).reconcile(dry_run=True)
        self.assertEqual(outcome.status, Status.PLANNED)
        self.assertFalse(outcome.action_taken)
        self.assertEqual(resource.mutation_count, 0)

    def test_selection(self):
        system = FakeResource('swap')
        application = FakeResource('app', group=APPLICATION, depends_on=['swap'])
        outcomes = Reconciler([system, application]).reconcile(ResourceFilter([APPLICATION]))
        self.assertEqual([o.resource_id for o in outcomes], ['app'])
        self.assertEqual(system.probe_count, 0)

    def test_unselected_dependency_does_not_block(self):
        system = FakeResource('nodejs', fails=True)
        application = FakeResource('app', group=APPLICATION, depends_on=['nodejs'])
        [outcome] = Reconciler([system, application]).reconcile(ResourceFilter([APPLICATION]))
        self.assertEqual(outcome.status, Status.CONVERGED)

    def test_fault_in_probe_does_not_stop_run(self):
        broken = _BuggyResource('sandbox-config', fault_in='probe')
        independent = FakeResource('swap')
        outcomes = Reconciler([broken, independent]).reconcile()
        self.assertEqual(outcomes[0].initial_state, State.UNKNOWN)
        self.assertEqual(outcomes[0].status, Status.FAILED)
        self.assertIsInstance(outcomes[0].error.__cause__, RuntimeError)
        self.assertEqual(outcomes[1].status, Status.CONVERGED)

    def test_fault_in_converge_skips_dependents_only(self):
        broken = _BuggyResource('npm-path', fault_in='converge')
        dependent = FakeResource('application', depends_on=['npm-path'])
        independent = FakeResource('swap')
        outcomes = Reconciler([broken, dependent, independent]).reconcile()
        self.assertEqual(
            [o.status for o in outcomes],
            [Status.FAILED, Status.SKIPPED, Status.CONVERGED])
        self.assertIsInstance(outcomes[0].error, ConvergeError)
        self.assertIn('AttributeError', str(outcomes[0].error))

    def test_scenario(self):
        resources = [
            FakeResource('swap'),
            FakeResource('ssh-hardening', State.MISMATCHED),
            FakeResource('firewall', fails=True),
            FakeResource('gateway', depends_on=['firewall']),
            ]
        outcomes = Reconciler(resources).reconcile()
        self.assertEqual(
            [(o.resource_id, o.status) for o in outcomes],
            [
                ('swap', Status.CONVERGED),
                ('ssh-hardening', Status.CONVERGED),
                ('firewall', Status.FAILED),
                ('gateway', Status.SKIPPED),
                ])
        self.assertFalse(all(o.ok for o in outcomes))


class _BuggyResource(FakeResource):
    """Raises an error that is not an adapter failure."""

    def __init__(self, resource_id, fault_in, **kwargs):
        super().__init__(resource_id, **kwargs)
        self._fault_in = fault_in

    def probe(self):
        if self._fault_in == 'probe':
            raise RuntimeError("unexpected value")
        return super().probe()

    def _create(self):
        if self._fault_in == 'converge':
            raise AttributeError("'list' object has no attribute 'get'")
        super()._create()


if __name__ == '__main__':
    unittest.main()
