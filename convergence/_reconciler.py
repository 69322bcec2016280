# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from enum import Enum
from typing import Callable
from typing import Collection
from typing import List
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Sequence
from typing import Type

from convergence._errors import ConvergeError
from convergence._errors import ConvergenceError
from convergence._errors import CyclicDependencyError
from convergence._errors import DependencyFailed
from convergence._errors import ProbeError
from convergence._errors import UnknownDependencyError
from convergence._errors import VerificationMismatchError
from convergence._resource import Resource
from convergence._selection import ResourceFilter
from convergence._state import DESIRED
from convergence._state import State


class Status(Enum):
    SATISFIED = 'satisfied'
    CONVERGED = 'converged'
    PLANNED = 'would converge'
    FAILED = 'failed'
    SKIPPED = 'skipped'

    def __str__(self):
        return self.value


class RunOutcome(NamedTuple):

    resource_id: str
    status: Status
    initial_state: State
    action_taken: bool
    final_state: Optional[State]
    error: Optional[ConvergenceError] = None

    @property
    def ok(self) -> bool:
        return self.status in (Status.SATISFIED, Status.CONVERGED, Status.PLANNED)

    def describe(self) -> str:
        if self.error is not None:
            return f'{self.resource_id}: {self.status}: {self.error}'
        if self.action_taken:
            return f'{self.resource_id}: {self.status}: {self.initial_state} -> {self.final_state}'
        return f'{self.resource_id}: {self.status}: {self.initial_state}'


class Reconciler:
    """Drive probe, converge and re-probe over resources in dependency order.

    Dependencies are validated and sorted once, at construction;
    a cycle is a mistake in the catalog and nothing runs.

    There are no retries. A failed resource is reported once;
    its dependents are skipped, independent resources still run.
    Recovery is running the whole thing again: resources are idempotent.
    """

    def __init__(self, resources: Sequence[Resource]):
        by_id = {}
        for resource in resources:
            if resource.id in by_id:
                raise ValueError(f"Duplicate resource id: {resource.id}")
            by_id[resource.id] = resource
        edges = {r.id: r.depends_on for r in resources}
        self._resources: Sequence[Resource] = [by_id[i] for i in sort_dependencies(edges)]

    def __repr__(self):
        return f'<{Reconciler.__name__} with {len(self._resources)} resources>'

    def resources(self) -> Sequence[Resource]:
        return list(self._resources)

    def reconcile(
            self,
            selector: ResourceFilter = ResourceFilter.everything(),
            dry_run: bool = False,
            ) -> Sequence[RunOutcome]:
        outcomes = []
        unsuccessful = set()
        for resource in self._resources:
            if not selector.accepts(resource):
                _logger.debug("%s: not selected", resource.id)
                continue
            failed_dependencies = resource.depends_on & unsuccessful
            if failed_dependencies:
                error = DependencyFailed(resource.id, failed_dependencies)
                _logger.warning("%s", error)
                outcome = RunOutcome(
                    resource.id, Status.SKIPPED, State.UNKNOWN, False, None, error)
            else:
                outcome = self._reconcile_one(resource, dry_run)
            if not outcome.ok:
                unsuccessful.add(resource.id)
            outcomes.append(outcome)
        return outcomes

    @staticmethod
    def _reconcile_one(resource: Resource, dry_run: bool) -> RunOutcome:
        try:
            initial_state = _call(resource.probe, ProbeError, resource.id)
        except ConvergenceError as e:
            _logger.warning("%s: probe failed, treat as absent: %s", resource.id, e)
            initial_state = State.UNKNOWN
        _logger.info("%s: %s", resource.id, initial_state)
        if initial_state is DESIRED:
            return RunOutcome(resource.id, Status.SATISFIED, initial_state, False, initial_state)
        if dry_run:
            _logger.info("%s: dry run: would converge to %s", resource.id, resource.desired_description)
            return RunOutcome(resource.id, Status.PLANNED, initial_state, False, initial_state)
        try:
            _call(resource.converge, ConvergeError, resource.id)
        except ConvergenceError as e:
            _logger.error("%s: converge failed: %s", resource.id, e)
            return RunOutcome(resource.id, Status.FAILED, initial_state, True, None, e)
        try:
            final_state = _call(resource.probe, ProbeError, resource.id)
        except ConvergenceError as e:
            _logger.error("%s: cannot verify: %s", resource.id, e)
            return RunOutcome(resource.id, Status.FAILED, initial_state, True, State.UNKNOWN, e)
        if final_state is not DESIRED:
            error = VerificationMismatchError(resource.id, final_state)
            _logger.error("%s", error)
            return RunOutcome(resource.id, Status.FAILED, initial_state, True, final_state, error)
        _logger.info("%s: converged: %s", resource.id, resource.desired_description)
        return RunOutcome(resource.id, Status.CONVERGED, initial_state, True, final_state)


def _call(method: Callable, error_cls: Type[ConvergenceError], resource_id: str):
    """Record a fault in the resource's own code like an adapter failure.

    >>> _call(lambda: {}['gateway'], ProbeError, 'sandbox-config')  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
    ...
    convergence._errors.ProbeError: sandbox-config: KeyError: 'gateway'
    """
    try:
        return method()
    except ConvergenceError:
        raise
    except Exception as e:
        _logger.exception("%s: unexpected fault", resource_id)
        raise error_cls(f"{resource_id}: {type(e).__name__}: {e}") from e


def sort_dependencies(edges: Mapping[str, Collection[str]]) -> List[str]:
    """Order ids so that every dependency precedes its dependents.

    >>> sort_dependencies({'app': ['firewall'], 'swap': [], 'firewall': []})
    ['firewall', 'app', 'swap']
    >>> sort_dependencies({'a': ['b'], 'b': ['a']})  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
    ...
    convergence._errors.CyclicDependencyError: Dependency cycle: a -> b -> a
    >>> sort_dependencies({'a': ['nonexistent']})  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
    ...
    convergence._errors.UnknownDependencyError: a depends on unknown nonexistent
    """
    for node, dependencies in edges.items():
        for dependency in dependencies:
            if dependency not in edges:
                raise UnknownDependencyError(f"{node} depends on unknown {dependency}")
    result = []
    done = set()
    in_progress = []
    for node in edges:
        _visit(node, edges, done, in_progress, result)
    return result


def _visit(node, edges, done, in_progress, result):
    if node in done:
        return
    if node in in_progress:
        cycle = in_progress[in_progress.index(node):] + [node]
        raise CyclicDependencyError(cycle)
    in_progress.append(node)
    for dependency in sorted(edges[node], key=list(edges).index):
        _visit(dependency, edges, done, in_progress, result)
    in_progress.pop()
    done.add(node)
    result.append(node)


_logger = logging.getLogger(__name__)
