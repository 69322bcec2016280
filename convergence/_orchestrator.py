# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from typing import List
from typing import NamedTuple
from typing import Sequence

from convergence._checks import CheckRegistry
from convergence._checks import Report
from convergence._reconciler import Reconciler
from convergence._reconciler import RunOutcome
from convergence._selection import ResourceFilter

_MAX_EXIT_STATUS = 125


class RunSummary(NamedTuple):

    outcomes: Sequence[RunOutcome]
    report: Report

    def failure_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok) + self.report.fail_count

    def exit_status(self) -> int:
        """Number of failures; fits the exit status of a process.

        >>> from convergence._checks import CheckResult
        >>> RunSummary([], Report([CheckResult('a', True)])).exit_status()
        0
        >>> RunSummary([], Report([CheckResult(str(i), False) for i in range(200)])).exit_status()
        125
        """
        return min(self.failure_count(), _MAX_EXIT_STATUS)

    def lines(self) -> List[str]:
        result = []
        for outcome in self.outcomes:
            mark = '[+]' if outcome.ok else '[-]'
            result.append(f'{mark} {outcome.describe()}')
        for check in self.report.results:
            if check.passed:
                mark = '[+]'
            elif check.warning:
                mark = '[!]'
            else:
                mark = '[-]'
            if check.detail:
                result.append(f'{mark} {check.name}: {check.detail}')
            else:
                result.append(f'{mark} {check.name}')
        passed = sum(1 for o in self.outcomes if o.ok) + self.report.pass_count
        totals = f'Results: {passed} passed, {self.failure_count()} failed'
        if self.report.warning_count:
            totals += f', {self.report.warning_count} warnings'
        result.append(totals)
        return result


class Orchestrator:
    """Reconcile the selected resources, then run the selected checks.

    Checks run even if reconciliation failed: they tell what is wrong.
    """

    def __init__(self, reconciler: Reconciler, checks: CheckRegistry):
        self._reconciler = reconciler
        self._checks = checks

    def __repr__(self):
        return f'<{Orchestrator.__name__} {self._reconciler!r} {self._checks!r}>'

    def run(self, selector: ResourceFilter, dry_run: bool = False) -> RunSummary:
        _logger.info("Run %r, dry run: %s", selector, dry_run)
        outcomes = self._reconciler.reconcile(selector, dry_run=dry_run)
        report = self._checks.run_all(selector)
        summary = RunSummary(outcomes, report)
        _logger.info("Failures: %d", summary.failure_count())
        return summary


_logger = logging.getLogger(__name__)
