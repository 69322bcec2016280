# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from typing import Callable
from typing import NamedTuple
from typing import Optional
from typing import Sequence

from convergence._errors import PredicateFaultError
from convergence._selection import ResourceFilter


class CheckResult(NamedTuple):

    name: str
    passed: bool
    detail: Optional[str] = None
    # Failure is reported but does not fail the run.
    warning: bool = False


class Report(NamedTuple):

    results: Sequence[CheckResult]

    @property
    def pass_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if not r.passed and not r.warning)

    @property
    def warning_count(self) -> int:
        return sum(1 for r in self.results if not r.passed and r.warning)

    def failed(self) -> Sequence[CheckResult]:
        return [r for r in self.results if not r.passed and not r.warning]


class _Check(NamedTuple):

    name: str
    group: str
    predicate: Callable[[], bool]
    warning: bool


class CheckRegistry:
    """Named read-only checks, run in registration order.

    A predicate that raises fails its check; the run goes on.
    Verification is over only when every check has a result.
    """

    def __init__(self):
        self._checks = []

    def __repr__(self):
        return f'<{CheckRegistry.__name__} with {len(self._checks)} checks>'

    def __len__(self):
        return len(self._checks)

    def register(
            self,
            name: str,
            predicate: Callable[[], bool],
            *,
            group: str = 'system',
            warning: bool = False,
            ):
        """Add a check; a failed warning check is reported, not counted."""
        if any(c.name == name for c in self._checks):
            raise ValueError(f"Check already registered: {name}")
        self._checks.append(_Check(name, group, predicate, warning))

    def names(self) -> Sequence[str]:
        return [c.name for c in self._checks]

    def run_all(self, selector: Optional[ResourceFilter] = None) -> Report:
        results = []
        for check in self._checks:
            if selector is not None and not selector.accepts_check(check.group):
                continue
            results.append(self._run_one(check))
        return Report(tuple(results))

    @staticmethod
    def _run_one(check: _Check) -> CheckResult:
        try:
            passed = bool(check.predicate())
        except Exception as e:
            fault = PredicateFaultError(check.name, e)
            _logger.warning("Check faulted: %s", fault)
            return CheckResult(check.name, False, str(fault), check.warning)
        if passed:
            _logger.info("Check passed: %s", check.name)
        elif check.warning:
            _logger.warning("Check failed, not counted: %s", check.name)
        else:
            _logger.warning("Check failed: %s", check.name)
        return CheckResult(check.name, passed, warning=check.warning)


_logger = logging.getLogger(__name__)
