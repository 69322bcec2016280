# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from typing import Collection


class ConvergenceError(Exception):
    pass


class ProbeError(ConvergenceError):
    """State could not be read: the collaborator is unreachable or absent."""


class ConvergeError(ConvergenceError):
    """Mutation was attempted and rejected or failed."""


class VerificationMismatchError(ConvergenceError):

    def __init__(self, resource_id, final_state):
        super().__init__(
            f"{resource_id}: converge reported success "
            f"but state verification failed: {final_state}")
        self.resource_id = resource_id
        self.final_state = final_state


class DependencyFailed(ConvergenceError):

    def __init__(self, resource_id, failed: Collection[str]):
        super().__init__(
            f"{resource_id}: skipped, dependency failed: {', '.join(sorted(failed))}")
        self.resource_id = resource_id
        self.failed = failed


class CyclicDependencyError(ConvergenceError):

    def __init__(self, cycle: Collection[str]):
        super().__init__(f"Dependency cycle: {' -> '.join(cycle)}")
        self.cycle = cycle


class UnknownDependencyError(ValueError):
    pass


class PredicateFaultError(ConvergenceError):
    """A check predicate raised instead of returning a boolean."""

    def __init__(self, check_name, cause: Exception):
        super().__init__(f"{check_name}: {cause.__class__.__name__}: {cause}")
        self.check_name = check_name
        self.cause = cause
