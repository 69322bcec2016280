# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Desired state of a single server, declared and converged.

The goal is to keep the server configuration in code under version control.
It serves as documentation for what is installed and configured.

Every piece of configuration is a Resource: it can tell whether the machine
already has it (probe) and bring the machine to it (converge).
Converge is a no-op when the probe is satisfied. That's why the whole
set of resources can be applied again and again: after a reboot,
after a manual edit, after a run that failed halfway.

Resources are not applied directly. Only via a Reconciler.
It orders them by dependencies, re-probes after every change
and does not believe a converge that did not change the probe.
A failure stops dependent resources only. Everything else goes on
and the failure is reported at the end.

Checks are read-only and independent. They are collected
in a CheckRegistry and run as an audit, separately from the Reconciler.
"""
from convergence._checks import CheckRegistry
from convergence._checks import CheckResult
from convergence._checks import Report
from convergence._errors import ConvergeError
from convergence._errors import ConvergenceError
from convergence._errors import CyclicDependencyError
from convergence._errors import DependencyFailed
from convergence._errors import PredicateFaultError
from convergence._errors import ProbeError
from convergence._errors import UnknownDependencyError
from convergence._errors import VerificationMismatchError
from convergence._orchestrator import Orchestrator
from convergence._orchestrator import RunSummary
from convergence._reconciler import Reconciler
from convergence._reconciler import RunOutcome
from convergence._reconciler import Status
from convergence._reconciler import sort_dependencies
from convergence._resource import Resource
from convergence._selection import APPLICATION
from convergence._selection import Mode
from convergence._selection import ResourceFilter
from convergence._selection import SANDBOX
from convergence._selection import SYSTEM
from convergence._state import DESIRED
from convergence._state import State

__all__ = [
    'APPLICATION',
    'CheckRegistry',
    'CheckResult',
    'ConvergeError',
    'ConvergenceError',
    'CyclicDependencyError',
    'DESIRED',
    'DependencyFailed',
    'Mode',
    'Orchestrator',
    'PredicateFaultError',
    'ProbeError',
    'Reconciler',
    'Report',
    'Resource',
    'ResourceFilter',
    'RunOutcome',
    'RunSummary',
    'SANDBOX',
    'SYSTEM',
    'State',
    'Status',
    'UnknownDependencyError',
    'VerificationMismatchError',
    'sort_dependencies',
    ]
