# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from enum import Enum
from typing import Collection
from typing import Iterable

SYSTEM = 'system'
APPLICATION = 'application'
SANDBOX = 'sandbox'


class Mode(Enum):
    FULL = 'full'
    SYSTEM = 'system'
    APPLICATION = 'application'
    VERIFY = 'verify'
    SANDBOX = 'sandbox'


class ResourceFilter:
    """Which resource groups to reconcile and which check groups to run.

    >>> f = ResourceFilter.from_modes([])
    >>> sorted(f.resource_groups), sorted(f.check_groups)
    (['application', 'system'], ['application', 'system'])
    >>> f = ResourceFilter.from_modes([Mode.FULL], with_sandbox=True)
    >>> sorted(f.resource_groups), sorted(f.check_groups)
    (['application', 'sandbox', 'system'], ['application', 'sandbox', 'system'])
    >>> f = ResourceFilter.from_modes([Mode.SYSTEM, Mode.SANDBOX])
    >>> sorted(f.resource_groups), sorted(f.check_groups)
    (['sandbox', 'system'], ['sandbox'])
    >>> f = ResourceFilter.from_modes([Mode.VERIFY])
    >>> sorted(f.resource_groups), sorted(f.check_groups)
    ([], ['application', 'system'])
    """

    def __init__(self, resource_groups: Collection[str], check_groups: Collection[str] = ()):
        self.resource_groups = frozenset(resource_groups)
        self.check_groups = frozenset(check_groups)

    def __repr__(self):
        return (
            f'{ResourceFilter.__name__}('
            f'{sorted(self.resource_groups)!r}, {sorted(self.check_groups)!r})')

    @classmethod
    def everything(cls):
        groups = [SYSTEM, APPLICATION, SANDBOX]
        return cls(groups, groups)

    @classmethod
    def from_modes(cls, modes: Iterable[Mode], with_sandbox: bool = False):
        """Combine modes; no modes at all means a full run.

        The sandbox is opt-in for a full run: it is added either by
        with_sandbox or by selecting the sandbox mode explicitly.
        """
        modes = set(modes) or {Mode.FULL}
        if with_sandbox:
            modes.add(Mode.SANDBOX)
        if Mode.FULL in modes:
            modes.update([Mode.SYSTEM, Mode.APPLICATION, Mode.VERIFY])
        resource_groups = set()
        check_groups = set()
        if Mode.SYSTEM in modes:
            resource_groups.add(SYSTEM)
        if Mode.APPLICATION in modes:
            resource_groups.add(APPLICATION)
        if Mode.SANDBOX in modes:
            resource_groups.add(SANDBOX)
            check_groups.add(SANDBOX)
        if Mode.VERIFY in modes:
            check_groups.update([SYSTEM, APPLICATION])
        return cls(resource_groups, check_groups)

    def accepts(self, resource) -> bool:
        return resource.group in self.resource_groups

    def accepts_check(self, group: str) -> bool:
        return group in self.check_groups
