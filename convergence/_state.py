# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from enum import Enum


class State(Enum):
    """Observed state of a resource on the target machine.

    PRESENT is the only state that satisfies a resource.
    UNKNOWN means the state could not be observed, e.g. a collaborator
    such as a service manager is not installed yet.
    """

    ABSENT = 'absent'
    PRESENT = 'present'
    MISMATCHED = 'mismatched'
    UNKNOWN = 'unknown'

    def __str__(self):
        return self.value


DESIRED = State.PRESENT
