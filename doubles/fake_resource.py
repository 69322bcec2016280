# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from typing import List

from convergence import ConvergeError
from convergence import ProbeError
from convergence import Resource
from convergence import State


class FakeResource(Resource):
    """In-memory state with counters of calls.

    Creating makes it PRESENT unless told to fail or to have no effect.
    Every call is appended to the shared journal, if given.
    """

    def __init__(
            self,
            resource_id,
            state=State.ABSENT,
            *,
            group='system',
            depends_on=(),
            fails=False,
            no_effect=False,
            probe_fails=False,
            journal: List[str] = None,
            ):
        super().__init__(resource_id, group=group, depends_on=depends_on)
        self.state = state
        self.fails = fails
        self.no_effect = no_effect
        self.probe_fails = probe_fails
        self.probe_count = 0
        self.mutation_count = 0
        self._journal = journal if journal is not None else []

    def probe(self):
        self.probe_count += 1
        self._journal.append(f'probe {self.id}')
        if self.probe_fails:
            raise ProbeError(f"{self.id}: unreachable")
        return self.state

    def _create(self):
        self._journal.append(f'create {self.id}')
        if self.fails:
            raise ConvergeError(f"{self.id}: rejected")
        self.mutation_count += 1
        if not self.no_effect:
            self.state = State.PRESENT

    def _repair(self):
        self._journal.append(f'repair {self.id}')
        self._create()
