# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from abc import ABCMeta
from abc import abstractmethod
from typing import Collection

from convergence._errors import ProbeError
from convergence._state import State


class Resource(metaclass=ABCMeta):
    """A named unit of desired state on the target machine.

    Resources are declared once, before a run, and hold nothing but
    their declaration: what the desired state is and which adapters
    reach the machine. Whatever was observed is never kept in
    the object; every question about the machine is asked again.

    Subclasses implement probe() and _create(); _repair() defaults to
    _create(), which suits resources written as a whole (files, images).

    Resources must be idempotent.
    The second run must not "accumulate" changes.
    Running it multiple times must be safe.
    """

    def __init__(
            self,
            resource_id: str,
            *,
            group: str,
            depends_on: Collection[str] = (),
            description: str = '',
            ):
        self.id = resource_id
        self.group = group
        self.depends_on = frozenset(depends_on)
        self.desired_description = description or resource_id

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.id}>'

    @abstractmethod
    def probe(self) -> State:
        """Read the current state. Must not change anything.

        Raise ProbeError if the machine cannot answer.
        """
        pass

    def converge(self):
        """Bring the machine to the desired state branching on its live state."""
        try:
            state = self.probe()
        except ProbeError as e:
            _logger.info("%s: cannot probe, assume absent: %s", self.id, e)
            state = State.UNKNOWN
        if state is State.PRESENT:
            _logger.info("%s: already %s", self.id, self.desired_description)
        elif state is State.MISMATCHED:
            _logger.info("%s: repair: %s", self.id, self.desired_description)
            self._repair()
        else:
            _logger.info("%s: create: %s", self.id, self.desired_description)
            self._create()

    @abstractmethod
    def _create(self):
        pass

    def _repair(self):
        self._create()


_logger = logging.getLogger(__name__)
