"""Base class for installer commands."""

from abc import ABC, abstractmethod
from enum import StrEnum

from deltainstaller.core.workspace import Workspace


class Verb(StrEnum):
    """Commands the installer can run."""

    DELTA_PREINSTALL = "deltapreinstall"
    DUMP = "dump"


class Command(ABC):
    """One installer verb.

    The dispatcher calls ``parse_parameters`` first and only calls ``run``
    when ``ready_to_run`` is set.
    """

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self.ready_to_run = False

    @abstractmethod
    def parse_parameters(self, args: list[str]) -> None:
        """Parse the arguments following the verb (and stdin if needed)."""

    @abstractmethod
    def run(self) -> None:
        """Execute the command, writing into the workspace response."""
