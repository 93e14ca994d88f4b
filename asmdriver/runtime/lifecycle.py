"""Lifecycle phase definitions for a driver run.

Every run moves through the same states:
CollectingInputs -> ResolvingSolutions -> ResolvingLooseAssemblies ->
Deduplicating -> PerGroupPipeline -> Done.
"""

from enum import Enum, auto


class BuildPhase(Enum):
    """Execution phases for a run.

    - COLLECTING_INPUTS: Classify command-line tokens, load config layers
    - RESOLVING_SOLUTIONS: Build solutions and collect their outputs
    - RESOLVING_LOOSE_ASSEMBLIES: Group directly named assemblies
    - DEDUPLICATING: Suppress dependencies already pulled in by executables
    - PER_GROUP_PIPELINE: Translate every file of every group
    - DONE: Run finished
    """

    COLLECTING_INPUTS = auto()
    RESOLVING_SOLUTIONS = auto()
    RESOLVING_LOOSE_ASSEMBLIES = auto()
    DEDUPLICATING = auto()
    PER_GROUP_PIPELINE = auto()
    DONE = auto()

    def __str__(self) -> str:
        """Return human-readable phase name.

        Returns:
            str: Phase name in title case.
        """
        return self.name.replace("_", " ").title()
