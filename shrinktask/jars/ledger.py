#!/usr/bin/env python3
"""Input/output ledger grouping input entries into output batches.

Each output registration records how many input entries existed at that
moment. The recorded counts split the inputs into consecutive batches:
output i receives the inputs in [counts[i-1] or 0, counts[i]).

Example:
    >>> ledger = InputOutputLedger()
    >>> ledger.append_input("x.jar")
    >>> ledger.append_input("y.jar")
    >>> ledger.append_output("out.jar")
    >>> ledger.batch_counts
    [2]
    >>> ledger.batch_range(0)
    range(0, 2)
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from shrinktask.core.constants import FilterArgs, Location
from shrinktask.infrastructure.logger import Logger, get_logger
from shrinktask.jars.entries import IntegrityError, JarEntry, JarEntrySet


@dataclass(frozen=True)
class ClassPathEntry:
    """One entry of the woven program class path."""

    location: Location
    filter: FilterArgs = None
    output: bool = False


class InputOutputLedger:
    """Input and output entry sets plus the batch count of every output.

    Nothing is validated: outputs before any input, empty batches and
    trailing inputs without an output are all accepted.
    """

    def __init__(self, logger: Optional[Logger] = None):
        """Initialize ledger.

        Args:
            logger: Optional logger, the global logger by default
        """
        self.inputs = JarEntrySet("in")
        self.outputs = JarEntrySet("out")
        self._batch_counts: List[int] = []
        self._logger = logger

    @property
    def logger(self) -> Logger:
        if self._logger is None:
            self._logger = get_logger()
        return self._logger

    def append_input(self, location: Location, filter: FilterArgs = None) -> int:
        """Register an input location; the output side is untouched.

        Returns:
            Index of the new input entry
        """
        index = self.inputs.append(location, filter)
        self.logger.debug("Registered input", index=index, location=location)
        return index

    def append_output(self, location: Location, filter: FilterArgs = None) -> int:
        """Register an output location, closing the inputs accumulated so far.

        Returns:
            Index of the new output entry
        """
        index = self.outputs.append(location, filter)
        self._batch_counts.append(len(self.inputs))
        self.check_integrity()
        self.logger.debug(
            "Registered output",
            index=index,
            location=location,
            batch=f"{self.batch_range(index).start}..{self.batch_range(index).stop}",
        )
        return index

    def check_integrity(self) -> None:
        """Fail loudly if outputs and batch counts ever diverge.

        Raises:
            IntegrityError: If the lists differ in length
        """
        self.inputs.check_integrity()
        self.outputs.check_integrity()
        if len(self._batch_counts) != len(self.outputs):
            raise IntegrityError(
                f"batch counts ({len(self._batch_counts)}) and outputs "
                f"({len(self.outputs)}) are out of step"
            )

    @property
    def batch_counts(self) -> List[int]:
        """Input counts recorded at each output registration."""
        return self._batch_counts

    def batch_range(self, output_index: int) -> range:
        """Return the range of input indices that belong to an output.

        Args:
            output_index: Index of the output entry

        Returns:
            Half-open range of input indices
        """
        if output_index < 0:
            output_index += len(self._batch_counts)
        start = self._batch_counts[output_index - 1] if output_index > 0 else 0
        return range(start, self._batch_counts[output_index])

    def batches(self) -> Iterator[Tuple[JarEntry, List[JarEntry]]]:
        """Yield each output entry with the input entries it receives."""
        for output_index in range(len(self.outputs)):
            yield (
                self.outputs[output_index],
                [self.inputs[i] for i in self.batch_range(output_index)],
            )

    def unbatched_inputs(self) -> List[JarEntry]:
        """Return the inputs registered after the last output."""
        start = self._batch_counts[-1] if self._batch_counts else 0
        return [self.inputs[i] for i in range(start, len(self.inputs))]

    def class_path(self) -> List[ClassPathEntry]:
        """Weave inputs and outputs into one program class path.

        Each batch's inputs come first, followed by the output they go to.
        Inputs without an output close the list.
        """
        woven: List[ClassPathEntry] = []

        for output, inputs in self.batches():
            woven.extend(ClassPathEntry(entry.location, entry.filter, False) for entry in inputs)
            woven.append(ClassPathEntry(output.location, output.filter, True))

        woven.extend(
            ClassPathEntry(entry.location, entry.filter, False) for entry in self.unbatched_inputs()
        )
        return woven

    def __repr__(self) -> str:
        return (
            f"InputOutputLedger(inputs={len(self.inputs)}, outputs={len(self.outputs)}, "
            f"batch_counts={self._batch_counts!r})"
        )
