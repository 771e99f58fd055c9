"""ShrinkTask Jars.

This module collects the archives and directories a task processes:
- JarEntrySet: Locations with parallel optional filters
- InputOutputLedger: Inputs, outputs and the batches between them
"""

from .entries import IntegrityError, JarEntry, JarEntrySet
from .ledger import ClassPathEntry, InputOutputLedger

__all__ = [
    "IntegrityError",
    "JarEntry",
    "JarEntrySet",
    "ClassPathEntry",
    "InputOutputLedger",
]
