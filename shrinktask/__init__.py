"""ShrinkTask - Build-script configuration for a Java bytecode shrinker.

Collects input/output/library jars, filters, keep and assumption rules and
switches into a configuration object that a shrinking engine consumes.
"""

from shrinktask.core.constants import SHRINKTASK_VERSION, STD_OUT
from shrinktask.loader import load_task
from shrinktask.task import Configuration, ShrinkTask
from shrinktask.writer import ConfigurationWriter

__version__ = SHRINKTASK_VERSION

__all__ = [
    "Configuration",
    "ConfigurationWriter",
    "ShrinkTask",
    "STD_OUT",
    "load_task",
]
