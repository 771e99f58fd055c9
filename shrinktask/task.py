#!/usr/bin/env python3
"""Shrink task: the build-script facing configuration object.

A build script calls one method per setting; nothing is resolved or
validated until an engine reads the finished task. This module provides:
- Configuration: every setting with its explicit default
- ShrinkTask: the mutation entry points for jars, filters, rules and switches

Example:
    >>> task = ShrinkTask()
    >>> task.injars("build/classes")
    >>> task.injars("libs/util.jar", {"filter": "!META-INF/**"})
    >>> task.outjars("build/app-min.jar")
    >>> task.keepattributes("Signature,*Annotation*")
    >>> task.keep("public class com.example.Main { public static void main(java.lang.String[]); }")
    >>> task.dontobfuscate()
    >>> task.in_jar_counts
    [2]
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Union

from shrinktask.core.constants import (
    DEFAULT_CONFIG_RESOURCE_PREFIX,
    STD_OUT,
    ConfigKey,
    FilterArgs,
    Location,
    internal_class_name,
    optional_file,
)
from shrinktask.infrastructure.config_manager import ConfigManager, get_config_manager
from shrinktask.infrastructure.logger import Logger, configure_logger
from shrinktask.jars.entries import JarEntrySet
from shrinktask.jars.ledger import ClassPathEntry, InputOutputLedger
from shrinktask.rules.parser import RuleParser, SimpleRuleParser
from shrinktask.rules.patterns import PatternListField
from shrinktask.rules.records import (
    ClassSpecification,
    KeepClassSpecification,
    MemberDeclarations,
    SpecificationError,
)
from shrinktask.rules.specifications import ClassSpecificationList, KeepSpecificationList

Specification = Union[str, Mapping[str, Any]]


def _patterns(name: str, convert_class_names: bool = False):
    return field(default_factory=lambda: PatternListField(name, convert_class_names))


def _rules(name: str, allow_values: bool = False):
    return field(default_factory=lambda: ClassSpecificationList(name, allow_values))


@dataclass
class Configuration:
    """All settings collected by a task, with explicit defaults.

    Pattern lists start UNSET and rule lists start empty; the engine treats
    an unset pattern list as "use the default".
    """

    # Input and output
    extra_jar: Optional[Location] = None
    skip_non_public_library_classes: bool = False
    skip_non_public_library_class_members: bool = True
    keep_directories: PatternListField = _patterns("keep_directories")
    target_class_version: int = 0
    last_modified: int = 0

    # Shrinking
    shrink: bool = True
    keep: KeepSpecificationList = field(default_factory=lambda: KeepSpecificationList("keep"))
    print_seeds: Optional[Location] = None
    print_usage: Optional[Location] = None
    why_are_you_keeping: ClassSpecificationList = _rules("why_are_you_keeping")

    # Optimization
    optimize: bool = True
    optimizations: PatternListField = _patterns("optimizations")
    optimization_passes: int = 1
    assume_no_side_effects: ClassSpecificationList = _rules("assume_no_side_effects", True)
    assume_no_external_side_effects: ClassSpecificationList = _rules(
        "assume_no_external_side_effects", True
    )
    assume_no_escaping_parameters: ClassSpecificationList = _rules(
        "assume_no_escaping_parameters", True
    )
    assume_no_external_return_values: ClassSpecificationList = _rules(
        "assume_no_external_return_values", True
    )
    assume_values: ClassSpecificationList = _rules("assume_values", True)
    allow_access_modification: bool = False
    merge_interfaces_aggressively: bool = False

    # Obfuscation
    obfuscate: bool = True
    print_mapping: Optional[Location] = None
    apply_mapping: Optional[Location] = None
    obfuscation_dictionary: Optional[Location] = None
    class_obfuscation_dictionary: Optional[Location] = None
    package_obfuscation_dictionary: Optional[Location] = None
    overload_aggressively: bool = False
    use_unique_class_member_names: bool = False
    use_mixed_case_class_names: bool = True
    keep_package_names: PatternListField = _patterns("keep_package_names", True)
    flatten_package_hierarchy: Optional[str] = None
    repackage_classes: Optional[str] = None
    keep_attributes: PatternListField = _patterns("keep_attributes")
    keep_parameter_names: bool = False
    new_source_file_attribute: Optional[str] = None
    adapt_class_strings: PatternListField = _patterns("adapt_class_strings", True)
    keep_kotlin_metadata: bool = False
    adapt_resource_file_names: PatternListField = _patterns("adapt_resource_file_names")
    adapt_resource_file_contents: PatternListField = _patterns("adapt_resource_file_contents")

    # Preverification and signing
    preverify: bool = True
    micro_edition: bool = False
    android: bool = False
    key_stores: Optional[List[Location]] = None
    key_store_passwords: Optional[List[str]] = None
    key_aliases: Optional[List[str]] = None
    key_passwords: Optional[List[str]] = None

    # General
    verbose: bool = False
    note: PatternListField = _patterns("note", True)
    warn: PatternListField = _patterns("warn", True)
    ignore_warnings: bool = False
    print_configuration: Optional[Location] = None
    dump: Optional[Location] = None
    add_configuration_debugging: bool = False

    def pattern_fields(self) -> Dict[str, PatternListField]:
        """Return every pattern list setting by attribute name."""
        return {
            name: value for name, value in vars(self).items() if isinstance(value, PatternListField)
        }

    def specification_lists(self) -> Dict[str, ClassSpecificationList]:
        """Return every rule list setting by attribute name."""
        return {
            name: value
            for name, value in vars(self).items()
            if isinstance(value, ClassSpecificationList)
        }


def internal_class_version(version: str) -> int:
    """Convert "1.8", "8" or "17" to (major << 16) | minor; 0 if unknown."""
    legacy = {
        "1.0": (45, 3),
        "1.1": (45, 3),
        "1.2": (46, 0),
        "1.3": (47, 0),
        "1.4": (48, 0),
        "1.5": (49, 0),
        "1.6": (50, 0),
        "1.7": (51, 0),
        "1.8": (52, 0),
        "1.9": (53, 0),
    }
    if version in legacy:
        major, minor = legacy[version]
    elif version.isdigit() and int(version) >= 5:
        major, minor = 44 + int(version), 0
    else:
        return 0
    return (major << 16) | minor


class ConfigurationSource(NamedTuple):
    """A configuration file location and, if packaged, its resource name."""

    location: Location
    resource_name: Optional[str] = None


class ShrinkTask:
    """Accumulates the configuration of one shrinking run.

    Features:
    - Ordered input/output/library jars with per-entry filters
    - Batching of inputs into outputs
    - Three-state pattern list settings
    - Keep and assumption rules from text or descriptors
    - Switches and report locations with explicit defaults
    """

    def __init__(
        self,
        name: str = "shrink",
        parser: Optional[RuleParser] = None,
        logger: Optional[Logger] = None,
        config: Optional[ConfigManager] = None,
    ):
        """Initialize task.

        Args:
            name: Task name, used as logging context
            parser: Rule-text parser for all rule lists
            logger: Logger, one built from the ambient logging settings by default
            config: Ambient settings, the global config manager by default
        """
        self.name = name
        self.config = config or get_config_manager()
        self.logger = logger or configure_logger(self.config)
        self.parser: RuleParser = parser or SimpleRuleParser()

        self.options = Configuration()
        for rules in self.options.specification_lists().values():
            rules.parser = self.parser

        self.ledger = InputOutputLedger(self.logger)
        self.library_jars = JarEntrySet("library")
        self.configuration_files: List[Location] = []

    # Accumulated jars

    @property
    def in_jar_files(self) -> List[Location]:
        return self.ledger.inputs.entries

    @property
    def in_jar_filters(self) -> List[FilterArgs]:
        return self.ledger.inputs.filters

    @property
    def out_jar_files(self) -> List[Location]:
        return self.ledger.outputs.entries

    @property
    def out_jar_filters(self) -> List[FilterArgs]:
        return self.ledger.outputs.filters

    @property
    def in_jar_counts(self) -> List[int]:
        """Input counts per output; [2, 5] sends inputs 0-1 to output 0 and 2-4 to output 1."""
        return self.ledger.batch_counts

    @property
    def library_jar_files(self) -> List[Location]:
        return self.library_jars.entries

    @property
    def library_jar_filters(self) -> List[FilterArgs]:
        return self.library_jars.filters

    def class_path(self) -> List[ClassPathEntry]:
        """Program class path: input batches, each followed by its output."""
        return self.ledger.class_path()

    def library_class_path(self) -> List[ClassPathEntry]:
        return [ClassPathEntry(entry.location, entry.filter, False) for entry in self.library_jars]

    # Input and output

    def configuration(self, files: Any) -> None:
        """Include configuration files; lists, tuples and sets are flattened."""
        if isinstance(files, (list, tuple, set, frozenset)):
            self.configuration_files.extend(files)
        else:
            self.configuration_files.append(files)

    def configuration_sources(self) -> List[ConfigurationSource]:
        """Classify included configuration files as packaged resources or plain files.

        Locations under the configured resource prefix ("/lib" by default)
        name configuration files shipped with the engine.
        """
        prefix = self.config.get(ConfigKey.CONFIG_PREFIX, DEFAULT_CONFIG_RESOURCE_PREFIX)
        sources = []
        for location in self.configuration_files:
            text = str(location).replace("\\", "/")
            if isinstance(location, (str, Path)) and text.startswith(prefix.rstrip("/") + "/"):
                sources.append(ConfigurationSource(location, text))
            else:
                sources.append(ConfigurationSource(location))
        return sources

    def injars(self, location: Location, filter: FilterArgs = None) -> None:
        """Add an input location with an optional filter mapping."""
        self.ledger.append_input(location, filter)

    def outjars(self, location: Location, filter: FilterArgs = None) -> None:
        """Add an output location; it receives the inputs added since the previous one."""
        self.ledger.append_output(location, filter)

    def libraryjars(self, location: Location, filter: FilterArgs = None) -> None:
        """Add a library location with an optional filter mapping."""
        index = self.library_jars.append(location, filter)
        self.logger.debug("Registered library", index=index, location=location)

    def extra_jar(self, location: Location) -> None:
        self.options.extra_jar = location

    def skipnonpubliclibraryclasses(self) -> None:
        self.options.skip_non_public_library_classes = True

    def dontskipnonpubliclibraryclassmembers(self) -> None:
        self.options.skip_non_public_library_class_members = False

    def keepdirectories(self, filter: Optional[str] = None) -> None:
        self.options.keep_directories.add(filter)

    def target(self, target_class_version: str) -> None:
        self.options.target_class_version = internal_class_version(target_class_version)

    def forceprocessing(self) -> None:
        self.options.last_modified = sys.maxsize

    # Keep rules

    def _keep(
        self,
        family: str,
        specification: Specification,
        members: Optional[MemberDeclarations],
        keep_args: Dict[str, Any],
    ) -> KeepClassSpecification:
        if "condition" in keep_args:
            keep_args["if"] = keep_args.pop("condition")

        if isinstance(specification, str):
            if members is not None:
                raise SpecificationError("Member declarations require a descriptor, not rule text")
            keep = self.options.keep.append_text(specification, family, keep_args or None)
        else:
            descriptor = {**specification, **keep_args}
            keep = self.options.keep.append_descriptor(descriptor, members, family)

        self.logger.debug("Added keep rule", family=family, class_name=keep.class_name)
        return keep

    def keep(
        self, specification: Specification, members=None, **keep_args
    ) -> KeepClassSpecification:
        """Keep classes and class members.

        Args:
            specification: Rule text or class descriptor mapping
            members: Optional callable declaring members on a MemberBlock
            **keep_args: Modifier overrides (allowobfuscation=True, ...) and
                condition="class text" for conditional rules
        """
        return self._keep("keep", specification, members, keep_args)

    def keepclassmembers(
        self, specification: Specification, members=None, **keep_args
    ) -> KeepClassSpecification:
        """Keep class members of classes that are kept anyway."""
        return self._keep("keepclassmembers", specification, members, keep_args)

    def keepclasseswithmembers(
        self, specification: Specification, members=None, **keep_args
    ) -> KeepClassSpecification:
        """Keep classes and members, if all listed members are present."""
        return self._keep("keepclasseswithmembers", specification, members, keep_args)

    def keepnames(
        self, specification: Specification, members=None, **keep_args
    ) -> KeepClassSpecification:
        return self._keep("keepnames", specification, members, keep_args)

    def keepclassmembernames(
        self, specification: Specification, members=None, **keep_args
    ) -> KeepClassSpecification:
        return self._keep("keepclassmembernames", specification, members, keep_args)

    def keepclasseswithmembernames(
        self, specification: Specification, members=None, **keep_args
    ) -> KeepClassSpecification:
        return self._keep("keepclasseswithmembernames", specification, members, keep_args)

    def keepcode(
        self, specification: Specification, members=None, **keep_args
    ) -> KeepClassSpecification:
        return self._keep("keepcode", specification, members, keep_args)

    def _append_rule(
        self,
        rules: ClassSpecificationList,
        specification: Specification,
        members: Optional[MemberDeclarations],
    ) -> ClassSpecification:
        if isinstance(specification, str):
            if members is not None:
                raise SpecificationError("Member declarations require a descriptor, not rule text")
            record = rules.append_text(specification)
        else:
            record = rules.append_descriptor(specification, members)

        self.logger.debug("Added rule", rules=rules.name, class_name=record.class_name)
        return record

    # Shrinking

    def printseeds(self, location: Optional[Location] = None) -> None:
        self.options.print_seeds = STD_OUT if location is None else location

    @property
    def print_seeds_file(self) -> Optional[Path]:
        return optional_file(self.options.print_seeds)

    def dontshrink(self) -> None:
        self.options.shrink = False

    def printusage(self, location: Optional[Location] = None) -> None:
        self.options.print_usage = STD_OUT if location is None else location

    @property
    def print_usage_file(self) -> Optional[Path]:
        return optional_file(self.options.print_usage)

    def whyareyoukeeping(self, specification: Specification, members=None) -> ClassSpecification:
        return self._append_rule(self.options.why_are_you_keeping, specification, members)

    # Optimization

    def dontoptimize(self) -> None:
        self.options.optimize = False

    def optimizations(self, filter: Optional[str]) -> None:
        self.options.optimizations.add(filter)

    def optimizationpasses(self, optimization_passes: int) -> None:
        self.options.optimization_passes = optimization_passes

    def assumenosideeffects(self, specification: Specification, members=None) -> ClassSpecification:
        """Assume the matched methods have no side effects."""
        return self._append_rule(self.options.assume_no_side_effects, specification, members)

    def assumenoexternalsideeffects(
        self, specification: Specification, members=None
    ) -> ClassSpecification:
        return self._append_rule(
            self.options.assume_no_external_side_effects, specification, members
        )

    def assumenoescapingparameters(
        self, specification: Specification, members=None
    ) -> ClassSpecification:
        return self._append_rule(self.options.assume_no_escaping_parameters, specification, members)

    def assumenoexternalreturnvalues(
        self, specification: Specification, members=None
    ) -> ClassSpecification:
        return self._append_rule(
            self.options.assume_no_external_return_values, specification, members
        )

    def assumevalues(self, specification: Specification, members=None) -> ClassSpecification:
        """Assume the matched fields and methods hold the given values."""
        return self._append_rule(self.options.assume_values, specification, members)

    def allowaccessmodification(self) -> None:
        self.options.allow_access_modification = True

    def mergeinterfacesaggressively(self) -> None:
        self.options.merge_interfaces_aggressively = True

    # Obfuscation

    def dontobfuscate(self) -> None:
        self.options.obfuscate = False

    def printmapping(self, location: Optional[Location] = None) -> None:
        self.options.print_mapping = STD_OUT if location is None else location

    @property
    def print_mapping_file(self) -> Optional[Path]:
        return optional_file(self.options.print_mapping)

    def applymapping(self, location: Location) -> None:
        self.options.apply_mapping = location

    def obfuscationdictionary(self, location: Location) -> None:
        self.options.obfuscation_dictionary = location

    def classobfuscationdictionary(self, location: Location) -> None:
        self.options.class_obfuscation_dictionary = location

    def packageobfuscationdictionary(self, location: Location) -> None:
        self.options.package_obfuscation_dictionary = location

    def overloadaggressively(self) -> None:
        self.options.overload_aggressively = True

    def useuniqueclassmembernames(self) -> None:
        self.options.use_unique_class_member_names = True

    def dontusemixedcaseclassnames(self) -> None:
        self.options.use_mixed_case_class_names = False

    def keeppackagenames(self, filter: Optional[str] = None) -> None:
        self.options.keep_package_names.add(filter)

    def flattenpackagehierarchy(self, package: str = "") -> None:
        self.options.flatten_package_hierarchy = internal_class_name(package)

    def repackageclasses(self, package: str = "") -> None:
        self.options.repackage_classes = internal_class_name(package)

    def keepattributes(self, filter: Optional[str] = None) -> None:
        """Keep the named attributes; no argument keeps all of them."""
        self.options.keep_attributes.add(filter)

    def keepparameternames(self) -> None:
        self.options.keep_parameter_names = True

    def renamesourcefileattribute(self, new_source_file_attribute: str = "") -> None:
        self.options.new_source_file_attribute = new_source_file_attribute

    def adaptclassstrings(self, filter: Optional[str] = None) -> None:
        self.options.adapt_class_strings.add(filter)

    def keepkotlinmetadata(self) -> None:
        self.options.keep_kotlin_metadata = True

    def adaptresourcefilenames(self, filter: Optional[str] = None) -> None:
        self.options.adapt_resource_file_names.add(filter)

    def adaptresourcefilecontents(self, filter: Optional[str] = None) -> None:
        self.options.adapt_resource_file_contents.add(filter)

    # Preverification and signing

    def dontpreverify(self) -> None:
        self.options.preverify = False

    def microedition(self) -> None:
        self.options.micro_edition = True

    def android(self) -> None:
        self.options.android = True

    def _extend(self, name: str, value: Any) -> None:
        values = getattr(self.options, name)
        if values is None:
            values = []
            setattr(self.options, name, values)
        values.append(value)

    def keystore(self, location: Location) -> None:
        self._extend("key_stores", location)

    def keystorepassword(self, password: str) -> None:
        self._extend("key_store_passwords", password)

    def keyalias(self, alias: str) -> None:
        self._extend("key_aliases", alias)

    def keypassword(self, password: str) -> None:
        self._extend("key_passwords", password)

    # General

    def verbose(self) -> None:
        self.options.verbose = True

    def dontnote(self, filter: Optional[str] = None) -> None:
        self.options.note.add(filter)

    def dontwarn(self, filter: Optional[str] = None) -> None:
        self.options.warn.add(filter)

    def ignorewarnings(self) -> None:
        self.options.ignore_warnings = True

    def printconfiguration(self, location: Optional[Location] = None) -> None:
        self.options.print_configuration = STD_OUT if location is None else location

    @property
    def print_configuration_file(self) -> Optional[Path]:
        return optional_file(self.options.print_configuration)

    def dump(self, location: Optional[Location] = None) -> None:
        self.options.dump = STD_OUT if location is None else location

    @property
    def dump_file(self) -> Optional[Path]:
        return optional_file(self.options.dump)

    def addconfigurationdebugging(self) -> None:
        self.options.add_configuration_debugging = True

    def write_configuration(self) -> Optional[str]:
        """Write the printed configuration if printconfiguration() was requested.

        Returns:
            The rendered text, or None when nothing was requested
        """
        if self.options.print_configuration is None:
            return None

        from shrinktask.writer import ConfigurationWriter

        with self.logger.add_context(task=self.name):
            return ConfigurationWriter(self.logger).write(self, self.options.print_configuration)

    def __repr__(self) -> str:
        return f"ShrinkTask(name={self.name!r}, ledger={self.ledger!r})"
