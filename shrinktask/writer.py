#!/usr/bin/env python3
"""Printed configuration rendering using Jinja2.

This module writes the settings of a task back out in the classic
option-per-line text format:
- -injars / -outjars in class-path order, -libraryjars after them
- Filters as a parenthesized suffix, archive filters before the file filter
- Switches, values, pattern lists and report locations
- Keep and assumption rules rendered from their records

Example:
    >>> task = ShrinkTask()
    >>> task.injars("in.jar")
    >>> task.outjars("out.jar")
    >>> task.dontoptimize()
    >>> print(ConfigurationWriter().render(task))
    -injars in.jar
    -outjars out.jar
    <BLANKLINE>
    -dontoptimize
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import jinja2

from shrinktask.core.constants import (
    CLASS_ACCESS_MODIFIERS,
    MEMBER_ACCESS_MODIFIERS,
    METHOD_NAME_INIT,
    SHRINKTASK_VERSION,
    STD_OUT,
    AccessFlag,
    ErrorCode,
    FilterArgs,
    FilterKey,
    Location,
    external_class_name,
)
from shrinktask.infrastructure.config_manager import ConfigError
from shrinktask.infrastructure.logger import Logger, get_logger
from shrinktask.rules.patterns import PatternListField
from shrinktask.rules.records import (
    ClassSpecification,
    KeepClassSpecification,
    MemberSpecification,
    MemberValueSpecification,
    external_type,
    split_method_descriptor,
)
from shrinktask.rules.specifications import ClassSpecificationList

if TYPE_CHECKING:
    from shrinktask.task import ShrinkTask

CONFIGURATION_TEMPLATE = """\
{% if header %}# Configuration written by ShrinkTask {{ version }}
{% endif %}
{% for include in includes %}
-include {{ include }}
{% endfor %}
{% for line in jars %}
{{ line }}
{% endfor %}
{% if options %}

{% for line in options %}
{{ line }}
{% endfor %}
{% endif %}
{% for rule in rules %}

{{ rule }}
{% endfor %}
"""

# Options whose values come straight from a pattern list
PATTERN_OPTIONS = (
    ("keep_directories", "-keepdirectories"),
    ("optimizations", "-optimizations"),
    ("keep_package_names", "-keeppackagenames"),
    ("keep_attributes", "-keepattributes"),
    ("adapt_class_strings", "-adaptclassstrings"),
    ("adapt_resource_file_names", "-adaptresourcefilenames"),
    ("adapt_resource_file_contents", "-adaptresourcefilecontents"),
    ("note", "-dontnote"),
    ("warn", "-dontwarn"),
)

# Rule lists in the order they are printed, keep rules first
RULE_OPTIONS = (
    ("why_are_you_keeping", "-whyareyoukeeping"),
    ("assume_no_side_effects", "-assumenosideeffects"),
    ("assume_no_external_side_effects", "-assumenoexternalsideeffects"),
    ("assume_no_escaping_parameters", "-assumenoescapingparameters"),
    ("assume_no_external_return_values", "-assumenoexternalreturnvalues"),
    ("assume_values", "-assumevalues"),
)

CLASS_TYPE_FLAGS = AccessFlag.INTERFACE | AccessFlag.ENUM | AccessFlag.ANNOTATION


def external_class_version(class_version: int) -> str:
    """Convert (major << 16) | minor back to "1.8" or "11"."""
    major = class_version >> 16
    if major <= 52:
        return f"1.{major - 44}"
    return str(major - 44)


def format_location(location: Location) -> str:
    """Render a location, quoting it if it contains separators or spaces."""
    text = str(location)
    if any(c in text for c in " ,;()'"):
        return f'"{text}"'
    return text


def format_filter(filter_args: FilterArgs) -> str:
    """Render a filter mapping as a positional "(...;war;jar;file)" suffix."""
    if not filter_args:
        return ""

    values = [filter_args.get(key) or "" for key in FilterKey.POSITIONAL]
    while values and not values[0]:
        values.pop(0)
    if not values:
        return ""
    return "(" + ";".join(values) + ")"


def _modifiers(flags: int, modifiers: Dict[str, int], negated: bool) -> List[str]:
    words = []
    seen = 0
    for word, flag in modifiers.items():
        if word == "@" or flag & seen or not flags & flag:
            continue
        seen |= flag
        words.append("!" + word if negated else word)
    return words


def format_member(member: MemberSpecification, is_method: bool) -> str:
    """Render one field or method pattern as a body line."""
    words = []
    if member.annotation_type is not None:
        words.append("@" + external_type(member.annotation_type))
    words += _modifiers(member.required_set_access_flags, MEMBER_ACCESS_MODIFIERS, False)
    words += _modifiers(member.required_unset_access_flags, MEMBER_ACCESS_MODIFIERS, True)

    if member.name is None and member.descriptor is None:
        words.append("<methods>" if is_method else "<fields>")
        return " ".join(words) + ";"

    name = member.name if member.name is not None else "*"
    value_type = None

    if not is_method:
        value_type = external_type(member.descriptor) if member.descriptor else "***"
        words += [value_type, name]
    elif member.descriptor is None:
        words += ["***", name + "(...)"]
    else:
        parameters, return_descriptor = split_method_descriptor(member.descriptor)
        arguments = ",".join(external_type(p) for p in parameters)
        if name == METHOD_NAME_INIT:
            words.append(f"{name}({arguments})")
        else:
            value_type = external_type(return_descriptor)
            words += [value_type, f"{name}({arguments})"]

    if isinstance(member, MemberValueSpecification) and member.values:
        words += ["return", _format_values(value_type, member.values)]

    return " ".join(words) + ";"


def _format_values(value_type: Optional[str], values) -> str:
    if value_type == "boolean":
        rendered = ["true" if v else "false" for v in values]
    else:
        rendered = [str(v) for v in values]
    return "..".join(rendered)


def format_class_specification(specification: ClassSpecification) -> str:
    """Render a class pattern with its member body."""
    set_flags = specification.required_set_access_flags
    unset_flags = specification.required_unset_access_flags

    words = []
    if specification.annotation_type is not None:
        words.append("@" + external_type(specification.annotation_type))
    words += _modifiers(set_flags & ~CLASS_TYPE_FLAGS, CLASS_ACCESS_MODIFIERS, False)
    words += _modifiers(unset_flags & ~CLASS_TYPE_FLAGS, CLASS_ACCESS_MODIFIERS, True)

    if set_flags & AccessFlag.ANNOTATION:
        words.append("@interface")
    elif set_flags & AccessFlag.INTERFACE:
        words.append("interface")
    elif set_flags & AccessFlag.ENUM:
        words.append("enum")
    elif unset_flags & AccessFlag.INTERFACE:
        words.append("!interface")
    elif unset_flags & AccessFlag.ENUM:
        words.append("!enum")
    else:
        words.append("class")

    class_name = specification.class_name
    words.append(external_class_name(class_name) if class_name is not None else "*")

    if specification.extends_class_name is not None or specification.extends_annotation_type:
        words.append("implements" if set_flags & AccessFlag.INTERFACE else "extends")
        if specification.extends_annotation_type is not None:
            words.append("@" + external_type(specification.extends_annotation_type))
        extends = specification.extends_class_name
        words.append(external_class_name(extends) if extends is not None else "*")

    text = " ".join(words)

    members = [format_member(m, False) for m in specification.field_specifications]
    members += [format_member(m, True) for m in specification.method_specifications]
    if members:
        text += " {\n" + "".join(f"    {line}\n" for line in members) + "}"

    return text


def format_keep_specification(keep: KeepClassSpecification) -> str:
    """Render a keep rule, preceded by its -if line when conditional."""
    if keep.mark_classes:
        option = "-keep"
    elif keep.mark_conditionally:
        option = "-keepclasseswithmembers"
    else:
        option = "-keepclassmembers"

    for enabled, modifier in (
        (keep.mark_descriptor_classes, "includedescriptorclasses"),
        (keep.mark_code_attributes, "includecode"),
        (keep.allow_shrinking, "allowshrinking"),
        (keep.allow_optimization, "allowoptimization"),
        (keep.allow_obfuscation, "allowobfuscation"),
    ):
        if enabled:
            option += "," + modifier

    text = option + " " + format_class_specification(keep)
    if keep.condition is not None:
        text = "-if " + format_class_specification(keep.condition) + "\n" + text
    return text


def _report(option: str, location: Optional[Location]) -> Optional[str]:
    if location is None:
        return None
    if location is STD_OUT:
        return option
    return f"{option} {format_location(location)}"


class ConfigurationWriter:
    """Renders a task's settings as printed configuration text."""

    def __init__(self, logger: Optional[Logger] = None, header: bool = False, **jinja_options):
        """Initialize writer.

        Args:
            logger: Optional logger, the global logger by default
            header: Whether to start with a version comment line
            **jinja_options: Additional Jinja2 environment options
        """
        self.logger = logger or get_logger()
        self.header = header
        options = {"trim_blocks": True, "lstrip_blocks": True, "keep_trailing_newline": False}
        options.update(jinja_options)
        self._env = jinja2.Environment(**options)
        self._template = self._env.from_string(CONFIGURATION_TEMPLATE)

    def context(self, task: "ShrinkTask") -> Dict[str, Any]:
        """Collect the template context for a task."""
        return {
            "header": self.header,
            "version": SHRINKTASK_VERSION,
            "includes": [format_location(f) for f in task.configuration_files],
            "jars": self._jar_lines(task),
            "options": self._option_lines(task),
            "rules": self._rule_lines(task),
        }

    def _jar_lines(self, task: "ShrinkTask") -> List[str]:
        lines = []
        for entry in task.class_path():
            option = "-outjars" if entry.output else "-injars"
            lines.append(f"{option} {format_location(entry.location)}{format_filter(entry.filter)}")
        for entry in task.library_class_path():
            location = format_location(entry.location)
            lines.append(f"-libraryjars {location}{format_filter(entry.filter)}")
        return lines

    def _option_lines(self, task: "ShrinkTask") -> List[Optional[str]]:
        options = task.options
        lines: List[Optional[str]] = []

        def switch(enabled: bool, option: str) -> None:
            if enabled:
                lines.append(option)

        def patterns(field: PatternListField, option: str) -> None:
            if field.is_set:
                values = [external_class_name(p) if field.convert_class_names else p for p in field]
                lines.append(f"{option} {','.join(values)}" if values else option)

        switch(options.skip_non_public_library_classes, "-skipnonpubliclibraryclasses")
        switch(
            not options.skip_non_public_library_class_members,
            "-dontskipnonpubliclibraryclassmembers",
        )
        if options.target_class_version:
            lines.append(f"-target {external_class_version(options.target_class_version)}")
        switch(options.last_modified == sys.maxsize, "-forceprocessing")

        switch(not options.shrink, "-dontshrink")
        lines.append(_report("-printseeds", options.print_seeds))
        lines.append(_report("-printusage", options.print_usage))

        switch(not options.optimize, "-dontoptimize")
        if options.optimization_passes != 1:
            lines.append(f"-optimizationpasses {options.optimization_passes}")
        switch(options.allow_access_modification, "-allowaccessmodification")
        switch(options.merge_interfaces_aggressively, "-mergeinterfacesaggressively")

        switch(not options.obfuscate, "-dontobfuscate")
        lines.append(_report("-printmapping", options.print_mapping))
        for location, option in (
            (options.apply_mapping, "-applymapping"),
            (options.obfuscation_dictionary, "-obfuscationdictionary"),
            (options.class_obfuscation_dictionary, "-classobfuscationdictionary"),
            (options.package_obfuscation_dictionary, "-packageobfuscationdictionary"),
        ):
            if location is not None:
                lines.append(f"{option} {format_location(location)}")
        switch(options.overload_aggressively, "-overloadaggressively")
        switch(options.use_unique_class_member_names, "-useuniqueclassmembernames")
        switch(not options.use_mixed_case_class_names, "-dontusemixedcaseclassnames")
        for option, package in (
            ("-flattenpackagehierarchy", options.flatten_package_hierarchy),
            ("-repackageclasses", options.repackage_classes),
        ):
            if package is not None:
                lines.append(f"{option} '{external_class_name(package)}'")
        if options.new_source_file_attribute is not None:
            lines.append(f"-renamesourcefileattribute '{options.new_source_file_attribute}'")
        switch(options.keep_parameter_names, "-keepparameternames")
        switch(options.keep_kotlin_metadata, "-keepkotlinmetadata")

        switch(not options.preverify, "-dontpreverify")
        switch(options.micro_edition, "-microedition")
        switch(options.android, "-android")
        for values, option in (
            (options.key_stores, "-keystore"),
            (options.key_store_passwords, "-keystorepassword"),
            (options.key_aliases, "-keyalias"),
            (options.key_passwords, "-keypassword"),
        ):
            for value in values or ():
                lines.append(f"{option} {format_location(value)}")

        switch(options.verbose, "-verbose")
        switch(options.ignore_warnings, "-ignorewarnings")
        lines.append(_report("-printconfiguration", options.print_configuration))
        lines.append(_report("-dump", options.dump))
        switch(options.add_configuration_debugging, "-addconfigurationdebugging")

        for name, option in PATTERN_OPTIONS:
            patterns(getattr(options, name), option)

        return [line for line in lines if line]

    def _rule_lines(self, task: "ShrinkTask") -> List[str]:
        rules = [format_keep_specification(keep) for keep in task.options.keep]
        for name, option in RULE_OPTIONS:
            specifications: ClassSpecificationList = getattr(task.options, name)
            rules += [f"{option} {format_class_specification(s)}" for s in specifications]
        return rules

    def render(self, task: "ShrinkTask") -> str:
        """Render the task's settings as printed configuration text.

        Raises:
            ConfigError: If template rendering fails
        """
        try:
            return self._template.render(**self.context(task)).strip("\n") + "\n"
        except jinja2.TemplateError as e:
            raise ConfigError(f"Template error: {e}", ErrorCode.INTERNAL_ERROR)

    def write(self, task: "ShrinkTask", target: Location = STD_OUT) -> str:
        """Render and write the configuration to a file or standard output.

        Args:
            task: Task to print
            target: File location, or STD_OUT

        Returns:
            The rendered text

        Raises:
            ConfigError: If the file can't be written
        """
        text = self.render(task)

        if target is STD_OUT:
            self.logger.info("Printing configuration to standard output")
            sys.stdout.write(text)
            return text

        path = Path(target)
        self.logger.info("Printing configuration", path=str(path))
        try:
            path.write_text(text, encoding="utf-8")
        except PermissionError as e:
            raise ConfigError(f"Permission denied: {path}", ErrorCode.PERMISSION_DENIED) from e
        except OSError as e:
            raise ConfigError(
                f"Failed to write configuration {path}: {e}", ErrorCode.NOT_FOUND
            ) from e

        return text
