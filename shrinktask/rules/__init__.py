"""ShrinkTask Rules System.

This module provides the rule-like settings of the task:
- PatternListField: Three-state comma-separated pattern lists
- ClassSpecificationList / KeepSpecificationList: Ordered rule records
- SimpleRuleParser: Rule text to class specification records

Rules are only collected here; matching them against classes is the
engine's job.
"""

from .parser import RuleParser, SimpleRuleParser
from .patterns import PatternListField, PatternState, comma_separated_list
from .records import (
    KEEP_FAMILIES,
    ClassSpecification,
    KeepClassSpecification,
    MemberBlock,
    MemberSpecification,
    MemberValueSpecification,
    SpecificationError,
    create_class_specification,
    create_member_specification,
)
from .specifications import ClassSpecificationList, KeepSpecificationList

__all__ = [
    # Pattern lists
    "PatternState",
    "PatternListField",
    "comma_separated_list",
    # Records
    "ClassSpecification",
    "KeepClassSpecification",
    "MemberSpecification",
    "MemberValueSpecification",
    "MemberBlock",
    "SpecificationError",
    "KEEP_FAMILIES",
    "create_class_specification",
    "create_member_specification",
    # Lists and parsing
    "ClassSpecificationList",
    "KeepSpecificationList",
    "RuleParser",
    "SimpleRuleParser",
]
