#!/usr/bin/env python3
"""Tests for specification records and descriptor builders."""

import pytest

from shrinktask.core.constants import AccessFlag, ErrorCode
from shrinktask.rules.records import (
    KEEP_FAMILIES,
    ClassSpecification,
    KeepClassSpecification,
    MemberSpecification,
    MemberValueSpecification,
    SpecificationError,
    create_class_specification,
    create_keep_class_specification,
    create_member_specification,
    external_type,
    internal_method_descriptor,
    internal_type,
    parameter_list,
    parse_value,
    parse_values,
    required_class_access_flags,
    required_member_access_flags,
    retrieve_boolean,
    split_method_descriptor,
)


class TestTypeConversion:
    """Tests for external/internal type conversion."""

    @pytest.mark.parametrize(
        "external,internal",
        [
            ("int", "I"),
            ("void", "V"),
            ("int[]", "[I"),
            ("java.lang.String", "Ljava/lang/String;"),
            ("java.lang.String[][]", "[[Ljava/lang/String;"),
            ("...", "..."),
            ("%", "%"),
        ],
    )
    def test_internal_type(self, external, internal):
        """Test external types map to descriptors."""
        assert internal_type(external) == internal

    def test_external_type(self):
        """Test descriptors map back to external types."""
        assert external_type("[Ljava/lang/String;") == "java.lang.String[]"
        assert external_type("J") == "long"
        assert external_type("...") == "..."

    def test_method_descriptor(self):
        """Test building a method descriptor."""
        descriptor = internal_method_descriptor("void", ["int", "java.lang.String"])
        assert descriptor == "(ILjava/lang/String;)V"

    def test_split_method_descriptor(self):
        """Test splitting a method descriptor into parameters and return type."""
        parameters, return_descriptor = split_method_descriptor("(I[JLjava/lang/String;...)V")
        assert parameters == ["I", "[J", "Ljava/lang/String;", "..."]
        assert return_descriptor == "V"

    def test_parameter_list(self):
        """Test parameters are split and stripped."""
        assert parameter_list("int, java.lang.String") == ["int", "java.lang.String"]
        assert parameter_list("") == []


class TestAccessFlags:
    """Tests for access flag parsing."""

    def test_class_flags(self):
        """Test set and unset class flags."""
        assert required_class_access_flags(True, "public !final", "interface") == (
            AccessFlag.PUBLIC | AccessFlag.INTERFACE
        )
        assert required_class_access_flags(False, "public !final", "interface") == AccessFlag.FINAL

    def test_negated_class_type(self):
        """Test a negated class type lands in the unset flags."""
        assert required_class_access_flags(True, None, "!enum") == 0
        assert required_class_access_flags(False, None, "!enum") == AccessFlag.ENUM

    def test_comma_separated_modifiers(self):
        """Test modifiers may be separated by commas."""
        assert required_class_access_flags(True, "public,abstract", None) == (
            AccessFlag.PUBLIC | AccessFlag.ABSTRACT
        )

    def test_unknown_class_modifier(self):
        """Test unknown class modifiers raise."""
        with pytest.raises(SpecificationError, match="Incorrect class access modifier"):
            required_class_access_flags(True, "static", None)

    def test_unknown_class_type(self):
        """Test unknown class types raise."""
        with pytest.raises(SpecificationError, match="Incorrect class type"):
            required_class_access_flags(True, None, "record")

    def test_member_flags(self):
        """Test member flags."""
        assert required_member_access_flags(True, "public static !final") == (
            AccessFlag.PUBLIC | AccessFlag.STATIC
        )
        assert required_member_access_flags(False, "public static !final") == AccessFlag.FINAL

    def test_unknown_member_modifier(self):
        """Test unknown member modifiers raise with the input error code."""
        with pytest.raises(SpecificationError) as exc_info:
            required_member_access_flags(True, "sealed")
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT


class TestValues:
    """Tests for constant value parsing."""

    @pytest.mark.parametrize(
        "text,value",
        [("42", 42), ("-7", -7), ("0x1F", 31), ("#ff", 255), ("010", 8), ("0", 0)],
    )
    def test_int_constants(self, text, value):
        """Test integer constants decode like Integer.decode."""
        assert parse_value("int", text) == value

    def test_boolean_constants(self):
        """Test booleans become 0 and 1."""
        assert parse_value("boolean", "false") == 0
        assert parse_value("boolean", "true") == 1
        with pytest.raises(SpecificationError):
            parse_value("boolean", "yes")

    def test_unsupported_type(self):
        """Test long constants are rejected."""
        with pytest.raises(SpecificationError, match="Can't handle"):
            parse_value("long", "1")

    def test_unparsable_int(self):
        """Test garbage integers raise."""
        with pytest.raises(SpecificationError, match="Can't parse"):
            parse_value("int", "abc")

    def test_ranges(self):
        """Test single values and inclusive ranges."""
        assert parse_values("int", "21") == (21,)
        assert parse_values("int", "21..99") == (21, 99)


class TestMemberSpecification:
    """Tests for create_member_specification()."""

    def test_field(self):
        """Test a typed field."""
        member = create_member_specification(
            False, False, False, {"access": "public static", "type": "int", "name": "COUNT"}
        )
        assert type(member) is MemberSpecification
        assert member.name == "COUNT"
        assert member.descriptor == "I"
        assert member.required_set_access_flags == AccessFlag.PUBLIC | AccessFlag.STATIC

    def test_method(self):
        """Test a method with parameters."""
        member = create_member_specification(
            True, False, False, {"type": "void", "name": "run", "parameters": "int,java.lang.String"}
        )
        assert member.descriptor == "(ILjava/lang/String;)V"

    def test_wildcard_method(self):
        """Test a method without type or parameters matches any descriptor."""
        member = create_member_specification(True, False, False, {"name": "get*"})
        assert member.descriptor is None
        assert member.name == "get*"

    def test_constructor(self):
        """Test constructors get the init name and a void descriptor."""
        member = create_member_specification(True, True, False, {"parameters": "int"})
        assert member.name == "<init>"
        assert member.descriptor == "(I)V"

    def test_annotation(self):
        """Test member annotations are converted to descriptors."""
        member = create_member_specification(False, False, False, {"annotation": "com.example.Keep"})
        assert member.annotation_type == "Lcom/example/Keep;"

    def test_value(self):
        """Test values are parsed when allowed."""
        member = create_member_specification(
            False, False, True, {"type": "int", "name": "SDK_INT", "value": "21..99"}
        )
        assert isinstance(member, MemberValueSpecification)
        assert member.values == (21, 99)

    @pytest.mark.parametrize(
        "is_method,is_constructor,allow_values,args,message",
        [
            (True, True, False, {"type": "int"}, "Type attribute not allowed"),
            (True, True, True, {"value": "1"}, "Values attribute not allowed in constructor"),
            (True, False, False, {"type": "void"}, "must always be present in combination"),
            (True, False, False, {"parameters": ""}, "must always be present in combination"),
            (False, False, False, {"parameters": "int"}, "Parameters attribute not allowed"),
            (False, False, False, {"type": "int", "value": "1"}, "not allowed in this class"),
            (False, False, True, {"value": "1"}, "in combination with type attribute"),
        ],
    )
    def test_invalid_combinations(self, is_method, is_constructor, allow_values, args, message):
        """Test invalid attribute combinations raise."""
        with pytest.raises(SpecificationError, match=message):
            create_member_specification(is_method, is_constructor, allow_values, args)


class TestClassSpecification:
    """Tests for create_class_specification() and MemberBlock."""

    def test_descriptor(self):
        """Test all class keys are converted."""
        spec = create_class_specification(
            {
                "access": "public !final",
                "type": "interface",
                "name": "com.example.Api",
                "annotation": "com.example.Keep",
                "implements": "java.io.Serializable",
            }
        )
        assert spec.required_set_access_flags == AccessFlag.PUBLIC | AccessFlag.INTERFACE
        assert spec.required_unset_access_flags == AccessFlag.FINAL
        assert spec.class_name == "com/example/Api"
        assert spec.annotation_type == "Lcom/example/Keep;"
        assert spec.extends_class_name == "java/io/Serializable"

    def test_extends_wins_over_implements(self):
        """Test extends takes precedence over implements."""
        spec = create_class_specification({"extends": "a.B", "implements": "c.D"})
        assert spec.extends_class_name == "a/B"

    def test_empty_descriptor(self):
        """Test an empty descriptor matches any class."""
        spec = create_class_specification({})
        assert spec.class_name is None
        assert spec.required_set_access_flags == 0
        assert spec.field_specifications == []

    def test_nested_members(self):
        """Test members declared in the block are attached."""

        def members(m):
            m.field(type="int", name="count")
            m.constructor(parameters="")
            m.method({"type": "void", "name": "run"}, parameters="int")

        spec = create_class_specification({"name": "com.example.Foo"}, members)
        assert [f.name for f in spec.field_specifications] == ["count"]
        assert [(m.name, m.descriptor) for m in spec.method_specifications] == [
            ("<init>", "()V"),
            ("run", "(I)V"),
        ]

    def test_block_closed_after_declaration(self):
        """Test a member block rejects declarations once closed."""
        captured = []
        create_class_specification({"name": "a.B"}, captured.append)
        block = captured[0]

        for kind in ("field", "method", "constructor"):
            with pytest.raises(SpecificationError, match="nested inside a class specification"):
                getattr(block, kind)(name="x")

    def test_values_require_permission(self):
        """Test nested values follow allow_values."""
        def members(m):
            m.field(type="int", name="x", value="1")

        with pytest.raises(SpecificationError):
            create_class_specification({}, members)
        spec = create_class_specification({}, members, allow_values=True)
        assert spec.field_specifications[0].values == (1,)

    def test_add_members(self):
        """Test adding member records directly."""
        spec = ClassSpecification()
        spec.add_field(MemberSpecification(name="a"))
        spec.add_method(MemberSpecification(name="b"))
        assert len(spec.field_specifications) == 1
        assert len(spec.method_specifications) == 1


class TestKeepClassSpecification:
    """Tests for keep families and modifiers."""

    def test_family_table(self):
        """Test every keep family is present."""
        assert set(KEEP_FAMILIES) == {
            "keep",
            "keepclassmembers",
            "keepclasseswithmembers",
            "keepnames",
            "keepclassmembernames",
            "keepclasseswithmembernames",
            "keepcode",
        }

    @pytest.mark.parametrize("family", sorted(KEEP_FAMILIES))
    def test_family_defaults(self, family):
        """Test families apply their default modifiers."""
        defaults = KEEP_FAMILIES[family]
        keep = create_keep_class_specification(family, None, ClassSpecification(class_name="a/B"))
        assert isinstance(keep, KeepClassSpecification)
        assert keep.class_name == "a/B"
        assert keep.allow_shrinking == defaults.allow_shrinking
        assert keep.mark_classes == defaults.mark_classes
        assert keep.mark_class_members == defaults.mark_class_members
        assert keep.mark_conditionally == defaults.mark_conditionally
        assert keep.mark_code_attributes == defaults.mark_code_attributes
        assert keep.mark_descriptor_classes is False

    def test_keepnames_allows_shrinking(self):
        """Test name-only families allow shrinking."""
        keep = create_keep_class_specification("keepnames", None, ClassSpecification())
        assert keep.allow_shrinking is True
        assert keep.allow_obfuscation is False

    def test_overrides(self):
        """Test keep arguments override defaults."""
        keep = create_keep_class_specification(
            "keepnames",
            {"allowshrinking": False, "allowobfuscation": True, "includedescriptorclasses": True},
            ClassSpecification(),
        )
        assert keep.allow_shrinking is False
        assert keep.allow_obfuscation is True
        assert keep.mark_descriptor_classes is True

    def test_includecode(self):
        """Test includecode marks code attributes."""
        keep = create_keep_class_specification("keep", {"includecode": True}, ClassSpecification())
        assert keep.mark_code_attributes is True

    def test_condition(self):
        """Test the condition is attached."""
        condition = ClassSpecification(class_name="a/C")
        keep = create_keep_class_specification("keep", None, ClassSpecification(), condition)
        assert keep.condition is condition

    def test_members_carried_over(self):
        """Test member patterns move to the keep record."""
        spec = ClassSpecification(class_name="a/B")
        spec.add_field(MemberSpecification(name="x"))
        keep = create_keep_class_specification("keep", None, spec)
        assert keep.field_specifications[0].name == "x"

    def test_retrieve_boolean(self):
        """Test optional boolean lookup."""
        assert retrieve_boolean(None, "x", True) is True
        assert retrieve_boolean({"x": None}, "x", False) is False
        assert retrieve_boolean({"x": 1}, "x", False) is True
