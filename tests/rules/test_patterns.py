#!/usr/bin/env python3
"""Tests for three-state pattern lists."""

import pytest

from shrinktask.rules.patterns import PatternListField, PatternState, comma_separated_list


class TestCommaSeparatedList:
    """Tests for comma_separated_list()."""

    def test_splits_in_order(self):
        """Test tokens come back in order."""
        assert comma_separated_list("a,b,c") == ["a", "b", "c"]

    def test_no_trimming(self):
        """Test whitespace around tokens is preserved."""
        assert comma_separated_list(" a, b") == [" a", " b"]

    def test_empty_tokens_kept(self):
        """Test empty tokens survive splitting."""
        assert comma_separated_list("a,,b,") == ["a", "", "b", ""]
        assert comma_separated_list("") == [""]


class TestPatternListField:
    """Tests for PatternListField."""

    def test_starts_unset(self):
        """Test a new field has no value."""
        field = PatternListField("keep_attributes")
        assert field.value is None
        assert field.state == PatternState.UNSET
        assert not field.is_set
        assert len(field) == 0
        assert list(field) == []

    def test_add_on_unset_field(self):
        """Test adding to an unset field creates the list."""
        field = PatternListField()
        field.add("a,b,c")
        assert field.value == ["a", "b", "c"]
        assert field.state == PatternState.POPULATED

    def test_add_accumulates(self):
        """Test successive adds append in call order."""
        field = PatternListField()
        field.add("p1")
        field.add("p2")
        assert field.value == ["p1", "p2"]

    def test_duplicates_kept(self):
        """Test duplicate patterns are not collapsed."""
        field = PatternListField()
        field.add("a,a")
        field.add("a")
        assert field.value == ["a", "a", "a"]

    def test_reset_after_add(self):
        """Test reset clears a populated list."""
        field = PatternListField()
        field.add("p1")
        field.add("p2")
        field.reset()
        assert field.value == []
        assert field.state == PatternState.EMPTY
        assert field.is_set

    def test_reset_on_unset_field(self):
        """Test reset on an unset field yields an empty list."""
        field = PatternListField()
        field.reset()
        assert field.value == []

    def test_reset_is_idempotent(self):
        """Test repeated resets keep an empty, non-None list."""
        field = PatternListField()
        for _ in range(3):
            field.reset()
            assert field.value == []

    def test_reset_keeps_list_identity(self):
        """Test reset clears the same list object in place."""
        field = PatternListField()
        field.add("a")
        patterns = field.value
        field.reset()
        assert field.value is patterns
        field.add("b")
        assert patterns == ["b"]

    def test_add_none_resets(self):
        """Test add(None) behaves like reset()."""
        field = PatternListField()
        field.add("a,b")
        field.add(None)
        assert field.value == []

    def test_add_empty_string(self):
        """Test an empty filter adds one empty pattern."""
        field = PatternListField()
        field.add("")
        assert field.value == [""]

    @pytest.mark.parametrize(
        "calls",
        [
            ["a"],
            ["a,b", "c"],
            ["x,,y", "", "z,"],
        ],
    )
    def test_length_is_token_count(self, calls):
        """Test the list length equals the total token count of all adds."""
        field = PatternListField()
        for spec in calls:
            field.add(spec)
        assert len(field) == sum(len(spec.split(",")) for spec in calls)

    def test_class_name_conversion(self):
        """Test dotted class names are converted when enabled."""
        field = PatternListField("keep_package_names", convert_class_names=True)
        field.add("com.example.**,org.sample")
        assert field.value == ["com/example/**", "org/sample"]

    def test_no_conversion_by_default(self):
        """Test patterns are stored verbatim by default."""
        field = PatternListField("keep_attributes")
        field.add("Exceptions,InnerClasses")
        field.add("com.example")
        assert field.value == ["Exceptions", "InnerClasses", "com.example"]

    def test_bool(self):
        """Test truthiness reflects whether patterns are present."""
        field = PatternListField()
        assert not field
        field.reset()
        assert not field
        field.add("a")
        assert field

    def test_repr(self):
        """Test repr shows the name and patterns."""
        field = PatternListField("note")
        field.add("a")
        assert repr(field) == "PatternListField(name='note', patterns=['a'])"
