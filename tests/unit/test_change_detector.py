"""
Unit tests for change detection against an existing translation.
"""
from speranto.core.change_detector import classify, is_unchanged
from speranto.core.parsers.json_tree import JsonParser
from speranto.core.units import TranslationUnit, UnitContext, UnitMember, render_members


def unit(key, values):
    members = [UnitMember(path=(k,), value=v, identity=k) for k, v in values.items()]
    return TranslationUnit(key=key, members=members, rendered_text=render_members(members), context=UnitContext.GROUP)


def json_units(content):
    parser = JsonParser()
    return parser.extract_units(parser.parse(content))


class TestIsUnchanged:

    def test_same_keys(self):
        assert is_unchanged(unit("nav", {"a": "Home"}), unit("nav", {"a": "Inicio"}))

    def test_missing_existing(self):
        assert not is_unchanged(unit("nav", {"a": "Home"}), None)

    def test_different_key(self):
        assert not is_unchanged(unit("nav", {"a": "Home"}), unit("footer", {"a": "Inicio"}))

    def test_member_added(self):
        assert not is_unchanged(unit("nav", {"a": "1", "b": "2"}), unit("nav", {"a": "1"}))

    def test_member_renamed(self):
        assert not is_unchanged(unit("nav", {"a": "1", "c": "2"}), unit("nav", {"a": "1", "b": "2"}))

    def test_member_order_is_ignored(self):
        assert is_unchanged(unit("nav", {"a": "1", "b": "2"}), unit("nav", {"b": "x", "a": "y"}))


class TestClassify:

    def test_no_existing_translation(self):
        source = [unit("a", {"a.x": "1"}), unit("b", {"b.x": "2"})]
        assert classify(source, None).changed == source
        assert classify(source, []).changed == source

    def test_retranslate_marks_everything_changed(self):
        source = [unit("a", {"a.x": "1"})]
        result = classify(source, [unit("a", {"a.x": "uno"})], retranslate=True)
        assert result.changed == source
        assert result.unchanged == []

    def test_partition_keeps_source_order(self):
        source = [unit("a", {"a.x": "1"}), unit("b", {"b.x": "2", "b.y": "3"}), unit("c", {"c.x": "4"})]
        existing = [unit("c", {"c.x": "cuatro"}), unit("b", {"b.x": "dos"}), unit("a", {"a.x": "uno"})]
        result = classify(source, existing)
        assert [u.key for u in result.unchanged] == ["a", "c"]
        assert [u.key for u in result.changed] == ["b"]
        assert result.has_changes

    def test_new_key_in_existing_file(self):
        """A key added to the source only changes the unit it belongs to."""
        source = json_units('{"nav": {"home": "Home", "about": "About"}, "nav.contact": "Contact", "title": "Site"}')
        existing = json_units('{"nav": {"home": "Inicio", "about": "Acerca de"}, "title": "Sitio"}')
        result = classify(source, existing)
        assert [u.key for u in result.changed] == ["nav"]
        assert [u.key for u in result.unchanged] == ["_ungrouped"]

    def test_changed_value_is_not_retranslated(self):
        """Only structure is compared: editing an English value keeps the old translation."""
        source = json_units('{"nav": {"home": "Homepage"}}')
        existing = json_units('{"nav": {"home": "Inicio"}}')
        result = classify(source, existing)
        assert result.changed == []
        assert not result.has_changes

    def test_changed_value_with_retranslate(self):
        source = json_units('{"nav": {"home": "Homepage"}}')
        existing = json_units('{"nav": {"home": "Inicio"}}')
        assert classify(source, existing, retranslate=True).has_changes

    def test_removed_unit_is_a_change(self):
        source = [unit("a", {"a.x": "1"}), unit("c", {"c.x": "3"})]
        existing = [unit("a", {"a.x": "uno"}), unit("b", {"b.x": "dos"}), unit("c", {"c.x": "tres"})]
        result = classify(source, existing)
        assert result.changed == []
        assert [u.key for u in result.unchanged] == ["a", "c"]
        assert result.removed == ["b"]
        assert result.has_changes
