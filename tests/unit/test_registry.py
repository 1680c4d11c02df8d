"""
Unit tests for the question type registry.

Uses the in-memory definition store from conftest.
"""

import pytest

from quizcore.errors import (
    DuplicateQuestionTypeError,
    ProtectedQuestionTypeError,
    QuestionTypeConfigError,
    QuestionTypeNotFoundError,
)
from quizcore.question_types import BUILTIN_KEYS, QuestionTypeDefinition, TiersRule, UiTemplate
from quizcore.question_types.registry import sort_question_types, title_sort_key


def _user_type(key, title, template="short_text", metric="compact_text_equal", **extra):
    return {
        "key": key,
        "title": title,
        "uiTemplate": template,
        "scoringRule": {"formula": "exact_match", "mistakeMetric": metric, "correctPoints": 1},
        **extra,
    }


class TestListing:

    def test_builtins_without_stored_rows(self, registry):
        """An empty store still lists the five system types."""
        items = registry.list_global_types()
        assert {item.key for item in items} == BUILTIN_KEYS
        assert all(item.is_system and item.is_active for item in items)

    def test_system_types_first(self, registry):
        registry.create_type(_user_type("aaa", "AAA first alphabetically"))
        items = registry.list_global_types()
        assert [item.is_system for item in items] == [True] * 5 + [False]

    def test_sorted_by_title(self, registry):
        registry.create_type(_user_type("zeta", "Яблоко"))
        registry.create_type(_user_type("alpha", "ёж"))
        registry.create_type(_user_type("beta", "Ель"))
        user_titles = [item.title for item in registry.list_global_types() if not item.is_system]
        assert user_titles == ["ёж", "Ель", "Яблоко"]

    def test_inactive_hidden_by_default(self, registry):
        registry.create_type(_user_type("retired", "Retired"))
        registry.delete_type("retired")
        assert "retired" not in {item.key for item in registry.list_global_types()}
        assert "retired" in {item.key for item in registry.list_global_types(include_inactive=True)}

    def test_stored_builtin_replaces_fallback(self, registry):
        registry.update_type("radio", {"title": "Single choice"})
        radios = [item for item in registry.list_global_types() if item.key == "radio"]
        assert len(radios) == 1
        assert radios[0].title == "Single choice"

    def test_get_by_key(self, registry):
        assert registry.get_by_key("checkbox").ui_template == UiTemplate.MULTI_CHOICE
        assert registry.get_by_key("missing") is None


class TestCreate:

    def test_create(self, registry, sample_type_payload):
        created = registry.create_type(sample_type_payload)
        assert isinstance(created.scoring_rule, TiersRule)
        assert registry.get_by_key("ordering_4") == created

    def test_is_system_forced_false(self, registry):
        created = registry.create_type(_user_type("sneaky", "Sneaky", isSystem=True))
        assert created.is_system is False

    def test_accepts_model(self, registry):
        definition = QuestionTypeDefinition.model_validate(_user_type("from_model", "From model"))
        assert registry.create_type(definition).key == "from_model"

    def test_duplicate_key(self, registry, sample_type_payload):
        registry.create_type(sample_type_payload)
        with pytest.raises(DuplicateQuestionTypeError):
            registry.create_type(sample_type_payload)

    @pytest.mark.parametrize("key", sorted(BUILTIN_KEYS))
    def test_builtin_keys_reserved(self, registry, key):
        with pytest.raises(DuplicateQuestionTypeError):
            registry.create_type(_user_type(key, "Clash"))

    def test_incompatible_metric(self, registry):
        with pytest.raises(QuestionTypeConfigError) as exc_info:
            registry.create_type(_user_type("bad", "Bad", metric="hamming_digits"))
        assert "not compatible" in str(exc_info.value)
        assert exc_info.value.details

    def test_invalid_key(self, registry):
        with pytest.raises(QuestionTypeConfigError):
            registry.create_type(_user_type("Bad Key", "Bad"))

    def test_unknown_template(self, registry):
        with pytest.raises(QuestionTypeConfigError):
            registry.create_type(_user_type("essay", "Essay", template="essay"))


class TestUpdate:

    def test_update_title_and_rule(self, registry, sample_type_payload):
        registry.create_type(sample_type_payload)
        updated = registry.update_type("ordering_4", {
            "title": "Ordering",
            "scoringRule": {"formula": "exact_match", "mistakeMetric": "hamming_digits", "correctPoints": 5},
        })
        assert updated.title == "Ordering"
        assert updated.scoring_rule.correct_points == 5
        assert registry.get_by_key("ordering_4").title == "Ordering"

    def test_absent_fields_kept(self, registry, sample_type_payload):
        registry.create_type(sample_type_payload)
        updated = registry.update_type("ordering_4", {"isActive": False})
        assert updated.description == "Put four steps in the right order"
        assert updated.is_active is False

    def test_explicit_none_clears(self, registry, sample_type_payload):
        registry.create_type(sample_type_payload)
        updated = registry.update_type("ordering_4", {"description": None})
        assert updated.description is None

    def test_template_change_rejected(self, registry, sample_type_payload):
        registry.create_type(sample_type_payload)
        with pytest.raises(QuestionTypeConfigError, match="uiTemplate"):
            registry.update_type("ordering_4", {"uiTemplate": "short_text"})

    def test_same_template_allowed(self, registry, sample_type_payload):
        registry.create_type(sample_type_payload)
        updated = registry.update_type("ordering_4", {"uiTemplate": "sequence_digits", "title": "Same"})
        assert updated.title == "Same"

    def test_key_change_rejected(self, registry, sample_type_payload):
        registry.create_type(sample_type_payload)
        with pytest.raises(QuestionTypeConfigError, match="key"):
            registry.update_type("ordering_4", {"key": "ordering_5"})

    def test_incompatible_rule_rejected(self, registry, sample_type_payload):
        registry.create_type(sample_type_payload)
        with pytest.raises(QuestionTypeConfigError):
            registry.update_type("ordering_4", {
                "scoringRule": {"formula": "exact_match", "mistakeMetric": "set_distance", "correctPoints": 1},
            })

    def test_unknown_key(self, registry):
        with pytest.raises(QuestionTypeNotFoundError):
            registry.update_type("missing", {"title": "x"})

    def test_system_rule_edit_materializes_builtin(self, registry, definition_store):
        updated = registry.update_type("checkbox", {
            "scoringRule": {"formula": "exact_match", "mistakeMetric": "set_distance", "correctPoints": 3},
        })
        assert updated.is_system is True
        assert definition_store.get_by_key("checkbox") == updated

    def test_system_description_protected(self, registry):
        with pytest.raises(ProtectedQuestionTypeError):
            registry.update_type("radio", {"description": "changed"})

    def test_system_can_be_deactivated(self, registry):
        assert registry.update_type("sequence", {"isActive": False}).is_active is False


class TestDelete:

    def test_soft_delete(self, registry, definition_store, sample_type_payload):
        registry.create_type(sample_type_payload)
        retired = registry.delete_type("ordering_4")
        assert retired.is_active is False
        assert definition_store.get_by_key("ordering_4").is_active is False

    @pytest.mark.parametrize("key", sorted(BUILTIN_KEYS))
    def test_system_protected(self, registry, key):
        with pytest.raises(ProtectedQuestionTypeError):
            registry.delete_type(key)

    def test_unknown_key(self, registry):
        with pytest.raises(QuestionTypeNotFoundError):
            registry.delete_type("missing")


class TestOrdering:

    def test_diacritics_and_case_ignored(self):
        assert title_sort_key("Éclair") == title_sort_key("eclair")
        assert title_sort_key("Ёж") == title_sort_key("еж")

    def test_short_i_is_its_own_letter(self, registry):
        assert title_sort_key("Йа") > title_sort_key("Иб")
        assert title_sort_key("Йод") == title_sort_key("йод")
        registry.create_type(_user_type("k_title", "Ка"))
        registry.create_type(_user_type("short_i", "Йа"))
        registry.create_type(_user_type("plain_i", "Иб"))
        items = sort_question_types(registry.list_global_types())
        assert [item.title for item in items if not item.is_system] == ["Иб", "Йа", "Ка"]

    def test_ties_broken_by_key(self, registry):
        registry.create_type(_user_type("b_key", "Same"))
        registry.create_type(_user_type("a_key", "Same"))
        items = sort_question_types(registry.list_global_types())
        assert [item.key for item in items if not item.is_system] == ["a_key", "b_key"]
