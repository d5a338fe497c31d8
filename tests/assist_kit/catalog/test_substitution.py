from __future__ import annotations

import pytest

from assist_kit.catalog.substitution import (
    contains_variables,
    get_variables_in_string,
    substitute_string,
    substitute_variables,
    validate_task_variables,
)
from assist_kit.errors import UnresolvedPlaceholder, UnsupportedVariable


class TestSubstituteVariables:
    def test_nested_values_are_substituted(self):
        task = {
            "source": "assets/{tool}/{project-type}/",
            "items": ["{tool}.md", {"nested": "{project-type}"}],
            "count": 3,
        }
        result = substitute_variables(task, "claude", "drupal")
        assert result == {
            "source": "assets/claude/drupal/",
            "items": ["claude.md", {"nested": "drupal"}],
            "count": 3,
        }

    def test_keys_are_left_alone(self):
        result = substitute_variables({"{tool}": "{tool}"}, "claude", None)
        assert result == {"{tool}": "claude"}

    def test_input_is_not_mutated(self):
        task = {"target": ".{tool}/rules", "items": ["{tool}.md"]}
        substitute_variables(task, "cursor", None)
        assert task == {"target": ".{tool}/rules", "items": ["{tool}.md"]}

    def test_missing_project_type_becomes_empty_string(self):
        assert substitute_variables("rules/{project-type}", "claude", None) == "rules/"

    def test_tool_placeholder_without_tool_raises(self):
        with pytest.raises(UnresolvedPlaceholder):
            substitute_variables({"nested": ["x/{tool}"]}, None, "drupal")

    def test_project_only_placeholders_do_not_need_tool(self):
        assert substitute_variables("{project-type}/rules", None, "drupal") == "drupal/rules"

    def test_substitute_string_passes_non_strings_through(self):
        assert substitute_string(42, "claude", None) == 42


class TestVariableDetection:
    def test_contains_variables(self):
        assert contains_variables("a/{tool}")
        assert contains_variables("{project-type}")
        assert not contains_variables("{other}")
        assert not contains_variables(None)

    def test_variables_are_deduplicated_in_order(self):
        assert get_variables_in_string("{b}/{a}/{b}") == ["b", "a"]

    def test_validate_reports_every_unsupported_variable(self):
        task = {"source": "{user}/{tool}", "target": ["{home}", "{user}"]}
        with pytest.raises(UnsupportedVariable) as exc_info:
            validate_task_variables(task)
        assert exc_info.value.variables == ["user", "home"]
        assert "Supported variables: tool, project-type" in str(exc_info.value)

    def test_validate_accepts_supported_variables(self):
        validate_task_variables({"source": "{tool}/{project-type}"})


class TestSubstitutionExamples:
    def test_sentence_with_both_placeholders(self):
        assert substitute_variables("Task for {tool} in {project-type}", "claude", "development") == (
            "Task for claude in development"
        )

    def test_returned_copy_differs_from_input(self):
        task = {"name": "Rules for {tool}"}
        result = substitute_variables(task, "claude", "dev")
        assert task["name"] == "Rules for {tool}"
        assert result["name"] == "Rules for claude"
        assert result is not task
