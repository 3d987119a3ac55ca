"""Tests for the global rules file parser."""

import pytest

from keyconf.core.config.global_rules import RuleFlag, load_rules, parse_rules
from keyconf.core.config.schema import OptionValue
from keyconf.core.registry import ComponentRegistry
from keyconf.utils.error_handling import ConfigFileError

from tests.fakes import TOOL_COMPONENTS, TOOL_SCHEMAS


@pytest.fixture
def registry(settings):
    return ComponentRegistry(settings, TOOL_COMPONENTS)


def _parse(text, registry):
    return parse_rules(text, registry, TOOL_SCHEMAS)


class TestParseRules:
    """Tests for parse_rules."""

    def test_flags_and_values(self, registry):
        ruleset = _parse(
            "# comment\n"
            "\n"
            "toolA timeout [change] 45\n"
            "toolA verbose\n"
            "toolA keyserver   [no-change]\n"
            "toolB socket [default]\n",
            registry,
        )

        assert ruleset.issues == []
        assert [(r.line, r.option, r.flag) for r in ruleset.rules] == [
            (3, "timeout", RuleFlag.CHANGE),
            (4, "verbose", RuleFlag.CHANGE),
            (5, "keyserver", RuleFlag.NO_CHANGE),
            (6, "socket", RuleFlag.DEFAULT),
        ]
        assert ruleset.rules[0].resolved == OptionValue.explicit(["45"])
        assert ruleset.rules[1].resolved == OptionValue.explicit()

    def test_value_without_flag_means_change(self, registry):
        ruleset = _parse("toolA keyserver hkps://keys.example.org\n", registry)
        assert ruleset.rules[0].flag is RuleFlag.CHANGE
        assert ruleset.rules[0].resolved.values == ("hkps://keys.example.org",)

    def test_list_value_split(self, registry):
        ruleset = _parse("toolA group [change] a,b\n", registry)
        assert ruleset.rules[0].resolved.values == ("a", "b")

    def test_line_numbers_count_newlines_only(self, registry):
        ruleset = _parse("# page\x0cbreak\u2028\ntoolA verbose\n", registry)
        assert ruleset.issues == []
        assert [r.line for r in ruleset.rules] == [2]

    @pytest.mark.parametrize(
        "line,message",
        [
            ("toolA\n", "expected <component> <option> [flag] [value]"),
            ("toolA timeout [sometimes] 4\n", "invalid flag '[sometimes]'"),
            ("toolA timeout [change 4\n", "invalid flag '[change 4]'"),
            ("toolC verbose\n", "unknown component 'toolC'"),
            ("toolA nope\n", "unknown option for component 'toolA'"),
            ("toolA verbose [change] yes\n", "flag option does not take a value"),
            ("toolA timeout [change]\n", "missing value for [change] rule"),
            ("toolA timeout [change] soon\n", "invalid integer value 'soon'"),
            ("toolA timeout [default] 4\n", "[default] rule does not take a value"),
            ("toolA timeout [no-change] 4\n", "[no-change] rule does not take a value"),
        ],
    )
    def test_invalid_rules(self, registry, line, message):
        ruleset = _parse("# header\n" + line, registry)
        assert ruleset.failed
        assert ruleset.rules == []
        assert [(issue.line, issue.message) for issue in ruleset.issues] == [(2, message)]

    def test_alias_rule_applies_to_target(self, registry, engine, write_conf):
        write_conf("toolA", "")
        model = engine.provider.retrieve_one(0)
        ruleset = _parse("toolA ks [no-change]\ntoolA ks other\n", registry)

        ruleset.lock(model)
        ruleset.apply(model)

        assert "keyserver" in model.locked
        assert model.value("keyserver").values == ("other",)

    def test_rules_for_other_components_ignored(self, registry, engine, write_conf):
        write_conf("toolA", "")
        model = engine.provider.retrieve_one(0)
        ruleset = _parse("toolB quiet\n", registry)

        ruleset.apply(model)

        assert model.changed == []


class TestLoadRules:
    """Tests for load_rules."""

    def test_missing_default_file_is_empty(self, registry, tmp_path):
        ruleset = load_rules(tmp_path / "keyconf.conf", registry, TOOL_SCHEMAS)
        assert ruleset.rules == []
        assert not ruleset.failed

    def test_missing_named_file_raises(self, registry, tmp_path):
        with pytest.raises(ConfigFileError):
            load_rules(tmp_path / "site.conf", registry, TOOL_SCHEMAS, required=True)

    def test_issues_labelled_with_file_name(self, registry, tmp_path):
        path = tmp_path / "site.conf"
        path.write_text("toolC verbose\n")

        ruleset = load_rules(path, registry, TOOL_SCHEMAS)

        assert ruleset.path == path
        assert ruleset.issues[0].component == "site.conf"
