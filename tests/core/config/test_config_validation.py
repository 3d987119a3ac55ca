"""
Tests for check-config and apply-defaults.

Both walk every registered component, collect problems per component and
decide the outcome once at the end.
"""

from keyconf.core.capabilities import StaticCapabilityProvider
from keyconf.core.config.schema import OptionValue
from keyconf.core.config.validation import check_config, force_defaults, missing_required
from keyconf.core.engine import ConfigEngine

from tests.fakes import TOOL_COMPONENTS, TOOL_SCHEMAS


class TestCheckConfig:
    """Tests for ConfigEngine.check_config."""

    def test_unknown_option_is_only_a_warning(self, engine, write_conf):
        """An unknown directive is reported once and does not fail the check."""
        write_conf("toolA", "foobar 1\n")
        write_conf("toolB", "socket S.b\n")

        result = engine.check_config()

        assert result.exit_code == 0
        assert len(result.issues) == 1
        assert result.issues[0].option == "foobar"
        assert not result.issues[0].is_error

    def test_missing_required_option_fails(self, engine):
        result = engine.check_config()

        assert result.failed
        assert [(i.component, i.option) for i in result.issues] == [("toolB", "socket")]

    def test_bad_value_fails(self, engine, write_conf):
        write_conf("toolA", "timeout soon\n")
        write_conf("toolB", "socket S.b\n")

        result = engine.check_config()

        assert result.failed
        assert result.issues[0].line == 1

    def test_check_never_writes(self, engine, homedir, write_conf):
        write_conf("toolB", "socket S.b\n")
        engine.check_config()
        assert not (homedir / "toolA.conf").exists()

    def test_named_rules_file_must_exist(self, engine, tmp_path, write_conf):
        write_conf("toolB", "socket S.b\n")
        result = engine.check_config(tmp_path / "missing.conf")
        assert result.failed

    def test_named_rules_file_checked(self, engine, tmp_path, write_conf):
        write_conf("toolB", "socket S.b\n")
        rules = tmp_path / "site.conf"
        rules.write_text("toolA timeout [change] 45\ntoolC verbose\n")

        result = engine.check_config(rules)

        assert result.failed
        assert [i.line for i in result.issues] == [2]

    def test_unavailable_component_does_not_stop_the_rest(self, settings, write_conf):
        write_conf("toolB", "socket S.b\n")
        engine = ConfigEngine(
            settings,
            components=TOOL_COMPONENTS,
            schemas=TOOL_SCHEMAS,
            capabilities=StaticCapabilityProvider(unavailable=["toolA"]),
        )

        report = check_config(engine.provider)

        assert report.checked == ["toolB"]
        assert [issue.component for issue in report.errors] == ["toolA"]


class TestApplyDefaults:
    """Tests for ConfigEngine.apply_defaults."""

    def test_force_default_written_once(self, engine, write_conf, read_conf):
        write_conf("toolA", "verbose\n")
        write_conf("toolB", "socket S.b\n")

        first = engine.apply_defaults()
        second = engine.apply_defaults()

        assert first.written == ["toolA"]
        assert read_conf("toolA") == "verbose\nmin-len 8\n"
        assert second.written == []
        assert not second.failed

    def test_explicit_value_not_overridden(self, engine, write_conf, read_conf):
        write_conf("toolA", "min-len 12\n")
        write_conf("toolB", "socket S.b\n")

        result = engine.apply_defaults()

        assert result.written == []
        assert read_conf("toolA") == "min-len 12\n"

    def test_change_rules_applied(self, engine, homedir, write_conf, read_conf):
        (homedir / "keyconf.conf").write_text(
            "# site policy\ntoolA timeout [change] 45\ntoolA verbose\n"
        )
        write_conf("toolB", "socket S.b\n")

        engine.apply_defaults()

        assert read_conf("toolA") == "verbose\ntimeout 45\nmin-len 8\n"

    def test_default_rule_removes_directive(self, engine, homedir, write_conf, read_conf):
        (homedir / "keyconf.conf").write_text("toolA timeout [default]\n")
        write_conf("toolA", "timeout 99\n")
        write_conf("toolB", "socket S.b\n")

        engine.apply_defaults()

        assert read_conf("toolA") == "min-len 8\n"

    def test_dry_run_leaves_files_alone(self, make_engine, homedir, write_conf, notifier):
        engine = make_engine(dry_run=True, runtime=True)
        write_conf("toolB", "socket S.b\n")

        result = engine.apply_defaults()

        assert result.written == ["toolA"]
        assert not (homedir / "toolA.conf").exists()
        assert notifier.notified == []

    def test_runtime_notifies_written_components(self, make_engine, write_conf, notifier):
        engine = make_engine(runtime=True)
        write_conf("toolB", "socket S.b\n")

        engine.apply_defaults()

        assert notifier.notified == ["toolA"]

    def test_failure_in_one_component_reported(self, engine):
        """toolB still lacks its required option but toolA gets its defaults."""
        result = engine.apply_defaults()

        assert result.failed
        assert result.written == ["toolA"]


def test_force_defaults_pins_only_unset_options(engine, write_conf):
    write_conf("toolA", "")
    model = engine.provider.retrieve_one(engine.find_component("toolA"))
    model.set_value("timeout", OptionValue.unset())

    assert force_defaults(model) == ["min-len"]
    assert model.value("min-len") == OptionValue.explicit(["8"])
    assert force_defaults(model) == []


def test_missing_required(engine, write_conf):
    write_conf("toolB", "quiet\n")
    model = engine.provider.retrieve_one(engine.find_component("toolB"))
    assert [issue.option for issue in missing_required(model)] == ["socket"]
