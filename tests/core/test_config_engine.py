"""
Tests for the ConfigEngine facade.

Covers the option listing record format and the errors the engine raises
for the CLI to turn into exit codes.
"""

import pytest

from keyconf.core.capabilities import ReportedOption
from keyconf.core.config.schema import OptionFlag
from keyconf.core.engine import OperationResult
from keyconf.utils.error_handling import (
    ComponentUnavailableError,
    Issue,
    NotFoundError,
    Severity,
    ValidationError,
)


def _records(engine, component="toolA"):
    return {record.split(":", 1)[0]: record for record in engine.list_options(engine.find_component(component)).records}


class TestListOptions:
    """Tests for ConfigEngine.list_options."""

    def test_records_follow_schema_order(self, engine):
        result = engine.list_options(engine.find_component("toolA"))
        names = [record.split(":", 1)[0] for record in result.records]
        assert names == ["verbose", "keyserver", "group", "timeout", "min-len", "locked", "ks"]
        assert result.exit_code == 0

    def test_unset_options(self, engine):
        records = _records(engine)
        assert records["verbose"] == "verbose:0:basic:verbose:flag:::"
        assert records["timeout"] == "timeout:18:expert:timeout%3a seconds:integer:N:30:"
        assert records["min-len"] == "min-len:50:expert:minimal length:integer:N:8:"
        assert records["locked"] == "locked:130:invisible:cannot change:string:::"

    def test_alias_names_its_target(self, engine):
        assert _records(engine)["ks"] == "ks:0:invisible::alias:keyserver::"

    def test_current_values(self, engine, write_conf):
        write_conf("toolA", "verbose\nks hkps://x\ngroup x\ngroup a,b\ntimeout 45\n")
        records = _records(engine)
        assert records["verbose"].endswith(":flag:::1")
        assert records["keyserver"] == "keyserver:2:basic:use this keyserver:string:URL::hkps%3a//x"
        assert records["group"] == "group:6:advanced:set up email aliases:list:SPEC::x,a%2cb"
        assert records["timeout"].endswith(":N:30:45")

    def test_undecodable_bytes_escaped(self, engine, homedir):
        (homedir / "toolA.conf").write_bytes(b"# Schl\xfcssel\nkeyserver caf\xe9\n")
        result = engine.list_options(0)
        assert not result.failed
        assert _records(engine)["keyserver"].endswith(":URL::caf%e9")

    def test_reported_flags_and_defaults_listed(self, engine, capabilities):
        capabilities.reports["toolA"] = {
            "verbose": ReportedOption(OptionFlag.RUNTIME),
            "keyserver": ReportedOption(OptionFlag.DEFAULT, "hkp://d"),
        }
        records = _records(engine)
        assert records["verbose"].startswith("verbose:8:")
        assert records["keyserver"] == "keyserver:18:basic:use this keyserver:string:URL:hkp%3a//d:"

    def test_list_default_keeps_its_items(self, engine, capabilities):
        capabilities.reports["toolA"] = {"group": ReportedOption(OptionFlag.DEFAULT, "a,b")}
        records = _records(engine)
        assert records["group"] == "group:22:advanced:set up email aliases:list:SPEC:a,b:"

    def test_global_no_change_rule_listed(self, engine, homedir):
        (homedir / "keyconf.conf").write_text("toolA keyserver [no-change]\n")
        assert _records(engine)["keyserver"].startswith("keyserver:130:")

    def test_syntax_problems_do_not_fail_listing(self, engine, write_conf):
        write_conf("toolA", "foobar 1\ntimeout soon\n")
        result = engine.list_options(0)
        assert not result.failed
        assert len(result.records) == 7

    def test_broken_global_rules_fail(self, engine, homedir):
        (homedir / "keyconf.conf").write_text("toolA nope\n")
        with pytest.raises(ValidationError):
            engine.list_options(0)

    def test_unavailable_component(self, engine, capabilities):
        capabilities.unavailable.add("toolB")
        with pytest.raises(ComponentUnavailableError):
            engine.list_options(1)


def test_find_component_unknown(engine):
    with pytest.raises(NotFoundError):
        engine.find_component("toolC")


def test_operation_result_exit_code():
    warning = Issue("toolA", "unknown option", severity=Severity.WARNING)
    assert OperationResult(issues=[warning]).exit_code == 0
    assert OperationResult(issues=[warning, Issue("toolA", "bad")]).exit_code == 1
