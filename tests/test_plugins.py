"""Tests for the plugin registry, the call chain and the logging plugin."""

import logging

import pytest
from pydantic import ValidationError

import patternroute.plugins.logging  # noqa: F401
from patternroute import Dispatched, Router
from patternroute.plugins._base_plugin import BasePlugin, PluginConfig, parse_flags

JOURNAL = []


class CapturePlugin(BasePlugin):
    plugin_code = "capture"
    plugin_description = "Records entries and calls"

    def __init__(self, router, **config):
        self.entries = []
        self.calls = []
        super().__init__(router, **config)

    def on_entry(self, entry):
        self.entries.append(entry.name)

    def wrap(self, entry, call_next):
        def wrapper(params):
            self.calls.append((entry.name, list(params)))
            JOURNAL.append(self.name)
            return call_next(params)

        return wrapper

    def describe(self, entry):
        return {"seen": entry.name in self.entries}


class TracePlugin(CapturePlugin):
    plugin_code = "trace"


class TagConfig(PluginConfig):
    tag: str = "none"


class TagPlugin(BasePlugin):
    plugin_code = "tag"
    config_model = TagConfig


Router.register_plugin(CapturePlugin)
Router.register_plugin(TracePlugin)
Router.register_plugin(TagPlugin)


class DummyLogger:
    def __init__(self):
        self.records = []

    def info(self, message):
        self.records.append(message)


def logged_router(**config):
    logger = DummyLogger()
    router = Router("api").plug("logging", logger=logger, **config)
    return router, logger


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_register_plugin_requires_base_plugin_subclass():
    with pytest.raises(TypeError):
        Router.register_plugin(object)  # type: ignore[arg-type]


def test_register_plugin_requires_plugin_code():
    class Anonymous(BasePlugin):
        pass

    with pytest.raises(ValueError, match="defines no plugin_code"):
        Router.register_plugin(Anonymous)


def test_register_plugin_rejects_code_collisions():
    class OtherLogging(BasePlugin):
        plugin_code = "logging"

    with pytest.raises(ValueError, match="already registered by LoggingPlugin"):
        Router.register_plugin(OtherLogging)


def test_register_plugin_under_explicit_name():
    class Alias(CapturePlugin):
        plugin_code = "alias"

    Router.register_plugin(Alias, name="capturealias")

    router = Router().plug("capturealias")
    router.get("/", lambda: None, capturealias_enabled=False)

    assert Router.available_plugins()["capturealias"] is Alias
    assert router.capturealias.name == "capturealias"
    router.dispatch("GET", "/")
    assert router.capturealias.calls == []


def test_plug_unknown_plugin_lists_available_ones():
    with pytest.raises(ValueError, match="Available plugins: .*logging"):
        Router().plug("missing")


def test_plug_requires_a_code():
    with pytest.raises(TypeError):
        Router().plug(CapturePlugin)  # type: ignore[arg-type]


def test_unattached_plugin_attribute_raises():
    with pytest.raises(AttributeError, match="No plugin named 'capture'"):
        Router("api").capture


# ---------------------------------------------------------------------------
# Call chain
# ---------------------------------------------------------------------------


def test_on_entry_runs_for_existing_and_new_entries():
    router = Router()
    router.get("/before-plug", lambda: None)
    router.plug("capture")
    router.get("/after-plug", lambda: None)
    router.before("GET", "/[**]", lambda rest: None, name="catch")

    assert router.capture.entries == ["GET /before-plug", "GET /after-plug", "catch"]
    assert all(entry.plugins == ["capture"] for entry in router.entries())


def test_plugged_late_entries_are_wrapped():
    router = Router()
    router.get("/users/[i]", lambda ident: None, name="user")
    router.plug("capture")

    router.dispatch("GET", "/users/5")

    assert router.capture.calls == [("user", ["5"])]


def test_wrap_sees_params_and_handler_runs():
    seen = []
    router = Router().plug("capture")
    router.get("/users/[i]", lambda ident: seen.append(ident), name="user")

    assert router.dispatch("GET", "/users/5") == Dispatched(1)

    assert seen == ["5"]
    assert router.capture.calls == [("user", ["5"])]


def test_first_plugged_is_outermost():
    JOURNAL.clear()
    router = Router().plug("capture").plug("trace")
    router.get("/", lambda: JOURNAL.append("handler"))

    router.dispatch("GET", "/")

    assert JOURNAL == ["capture", "trace", "handler"]
    assert [plugin.name for plugin in router.iter_plugins()] == ["capture", "trace"]


def test_plugins_wrap_before_routes():
    router = Router().plug("capture")
    router.before("GET", "/admin/[**]", lambda rest: None, name="auth")

    router.dispatch("GET", "/admin/users")

    assert router.capture.calls == [("auth", ["users"])]


def test_plugin_can_be_disabled_for_one_entry():
    calls = []
    router = Router().plug("capture")
    router.get("/a", lambda: calls.append("a"), name="a")
    router.get("/b", lambda: calls.append("b"), name="b")

    router.capture.configure(_target="a", enabled=False)
    router.dispatch("GET", "/a")
    router.dispatch("GET", "/b")

    assert calls == ["a", "b"]
    assert [name for name, _ in router.capture.calls] == ["b"]

    router.capture.configure(_target="a", flags="enabled")
    router.dispatch("GET", "/a")
    assert [name for name, _ in router.capture.calls] == ["b", "a"]


def test_registration_options_go_to_the_plugin():
    router = Router().plug("logging")
    router.get("/", lambda: None, tag="public", logging_before=False)

    entry = router.entries()[0]
    assert entry.metadata == {"tag": "public", "plugin_config": {"logging": {"before": False}}}
    assert router.logging.settings(entry).before is False


def test_invalid_registration_options_are_rejected():
    router = Router().plug("logging")

    with pytest.raises(ValidationError):
        router.get("/", lambda: None, logging_before="maybe")
    assert router.routes() == []


def test_registration_options_are_validated_when_plugged():
    router = Router()
    router.get("/", lambda: None, logging_colour=True)

    with pytest.raises(ValidationError):
        router.plug("logging")
    with pytest.raises(AttributeError):
        router.logging


def test_members_describe_tables_and_plugins():
    router = Router("site").plug("capture")
    router.before("GET", "/", lambda: None, name="warmup")
    router.get("/", lambda: None, name="home")
    router.post("/login", "Auth@login", name="login")

    members = router.members()

    assert members["name"] == "site"
    assert members["router"] is router
    assert [info["name"] for info in members["before"]["GET"]] == ["warmup"]
    assert members["routes"]["POST"][0]["handler"] == "Auth@login"
    home = members["routes"]["GET"][0]["plugins"]["capture"]
    assert home == {"settings": {"enabled": True}, "metadata": {"seen": True}}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def test_parse_flags():
    assert parse_flags("enabled, before:off ,after:ON,") == {
        "enabled": True,
        "before": False,
        "after": True,
    }


def test_configure_is_validated():
    router, _ = logged_router()

    with pytest.raises(ValidationError):
        router.logging.configure(before="maybe")
    with pytest.raises(ValidationError):
        router.logging.configure(colour=True)
    with pytest.raises(ValidationError):
        router.logging.configure(flags="colour")


def test_settings_layers():
    router = Router().plug("tag", tag="router")
    router.get("/a", lambda: None, name="a", tag_tag="registered")
    router.get("/b", lambda: None, name="b")
    router.get("/c", lambda: None, name="c", tag_tag="registered")
    router.tag.configure(_target="c,missing", tag="override")

    a, b, c = router.entries()
    assert router.tag.settings().tag == "router"
    assert router.tag.settings(a).tag == "registered"
    assert router.tag.settings(b).tag == "router"
    assert router.tag.settings(c).tag == "override"


def test_plug_options_become_router_level_settings():
    router, _ = logged_router(after=False)

    assert router.logging.settings().after is False
    assert router.logging.settings().before is True


# ---------------------------------------------------------------------------
# Logging plugin
# ---------------------------------------------------------------------------


def test_logging_plugin_logs_start_and_end():
    router, logger = logged_router()
    router.get("/product/[*]", lambda ident: ident)

    router.dispatch("GET", "/product/0001")

    assert logger.records[0] == "GET /product/([^/]+) start ['0001']"
    assert logger.records[1].startswith("GET /product/([^/]+) end (")
    assert logger.records[1].endswith(" ms)")


def test_logging_plugin_registration_options():
    router, logger = logged_router()
    router.get("/quiet", lambda: None, name="quiet", logging_before=False)
    router.get("/silent", lambda: None, name="silent", logging_flags="enabled:off")

    router.dispatch("GET", "/quiet")
    router.dispatch("GET", "/silent")

    assert len(logger.records) == 1
    assert logger.records[0].startswith("quiet end")


def test_logging_plugin_runtime_toggle():
    router, logger = logged_router()
    router.get("/", lambda: None, name="home")

    router.logging.configure(enabled=False)
    router.dispatch("GET", "/")
    assert logger.records == []

    router.logging.configure(enabled=True)
    router.dispatch("GET", "/")
    assert len(logger.records) == 2


def test_logging_plugin_print_sink(capsys):
    router, logger = logged_router(print=True)
    router.get("/", lambda: None, name="home")

    router.dispatch("GET", "/")

    out = capsys.readouterr().out
    assert "home start []" in out
    assert "home end" in out
    assert logger.records == []


def test_logging_plugin_uses_package_logger_at_info(caplog, capsys):
    router = Router().plug("logging")
    router.get("/", lambda: None, name="home")

    with caplog.at_level(logging.INFO, logger="patternroute"):
        router.dispatch("GET", "/")

    messages = [record.getMessage() for record in caplog.records if record.name == "patternroute"]
    assert messages[0] == "home start []"
    assert all(record.levelno == logging.INFO for record in caplog.records)
    assert capsys.readouterr().out == ""


def test_logging_plugin_without_sinks_is_silent(capsys):
    router, logger = logged_router(log=False)
    router.get("/", lambda: None, name="home")

    router.dispatch("GET", "/")

    assert capsys.readouterr().out == ""
    assert logger.records == []


def test_logging_plugin_skips_end_message_when_handler_raises():
    router, logger = logged_router()

    def failing():
        raise RuntimeError("boom")

    router.get("/", failing, name="home")

    with pytest.raises(RuntimeError):
        router.dispatch("GET", "/")

    assert logger.records == ["home start []"]
