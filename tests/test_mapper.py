"""Tests for msgmap.routing.mapper — ordered dispatch with auth and fallback."""

import logging
import re
import threading
from typing import Any

import pytest

from msgmap.auth import AllowAll
from msgmap.config import MapperConfig
from msgmap.errors import ConfigurationError, TemplateError
from msgmap.message import TextMessage
from msgmap.routing.mapper import MessageMapper
from msgmap.routing.template import MessageTemplate


def _msg(text: str, private: bool = False) -> TextMessage:
    return TextMessage(text, is_private=private, source="alice", replyto="#chan")


class RecordingOracle:
    """Oracle that records every question and denies listed paths."""

    def __init__(self, deny: tuple[str, ...] = ()) -> None:
        self.deny = set(deny)
        self.asked: list[tuple[str, Any, Any]] = []

    def allow(self, auth_path: str, source: Any, replyto: Any) -> bool:
        self.asked.append((auth_path, source, replyto))
        return auth_path not in self.deny


class Plugin:
    name = "karma"

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any, dict[str, Any]]] = []

    def karma(self, message: Any, params: dict[str, Any]) -> None:
        self.calls.append(("karma", message, params))

    def stats(self, message: Any, params: dict[str, Any]) -> None:
        self.calls.append(("stats", message, params))

    def usage(self, message: Any, params: dict[str, Any]) -> None:
        self.calls.append(("usage", message, params))

    def _helper(self, message: Any, params: dict[str, Any]) -> None:
        self.calls.append(("_helper", message, params))


class BarePlugin:
    """Dispatch target without a usage() fallback."""

    name = "bare"

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def bare(self, message: Any, params: dict[str, Any]) -> None:
        self.calls.append(("bare", params))


@pytest.fixture
def oracle() -> RecordingOracle:
    return RecordingOracle()


@pytest.fixture
def plugin() -> Plugin:
    return Plugin()


class TestConstruction:
    def test_identity_from_name_attribute(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        assert MessageMapper(plugin, oracle).identity == "karma"

    def test_identity_override(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        assert MessageMapper(plugin, oracle, name="points").identity == "points"

    def test_missing_identity(self, oracle: RecordingOracle) -> None:
        with pytest.raises(ConfigurationError, match="Can't find auth base"):
            MessageMapper(object(), oracle)

    def test_oracle_required(self, plugin: Plugin) -> None:
        with pytest.raises(ConfigurationError, match="authorization oracle"):
            MessageMapper(plugin, object())  # type: ignore[arg-type]

    def test_fallback_from_config(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle, config=MapperConfig(fallback="stats"))
        assert mapper.fallback == "stats"


class TestRegistry:
    def test_map_returns_compiled_template(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        template = mapper.map("karma for :key")
        assert isinstance(template, MessageTemplate)
        assert mapper.last is template

    def test_order_preserved(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        mapper.map("karma :key", defaults={"key": False})
        mapper.map("karmastats", action="stats")
        assert [t.template for t in mapper] == ["karma for :key", "karma :key", "karmastats"]
        assert len(mapper) == 3

    def test_empty(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        assert mapper.last is None
        assert mapper.templates == ()

    def test_bad_template_rejected(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        with pytest.raises(TemplateError):
            mapper.map("karma :key :key")
        assert len(mapper) == 0

    def test_separator_from_config(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle, config=MapperConfig(separator="/"))
        assert mapper.map("karma for :key").auth_path == "karma/for"

    def test_map_after_dispatch_fails(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        mapper.handle(_msg("karma for bob"))
        assert mapper.frozen
        with pytest.raises(RuntimeError, match="after dispatch has started"):
            mapper.map("karmastats", action="stats")

    def test_fallback_setter_after_freeze_fails(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.fallback = "stats"
        assert mapper.fallback == "stats"
        mapper.freeze()
        with pytest.raises(RuntimeError):
            mapper.fallback = "usage"

    def test_concurrent_registration(self, plugin: Plugin) -> None:
        mapper = MessageMapper(plugin, AllowAll())

        def register(n: int) -> None:
            for i in range(25):
                mapper.map(f"karma t{n}x{i} :key")

        threads = [threading.Thread(target=register, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(mapper) == 100

    def test_missing_action_logged_at_map_time(
        self, plugin: Plugin, oracle: RecordingOracle, caplog: pytest.LogCaptureFixture
    ) -> None:
        mapper = MessageMapper(plugin, oracle)
        with caplog.at_level(logging.DEBUG, logger="msgmap.mapper"):
            mapper.map("karma reset :key", action="reset")
        assert "has no action 'reset'" in caplog.text


class TestHandle:
    def test_dispatches_with_params(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        message = _msg("karma for bob")

        assert mapper.handle(message) is True
        assert plugin.calls == [("karma", message, {"key": "bob"})]
        assert oracle.asked == [("karma::for", "alice", "#chan")]

    def test_action_override(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karmastats", action="stats")

        assert mapper.handle(_msg("karmastats")) is True
        assert plugin.calls[0][0] == "stats"

    def test_first_match_wins(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        mapper.map("karma *rest", action="stats")

        assert mapper.handle(_msg("karma for bob")) is True
        assert [c[0] for c in plugin.calls] == ["karma"]

    def test_later_template_used_when_earlier_does_not_match(
        self, plugin: Plugin, oracle: RecordingOracle
    ) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        mapper.map("karma :key", defaults={"key": False})

        assert mapper.handle(_msg("karma")) is True
        assert plugin.calls[0][2] == {}
        assert mapper.handle(_msg("karma foo")) is True
        assert plugin.calls[1][2] == {"key": "foo"}

    def test_missing_action_skipped(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma reset :key", action="reset")
        mapper.map("karma *rest", action="stats")

        assert mapper.handle(_msg("karma reset bob")) is True
        assert [c[0] for c in plugin.calls] == ["stats"]

    def test_private_names_are_not_actions(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("__init__ :x")
        mapper.map("karma :key", action="_helper")

        assert mapper.handle(_msg("__init__ bob")) is True
        assert mapper.handle(_msg("karma bob")) is True
        assert [c[0] for c in plugin.calls] == ["usage", "usage"]
        assert not mapper.responds_to("__init__")

    def test_responds_to(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        assert mapper.responds_to("stats")
        assert not mapper.responds_to("reset")

    def test_context_restriction_falls_through(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        digits = re.compile(r"^\d+$")
        mapper.map(
            "karma search :channel :limit :string",
            action="stats",
            defaults={"limit": 4},
            requirements={"limit": digits},
            public=False,
        )
        mapper.map(
            "karma search :limit :string",
            defaults={"limit": 4},
            requirements={"limit": digits},
            private=False,
        )

        assert mapper.handle(_msg("karma search 10 foo")) is True
        assert plugin.calls[-1][0] == "karma"
        assert plugin.calls[-1][2] == {"limit": "10", "string": "foo"}

        assert mapper.handle(_msg("karma search #chan foo", private=True)) is True
        assert plugin.calls[-1][0] == "stats"
        assert plugin.calls[-1][2] == {"channel": "#chan", "limit": 4, "string": "foo"}

    def test_handler_exception_propagates(self, oracle: RecordingOracle) -> None:
        class Broken:
            name = "broken"

            def broken(self, message: object, params: dict) -> None:
                raise ValueError("boom")

        mapper = MessageMapper(Broken(), oracle)
        mapper.map("broken")
        with pytest.raises(ValueError, match="boom"):
            mapper.handle(_msg("broken"))


class TestAuthShortCircuit:
    """A denied structural match ends dispatch: later templates are never tried."""

    def test_denied_match_stops_dispatch(self, plugin: Plugin) -> None:
        oracle = RecordingOracle(deny=("karma::for",))
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        mapper.map("karma *rest", action="stats")

        assert mapper.handle(_msg("karma for bob")) is False
        assert plugin.calls == []
        assert [asked[0] for asked in oracle.asked] == ["karma::for"]

    def test_denied_match_does_not_use_fallback(self, plugin: Plugin) -> None:
        oracle = RecordingOracle(deny=("karma::for",))
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")

        assert mapper.handle(_msg("karma for bob")) is False
        assert plugin.calls == []
        assert "usage" not in [asked[0] for asked in oracle.asked]

    def test_oracle_not_asked_for_skipped_templates(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma reset :key", action="reset")
        mapper.map("karma for :key")

        mapper.handle(_msg("karma for bob"))
        assert [asked[0] for asked in oracle.asked] == ["karma::for"]


class TestFallback:
    def test_empty_registry_uses_fallback(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        message = _msg("anything")

        assert mapper.handle(message) is True
        assert plugin.calls == [("usage", message, {})]
        assert oracle.asked == [("usage", "alice", "#chan")]

    def test_no_match_uses_fallback_once(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        mapper.map("karmastats", action="stats")

        assert mapper.handle(_msg("karma of bob")) is True
        assert plugin.calls == [("usage", plugin.calls[0][1], {})]

    def test_fallback_denied(self, plugin: Plugin) -> None:
        mapper = MessageMapper(plugin, RecordingOracle(deny=("usage",)))
        mapper.map("karma for :key")

        assert mapper.handle(_msg("karma of bob")) is False
        assert plugin.calls == []

    def test_fallback_missing_on_target(self, oracle: RecordingOracle) -> None:
        target = BarePlugin()
        mapper = MessageMapper(target, oracle)
        mapper.map("bare :x")

        assert mapper.handle(_msg("something else")) is False
        assert target.calls == []
        assert oracle.asked == []

    def test_fallback_disabled(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle, config=MapperConfig(fallback=None))
        assert mapper.handle(_msg("whatever")) is False
        assert plugin.calls == []

    def test_custom_fallback(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.fallback = "stats"
        assert mapper.handle(_msg("whatever")) is True
        assert plugin.calls[0][0] == "stats"


class TestExplain:
    def test_reports_each_template(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        mapper.map("karma reset :key", action="reset")
        mapper.map("karma *rest")

        report = mapper.explain(_msg("karma reset bob"))
        assert [t.template for t, _ in report] == ["karma for :key", "karma reset :key", "karma *rest"]
        assert "doesn't match" in (report[0][1] or "")
        assert "does not respond to action 'reset'" in (report[1][1] or "")
        assert report[2][1] is None

    def test_no_side_effects(self, plugin: Plugin, oracle: RecordingOracle) -> None:
        mapper = MessageMapper(plugin, oracle)
        mapper.map("karma for :key")
        mapper.explain(_msg("karma for bob"))
        assert plugin.calls == []
        assert oracle.asked == []


class TestLogging:
    def test_explicit_logger(self, plugin: Plugin, oracle: RecordingOracle, caplog: pytest.LogCaptureFixture) -> None:
        log = logging.getLogger("tests.mapper")
        mapper = MessageMapper(plugin, oracle, logger=log)
        mapper.map("karma for :key")
        with caplog.at_level(logging.DEBUG, logger="tests.mapper"):
            mapper.handle(_msg("karma of bob"))
        messages = [r.getMessage() for r in caplog.records if r.name == "tests.mapper"]
        assert any("doesn't match" in m for m in messages)
        assert any("trying fallback" in m for m in messages)
