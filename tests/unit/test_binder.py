"""Unit tests for the command binder."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from devtools_inspector.binder import BoundCommand, DomainCommands, bind
from devtools_inspector.bus import EventBus
from devtools_inspector.errors import MissingArgumentError
from devtools_inspector.protocol.schema import ProtocolSchema, load_schema


class RecordingDispatch:
    """Stand-in for Dispatcher.send."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any], Any]] = []
        self.returned = object()

    def __call__(self, method: str, params: dict[str, Any], callback: Any) -> Any:
        self.calls.append((method, params, callback))
        return None if callback else self.returned


@pytest.fixture
def dispatch() -> RecordingDispatch:
    return RecordingDispatch()


@pytest.fixture
def domains(page_schema: ProtocolSchema, dispatch: RecordingDispatch) -> dict[str, DomainCommands]:
    return bind(page_schema, dispatch, bus=EventBus())


class TestBind:
    """Tests for bind()."""

    def test_every_command_is_bound(self, domains: dict[str, DomainCommands]) -> None:
        assert list(domains) == ["Page", "Runtime"]
        assert sorted(domains["Page"]) == ["enable", "navigate"]
        assert isinstance(domains["Page"]["navigate"], BoundCommand)

    def test_attribute_access(self, domains: dict[str, DomainCommands]) -> None:
        assert domains["Page"].navigate is domains["Page"]["navigate"]
        assert "navigate" in dir(domains["Page"])

    def test_unknown_command_attribute(self, domains: dict[str, DomainCommands]) -> None:
        with pytest.raises(AttributeError):
            domains["Page"].nope  # noqa: B018

    def test_domain_metadata(self, domains: dict[str, DomainCommands]) -> None:
        page = domains["Page"]

        assert page.name == "Page"
        assert page.events == ["loadEventFired", "frameNavigated"]
        assert len(page) == 2
        assert repr(page) == "<DomainCommands Page: 2 commands>"

    def test_bound_command_repr(self, domains: dict[str, DomainCommands]) -> None:
        assert repr(domains["Page"].navigate) == "<BoundCommand Page.navigate(url, referrer?)>"

    def test_shadowed_command_name_is_reported(
        self, dispatch: RecordingDispatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        schema = load_schema(
            {"domains": [{"domain": "Cache", "commands": [{"name": "keys"}, {"name": "clear"}]}]}
        )

        with caplog.at_level(logging.WARNING, logger="devtools_inspector.binder"):
            domains = bind(schema, dispatch)

        assert "Cache.keys is shadowed" in caplog.text
        assert "Cache.clear" not in caplog.text
        cache = domains["Cache"]
        assert callable(cache.keys) and not isinstance(cache.keys, BoundCommand)
        assert isinstance(cache["keys"], BoundCommand)
        cache["keys"]()
        assert dispatch.calls[-1][0] == "Cache.keys"


class TestCallingConvention:
    """Positional arguments, keywords and the trailing callback."""

    def test_positional_arguments(
        self, domains: dict[str, DomainCommands], dispatch: RecordingDispatch
    ) -> None:
        result = domains["Page"].navigate("http://example.com", "http://ref")

        assert result is dispatch.returned
        assert dispatch.calls == [
            ("Page.navigate", {"url": "http://example.com", "referrer": "http://ref"}, None)
        ]

    def test_trailing_callable_is_the_callback(
        self, domains: dict[str, DomainCommands], dispatch: RecordingDispatch
    ) -> None:
        def on_done(result: Any) -> None:
            pass

        result = domains["Page"].navigate("http://example.com", on_done)

        assert result is None
        assert dispatch.calls == [("Page.navigate", {"url": "http://example.com"}, on_done)]

    def test_keyword_arguments(
        self, domains: dict[str, DomainCommands], dispatch: RecordingDispatch
    ) -> None:
        domains["Runtime"].evaluate(expression="1 + 1", returnByValue=True)

        assert dispatch.calls[0][1] == {"expression": "1 + 1", "returnByValue": True}

    def test_unset_optional_is_omitted(
        self, domains: dict[str, DomainCommands], dispatch: RecordingDispatch
    ) -> None:
        domains["Page"].navigate("http://example.com", None)

        assert dispatch.calls[0][1] == {"url": "http://example.com"}

    def test_falsy_values_are_sent(
        self, domains: dict[str, DomainCommands], dispatch: RecordingDispatch
    ) -> None:
        domains["Runtime"].evaluate("", False)

        assert dispatch.calls[0][1] == {"expression": "", "returnByValue": False}

    def test_no_parameters(
        self, domains: dict[str, DomainCommands], dispatch: RecordingDispatch
    ) -> None:
        domains["Page"].enable()

        assert dispatch.calls == [("Page.enable", {}, None)]

    def test_surplus_positional_arguments(self, domains: dict[str, DomainCommands]) -> None:
        with pytest.raises(TypeError, match="positional"):
            domains["Page"].enable("unexpected")

    def test_unknown_keyword(self, domains: dict[str, DomainCommands]) -> None:
        with pytest.raises(TypeError, match="bogus"):
            domains["Page"].navigate("http://example.com", bogus=1)

    def test_argument_given_twice(self, domains: dict[str, DomainCommands]) -> None:
        with pytest.raises(TypeError, match="multiple values"):
            domains["Page"].navigate("http://a", url="http://b")


class TestMissingArguments:
    """A missing required parameter is reported; strict mode raises."""

    def test_reported_and_still_sent(
        self,
        domains: dict[str, DomainCommands],
        dispatch: RecordingDispatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="devtools_inspector.binder"):
            domains["Page"].navigate()

        assert "Missing argument: url (in Page.navigate)" in caplog.text
        assert dispatch.calls == [("Page.navigate", {}, None)]

    def test_none_counts_as_missing(
        self, domains: dict[str, DomainCommands], caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="devtools_inspector.binder"):
            domains["Page"].navigate(None)

        assert "Missing argument: url" in caplog.text

    def test_strict_mode_raises_before_sending(
        self, page_schema: ProtocolSchema, dispatch: RecordingDispatch
    ) -> None:
        strict = bind(page_schema, dispatch, strict=True)

        with pytest.raises(MissingArgumentError) as exc_info:
            strict["Page"].navigate()

        assert exc_info.value.parameter == "url"
        assert exc_info.value.method == "Page.navigate"
        assert dispatch.calls == []


class TestDomainEvents:
    """Per-domain on/off go through the bus."""

    def test_on_and_off(self, page_schema: ProtocolSchema, dispatch: RecordingDispatch) -> None:
        bus = EventBus()
        page = bind(page_schema, dispatch, bus=bus)["Page"]
        received: list[Any] = []

        page.on("loadEventFired", received.append)
        bus.publish("Page.loadEventFired", {"timestamp": 1})
        page.off("loadEventFired", received.append)
        bus.publish("Page.loadEventFired", {"timestamp": 2})

        assert received == [{"timestamp": 1}]

    def test_without_bus(self, page_schema: ProtocolSchema, dispatch: RecordingDispatch) -> None:
        page = bind(page_schema, dispatch)["Page"]

        with pytest.raises(RuntimeError):
            page.on("loadEventFired", lambda params: None)
