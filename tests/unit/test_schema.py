"""Unit tests for the schema registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from devtools_inspector.errors import SchemaParseError
from devtools_inspector.protocol.schema import (
    CommandDescriptor,
    ProtocolSchema,
    default_schema,
    load_schema,
)


class TestLoadSchema:
    """Tests for load_schema()."""

    def test_domains_in_declaration_order(self, schema_data: dict) -> None:
        """Domains keep the order of the description."""
        schema = load_schema(schema_data)

        assert schema.domain_names == ["Page", "Runtime"]
        assert len(schema) == 2

    def test_parameters_keep_order_and_optionality(self, schema_data: dict) -> None:
        """Parameter order is call order; optional defaults to False."""
        command = load_schema(schema_data).command("Page", "navigate")

        assert command is not None
        assert [p.name for p in command.parameters] == ["url", "referrer"]
        assert [p.optional for p in command.parameters] == [False, True]
        assert command.required == ("url",)
        assert command.method == "Page.navigate"

    def test_members_know_their_domain(self, schema_data: dict) -> None:
        """Commands and events carry the enclosing domain name."""
        schema = load_schema(schema_data)

        event = schema.event("Page", "loadEventFired")
        assert event is not None
        assert event.domain == "Page"
        assert event.method == "Page.loadEventFired"
        assert all(c.domain == "Runtime" for c in schema.domain("Runtime").commands)

    def test_domain_without_commands_or_events(self) -> None:
        """Empty domains are valid."""
        schema = load_schema({"domains": [{"domain": "Empty"}]})

        assert schema.domain("Empty").commands == ()
        assert schema.domain("Empty").events == ()

    def test_parses_json_text(self, schema_data: dict) -> None:
        """JSON strings and bytes are accepted."""
        text = json.dumps(schema_data)

        assert load_schema(text).domain_names == ["Page", "Runtime"]
        assert load_schema(text.encode()).domain_names == ["Page", "Runtime"]

    def test_reads_json_and_yaml_files(self, tmp_path: Path, schema_data: dict) -> None:
        """Paths are read by suffix."""
        json_path = tmp_path / "protocol.json"
        json_path.write_text(json.dumps(schema_data))
        yaml_path = tmp_path / "protocol.yaml"
        yaml_path.write_text(
            "domains:\n"
            "  - domain: Page\n"
            "    commands:\n"
            "      - name: navigate\n"
            "        parameters:\n"
            "          - name: url\n"
        )

        assert load_schema(json_path).domain_names == ["Page", "Runtime"]
        assert load_schema(yaml_path).command("Page", "navigate").required == ("url",)

    def test_schema_instance_passes_through(self, schema_data: dict) -> None:
        """An already-built schema is returned unchanged."""
        schema = load_schema(schema_data)

        assert load_schema(schema) is schema

    def test_type_declarations_are_ignored(self) -> None:
        """Types and refs are accepted but not tracked."""
        schema = load_schema(
            {
                "domains": [
                    {
                        "domain": "DOM",
                        "commands": [
                            {"name": "focus", "parameters": [{"name": "nodeId", "$ref": "NodeId"}]}
                        ],
                    }
                ]
            }
        )

        assert schema.command("DOM", "focus").required == ("nodeId",)

    def test_lookup_of_unknown_names(self, schema_data: dict) -> None:
        """Unknown domains, commands and events return None."""
        schema = load_schema(schema_data)

        assert schema.domain("Nope") is None
        assert schema.command("Page", "nope") is None
        assert schema.event("Nope", "loadEventFired") is None

    def test_descriptors_are_immutable(self, schema_data: dict) -> None:
        """Schema objects are frozen after load."""
        command = load_schema(schema_data).command("Page", "navigate")

        with pytest.raises(ValidationError):
            command.name = "other"  # type: ignore[misc]


class TestMalformedSchema:
    """Malformed descriptions fail with SchemaParseError."""

    def test_not_json(self) -> None:
        with pytest.raises(SchemaParseError):
            load_schema("{not json")

    def test_missing_domains(self) -> None:
        with pytest.raises(SchemaParseError):
            load_schema({"version": {"major": "1"}})

    def test_domains_not_a_list(self) -> None:
        with pytest.raises(SchemaParseError):
            load_schema({"domains": {"Page": {}}})

    def test_top_level_not_a_mapping(self) -> None:
        with pytest.raises(SchemaParseError):
            load_schema("[1, 2, 3]")

    def test_domain_without_name(self) -> None:
        with pytest.raises(SchemaParseError):
            load_schema({"domains": [{"commands": []}]})

    def test_command_without_name(self) -> None:
        with pytest.raises(SchemaParseError):
            load_schema({"domains": [{"domain": "Page", "commands": [{"parameters": []}]}]})

    def test_unreadable_file(self, tmp_path: Path) -> None:
        with pytest.raises(SchemaParseError):
            load_schema(tmp_path / "missing.json")

    def test_schema_parse_error_is_value_error(self) -> None:
        """Callers catching ValueError see schema errors too."""
        with pytest.raises(ValueError):
            load_schema("")


class TestDefaultSchema:
    """Tests for the bundled protocol description."""

    def test_bundled_schema_loads(self) -> None:
        schema = default_schema()

        assert isinstance(schema, ProtocolSchema)
        assert {"Page", "Runtime", "Network", "DOM"} <= set(schema.domain_names)

    def test_bundled_navigate(self) -> None:
        navigate = default_schema().command("Page", "navigate")

        assert isinstance(navigate, CommandDescriptor)
        assert navigate.required == ("url",)

    def test_bundled_schema_is_cached(self) -> None:
        assert default_schema() is default_schema()
