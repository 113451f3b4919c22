import textwrap

import pytest

from temporalkit.commandsgen.model import (
    ANSI_BOLD,
    ANSI_RESET,
    Command,
    CommandSpecError,
    Option,
    OptionSet,
    parse_commands,
)

SPEC = textwrap.dedent(
    """\
    option-sets:
      - name: client
        description: Client options.
        options:
          - name: address
            type: string
            description: |
              Server
              address.
            env: TEMPORAL_ADDRESS
    commands:
      - name: temporal workflow list
        summary: List workflows
        description: |
          List `workflows`, see [docs](docs/list.md).
        option-sets: [client]
        options:
          - name: limit
            type: int
            description: Maximum number of results.
            default: 10
      - name: temporal
        summary: Root command
        description: The root command.
      - name: temporal workflow
        summary: Work with workflows
        description: |
          Run:
          ```
          temporal workflow list
          ```
        docs:
          keywords: [workflow, workflow list]
          description-header: Workflow commands
    """
)


def test_commands_are_sorted_by_full_name():
    spec = parse_commands(SPEC)
    assert [c.full_name for c in spec.commands] == [
        "temporal",
        "temporal workflow",
        "temporal workflow list",
    ]


def test_name_path_and_scalar_conversion():
    spec = parse_commands(SPEC)
    listing = spec.commands[2]
    assert listing.name_path == ["temporal", "workflow", "list"]
    assert listing.options[0].default == "10"
    assert listing.option_sets == ["client"]


def test_descriptions_plain_and_highlighted():
    listing = parse_commands(SPEC).commands[2]
    assert listing.description == "List `workflows`, see [docs](docs/list.md)."
    assert listing.description_plain == "List `workflows`, see docs."
    assert listing.description_highlighted == (
        "List " + ANSI_BOLD + "workflows" + ANSI_RESET + ", see docs."
    )


def test_block_code_is_highlighted():
    workflow = parse_commands(SPEC).commands[1]
    assert workflow.description_highlighted == (
        "Run:\n" + ANSI_BOLD + "temporal workflow list" + ANSI_RESET
    )
    assert workflow.docs.keywords == ["workflow", "workflow list"]


def test_option_description_newlines_replaced():
    spec = parse_commands(SPEC)
    assert spec.option_sets[0].options[0].description == "Server address."


def test_crlf_is_accepted():
    spec = parse_commands(SPEC.replace("\n", "\r\n"))
    assert spec.option_sets[0].options[0].env == "TEMPORAL_ADDRESS"


def test_command_relations():
    spec = parse_commands(SPEC)
    root, workflow, listing = spec.commands
    assert listing.is_subcommand(workflow)
    assert not listing.is_subcommand(root)
    assert workflow.is_subcommand(root)
    assert listing.depth() == 2
    assert listing.leaf_name() == "list"
    assert listing.file_name() == "workflow"
    assert root.file_name() == ""


def test_invalid_yaml():
    with pytest.raises(CommandSpecError, match="failed unmarshalling yaml"):
        parse_commands("commands: [unclosed")


def _command(**overrides):
    values = dict(full_name="temporal", summary="Root", description="Root command.")
    values.update(overrides)
    return Command(**values)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"full_name": ""}, "missing command name"),
        ({"summary": ""}, "missing summary for command"),
        ({"summary": "Root."}, "summary should not end in a '.'"),
        ({"maximum_args": 1, "exact_args": 1}, "cannot have both maximum-args and exact-args"),
        ({"description": ""}, "missing description for command: temporal"),
        ({"full_name": "temporal env"}, "missing keywords for root command: temporal env"),
    ],
)
def test_command_validation_errors(overrides, message):
    with pytest.raises(CommandSpecError, match=message):
        _command(**overrides).process()


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": ""}, "missing option name"),
        ({"type": ""}, "missing option type"),
        ({"description": ""}, "missing description for option: color"),
        ({"description": "No period"}, "description should end in a '.'"),
        ({"env": "lower"}, "env variables must be in all caps"),
        ({"type": "string", "enum_values": ["a"]}, "enum-values can only specified"),
        (
            {"type": "string-enum", "enum_values": ["a", "b"], "default": "c"},
            r"default value 'c' must be one of the enum-values options \[a b\]",
        ),
    ],
)
def test_option_validation_errors(overrides, message):
    values = dict(name="color", type="bool", description="Use color.")
    values.update(overrides)
    with pytest.raises(CommandSpecError, match=message):
        Option(**values).process()


def test_option_set_requires_name_and_wraps_option_errors():
    with pytest.raises(CommandSpecError, match="missing option set name"):
        OptionSet().process()
    bad = OptionSet(name="s", options=[Option(name="x", type="int", description="Bad")])
    with pytest.raises(CommandSpecError, match="failed parsing option 'x'"):
        bad.process()


def test_parse_wraps_section_errors():
    text = "commands:\n  - name: temporal\n    summary: Root\n"
    with pytest.raises(CommandSpecError, match='failed parsing command section "temporal"'):
        parse_commands(text)