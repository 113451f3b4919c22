import textwrap

import pytest

from temporalkit.commandsgen.docs import encode_json_example, generate_docs_files
from temporalkit.commandsgen.model import Command, Commands, CommandSpecError, parse_commands

SPEC = textwrap.dedent(
    """\
    option-sets:
      - name: client
        description: Client options.
        options:
          - name: namespace
            type: string
            short: n
            description: Namespace to use.
            default: default
    commands:
      - name: temporal
        summary: Root command
        description: The root command.
        options:
          - name: address
            type: string
            description: Server address.
      - name: temporal workflow
        summary: Work with workflows
        description: Workflow commands.
        option-sets: [client]
        docs:
          keywords: [workflow, workflow list]
          description-header: Workflow commands
      - name: temporal workflow list
        summary: List workflows
        description: List workflows.
        options:
          - name: query
            type: string
            description: Query to filter by.
            required: true
          - name: limit
            type: int
            description: Maximum number of results.
          - name: mode
            type: string-enum
            description: Output mode.
            enum-values: [text, json]
            experimental: true
      - name: temporal workflow show
        summary: Show a workflow
        description: Show workflow history.
        options:
          - name: memo
            type: string
            description: Memo such as 'Key={"a": 1}' to attach.
    """
)


@pytest.fixture
def page():
    files = generate_docs_files(parse_commands(SPEC))
    assert set(files) == {"workflow"}
    return files["workflow"]


def test_front_matter(page):
    assert page.startswith(
        "---\nid: workflow\ntitle: temporal workflow\n"
        "sidebar_label: temporal workflow\ndescription: Workflow commands\n"
        "toc_max_heading_level: 4\n"
    )
    assert "keywords:\n  - workflow\n  - workflow list\n" in page
    assert "tags:\n  - workflow\n  - workflow-list\n---\n\n" in page


def test_subcommand_sections(page):
    assert "## list\n\nList workflows.\n\n" in page
    assert "## show\n\nShow workflow history.\n\n" in page
    assert page.count("Use the following options to change the behavior of this command.") == 2


def test_flags_are_sorted_and_annotated(page):
    list_section = page[page.index("## list"):page.index("## show")]
    flags = list_section[list_section.index("**Flags:**"):list_section.index("**Global Flags:**")]
    assert flags.index("**--limit**") < flags.index("**--mode**") < flags.index("**--query**")
    assert "Query to filter by. Required." in flags
    assert "Output mode. Accepted values: text, json." in flags
    assert ":::note\n\nOption is experimental.\n\n:::\n\n" in flags


def test_global_flags_include_parent_options(page):
    list_section = page[page.index("## list"):page.index("## show")]
    global_flags = list_section[list_section.index("**Global Flags:**"):]
    assert global_flags.index("**--address**") < global_flags.index("**--namespace**")
    assert '**--namespace**, **-n** _string_\n\nNamespace to use. (default "default")' in global_flags


def test_sibling_options_do_not_leak(page):
    show_section = page[page.index("## show"):]
    assert "--query" not in show_section
    assert "--memo" in show_section
    assert "`'Key={\"a\": 1}'`" in show_section


def test_encode_json_example():
    text = "Set 'YourKey={\"your\": \"value\"}' here."
    assert encode_json_example(text) == "Set `'YourKey={\"your\": \"value\"}'` here."
    assert encode_json_example("Plain text.") == "Plain text."


def test_missing_root_command_is_an_error():
    orphan = Command(full_name="temporal env get", summary="Get", description="Get.")
    orphan.process()
    with pytest.raises(CommandSpecError, match="failed writing docs for command temporal env get"):
        generate_docs_files(Commands(commands=[orphan]))