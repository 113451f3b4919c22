"""Generation of Markdown documentation pages from a command specification."""

from __future__ import annotations

import re

from temporalkit.commandsgen.model import Command, Commands, CommandSpecError, Option

__all__ = ["generate_docs_files", "encode_json_example"]

_JSON_EXAMPLE = re.compile(r"('[a-zA-Z0-9]*=\{.*\}')")


def encode_json_example(text: str) -> str:
    """Wrap ``'Key={...}'`` examples in backticks so they render in MDX."""
    return _JSON_EXAMPLE.sub(r"`\1`", text)


class _DocWriter:
    def __init__(self, commands: Commands) -> None:
        self.all_commands = commands.commands
        self.option_set_map = {s.name: s for s in commands.option_sets}
        self.files: dict[str, list[str]] = {}
        self.options_stack: list[list[Option]] = []

    def write_doc(self, command: Command) -> None:
        self._process_options(command)
        depth = command.depth()
        if depth == 1:
            self._write_command(command)
        elif depth > 1:
            self._write_subcommand(command)

    def _file(self, command: Command) -> list[str]:
        name = command.file_name()
        try:
            return self.files[name]
        except KeyError:
            raise CommandSpecError(f"no root command for file {name!r}") from None

    def _write_command(self, command: Command) -> None:
        name = command.file_name()
        keywords = command.docs.keywords or []
        out = self.files[name] = []
        out.append("---\n")
        out.append(f"id: {name}\n")
        out.append(f"title: {command.full_name}\n")
        out.append(f"sidebar_label: {command.full_name}\n")
        out.append(f"description: {command.docs.description_header}\n")
        out.append("toc_max_heading_level: 4\n")
        out.append("keywords:\n")
        out.extend(f"  - {keyword}\n" for keyword in keywords)
        # Tags are the keywords with spaces turned into dashes.
        out.append("tags:\n")
        out.extend(f"  - {keyword.replace(' ', '-')}\n" for keyword in keywords)
        out.append("---\n\n")

    def _write_subcommand(self, command: Command) -> None:
        out = self._file(command)
        out.append("#" * command.depth() + " " + command.leaf_name() + "\n\n")
        out.append(command.description + "\n\n")
        if not self._is_leaf(command):
            return
        out.append("Use the following options to change the behavior of this command.\n\n")
        *parents, own = self.options_stack
        options = sorted(own, key=lambda o: o.name)
        global_options = sorted(
            (option for level in parents for option in level), key=lambda o: o.name
        )
        self._write_options(out, "Flags", options)
        self._write_options(out, "Global Flags", global_options)

    @staticmethod
    def _write_options(out: list[str], heading: str, options: list[Option]) -> None:
        if not options:
            return
        out.append(f"**{heading}:**\n\n")
        for option in options:
            out.append(f"**--{option.name}**")
            if option.short:
                out.append(f", **-{option.short}**")
            out.append(f" _{option.type}_\n\n")
            out.append(encode_json_example(option.description))
            if option.required:
                out.append(" Required.")
            if option.enum_values:
                out.append(f" Accepted values: {', '.join(option.enum_values)}.")
            if option.default:
                out.append(f' (default "{option.default}")')
            out.append("\n\n")
            if option.experimental:
                out.append(":::note\n\nOption is experimental.\n\n:::\n\n")

    def _process_options(self, command: Command) -> None:
        # Leaving a level: drop the options of the previous sibling.
        if self.options_stack and len(self.options_stack) >= len(command.full_name.split(" ")):
            self.options_stack.pop()
        options = list(command.options)
        for set_name in command.option_sets:
            option_set = self.option_set_map.get(set_name)
            if option_set is not None:
                options.extend(option_set.options)
        self.options_stack.append(options)

    def _is_leaf(self, command: Command) -> bool:
        return not any(other.is_subcommand(command) for other in self.all_commands)


def generate_docs_files(commands: Commands) -> dict[str, str]:
    """Render one Markdown page per top-level command, keyed by file name."""
    writer = _DocWriter(commands)
    for command in commands.commands:
        try:
            writer.write_doc(command)
        except CommandSpecError as exc:
            raise CommandSpecError(
                f"failed writing docs for command {command.full_name}: {exc}"
            ) from exc
    return {name: "".join(parts) for name, parts in writer.files.items()}