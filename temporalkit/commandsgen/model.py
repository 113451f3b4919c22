"""The command specification model, read from YAML and validated."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import yaml

__all__ = [
    "ANSI_BOLD",
    "ANSI_RESET",
    "Command",
    "CommandSpecError",
    "Commands",
    "Docs",
    "Option",
    "OptionSet",
    "parse_commands",
]

ANSI_RESET = "\033[0m"
ANSI_BOLD = "\033[1m"

_MARKDOWN_LINK = re.compile(r"\[(.*?)\]\((.*?)\)")
_MARKDOWN_BLOCK_CODE = re.compile(r"```([\s\S]+?)```")
_MARKDOWN_INLINE_CODE = re.compile(r"`([^`]+)`")

_ENUM_TYPES = ("string-enum", "string-enum[]")


class CommandSpecError(ValueError):
    """Raised when a command specification is malformed or invalid."""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


@dataclass
class Option:
    """A single command-line option."""

    name: str = ""
    type: str = ""
    description: str = ""
    short: str = ""
    default: str = ""
    env: str = ""
    required: bool = False
    aliases: list[str] = field(default_factory=list)
    enum_values: list[str] = field(default_factory=list)
    experimental: bool = False

    def process(self) -> None:
        """Validate the option and normalise its description in place."""
        if not self.name:
            raise CommandSpecError("missing option name")
        if not self.type:
            raise CommandSpecError("missing option type")
        if not self.description:
            raise CommandSpecError(f"missing description for option: {self.name}")
        self.description = self.description.replace("\n", " ").rstrip(" ")
        if not self.description.endswith("."):
            raise CommandSpecError("description should end in a '.'")
        if self.env != self.env.upper():
            raise CommandSpecError("env variables must be in all caps")
        if self.enum_values:
            if self.type not in _ENUM_TYPES:
                raise CommandSpecError(
                    "enum-values can only specified for string-enum and string-enum[] types"
                )
            if self.default and self.default not in self.enum_values:
                listed = "[" + " ".join(self.enum_values) + "]"
                raise CommandSpecError(
                    f"default value '{self.default}' must be one of the "
                    f"enum-values options {listed}"
                )


@dataclass
class Docs:
    """Documentation-only information about a command."""

    keywords: list[str] | None = None
    description_header: str = ""


@dataclass
class OptionSet:
    """A named group of options shared between commands."""

    name: str = ""
    description: str = ""
    options: list[Option] = field(default_factory=list)

    def process(self) -> None:
        """Validate the set and each of its options."""
        if not self.name:
            raise CommandSpecError("missing option set name")
        for option in self.options:
            try:
                option.process()
            except CommandSpecError as exc:
                raise CommandSpecError(
                    f"failed parsing option '{option.name}': {exc}"
                ) from exc


def _bold_block(match: re.Match[str]) -> str:
    body = match.group(0).strip("`").strip(" ").strip("\n")
    return ANSI_BOLD + body + ANSI_RESET


def _bold_inline(match: re.Match[str]) -> str:
    return ANSI_BOLD + match.group(0).strip("`") + ANSI_RESET


@dataclass
class Command:
    """A command of the command-line tool, named by its full space-separated path."""

    full_name: str = ""
    summary: str = ""
    description: str = ""
    name_path: list[str] = field(default_factory=list)
    description_plain: str = ""
    description_highlighted: str = ""
    has_init: bool = False
    exact_args: int = 0
    maximum_args: int = 0
    ignore_missing_env: bool = False
    options: list[Option] = field(default_factory=list)
    option_sets: list[str] = field(default_factory=list)
    docs: Docs = field(default_factory=Docs)

    def process(self) -> None:
        """Validate the command and derive its name path and descriptions."""
        if not self.full_name:
            raise CommandSpecError("missing command name")
        self.name_path = self.full_name.split(" ")
        if not self.summary:
            raise CommandSpecError("missing summary for command")
        if self.summary.endswith("."):
            raise CommandSpecError("summary should not end in a '.'")
        if self.maximum_args and self.exact_args:
            raise CommandSpecError("cannot have both maximum-args and exact-args")
        if not self.description:
            raise CommandSpecError(f"missing description for command: {self.full_name}")
        if len(self.name_path) == 2:
            if self.docs.keywords is None:
                raise CommandSpecError(
                    f"missing keywords for root command: {self.full_name}"
                )
            if not self.docs.description_header:
                raise CommandSpecError(
                    f"missing description for root command: {self.full_name}"
                )

        self.description = self.description.rstrip("\n")
        self.description_plain = _MARKDOWN_LINK.sub(r"\1", self.description)
        highlighted = _MARKDOWN_BLOCK_CODE.sub(_bold_block, self.description_plain)
        self.description_highlighted = _MARKDOWN_INLINE_CODE.sub(_bold_inline, highlighted)

        for option in self.options:
            try:
                option.process()
            except CommandSpecError as exc:
                raise CommandSpecError(
                    f"failed parsing option '{option.name}': {exc}"
                ) from exc

    def is_subcommand(self, maybe_parent: Command) -> bool:
        """Whether this command sits directly beneath ``maybe_parent``."""
        return len(self.name_path) == len(maybe_parent.name_path) + 1 and (
            self.full_name.startswith(maybe_parent.full_name + " ")
        )

    def leaf_name(self) -> str:
        return "".join(self.full_name.split(" ")[self.depth():])

    def file_name(self) -> str:
        if self.depth() <= 0:
            return ""
        return self.full_name.split(" ")[1]

    def depth(self) -> int:
        return len(self.full_name.split(" ")) - 1


@dataclass
class Commands:
    """All commands and option sets of a specification."""

    commands: list[Command] = field(default_factory=list)
    option_sets: list[OptionSet] = field(default_factory=list)


def _mapping(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise CommandSpecError(f"{what} must be a mapping")
    return value


def _sequence(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise CommandSpecError(f"{what} must be a sequence")
    return value


def _text(value: Any, what: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        raise CommandSpecError(f"{what} must be a scalar")
    return str(value)


def _texts(value: Any, what: str) -> list[str]:
    return [_text(item, what) for item in _sequence(value, what)]


def _flag(value: Any, what: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise CommandSpecError(f"{what} must be a boolean")
    return value


def _integer(value: Any, what: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise CommandSpecError(f"{what} must be an integer")
    return value


def _option_from(data: Any) -> Option:
    raw = _mapping(data, "option")
    return Option(
        name=_text(raw.get("name"), "name"),
        type=_text(raw.get("type"), "type"),
        description=_text(raw.get("description"), "description"),
        short=_text(raw.get("short"), "short"),
        default=_text(raw.get("default"), "default"),
        env=_text(raw.get("env"), "env"),
        required=_flag(raw.get("required"), "required"),
        aliases=_texts(raw.get("aliases"), "aliases"),
        enum_values=_texts(raw.get("enum-values"), "enum-values"),
        experimental=_flag(raw.get("experimental"), "experimental"),
    )


def _docs_from(data: Any) -> Docs:
    raw = _mapping(data, "docs")
    keywords = raw.get("keywords")
    return Docs(
        keywords=None if keywords is None else _texts(keywords, "keywords"),
        description_header=_text(raw.get("description-header"), "description-header"),
    )


def _command_from(data: Any) -> Command:
    raw = _mapping(data, "command")
    return Command(
        full_name=_text(raw.get("name"), "name"),
        summary=_text(raw.get("summary"), "summary"),
        description=_text(raw.get("description"), "description"),
        has_init=_flag(raw.get("has-init"), "has-init"),
        exact_args=_integer(raw.get("exact-args"), "exact-args"),
        maximum_args=_integer(raw.get("maximum-args"), "maximum-args"),
        ignore_missing_env=_flag(raw.get("ignores-missing-env"), "ignores-missing-env"),
        options=[_option_from(item) for item in _sequence(raw.get("options"), "options")],
        option_sets=_texts(raw.get("option-sets"), "option-sets"),
        docs=_docs_from(raw.get("docs")),
    )


def _option_set_from(data: Any) -> OptionSet:
    raw = _mapping(data, "option set")
    return OptionSet(
        name=_text(raw.get("name"), "name"),
        description=_text(raw.get("description"), "description"),
        options=[_option_from(item) for item in _sequence(raw.get("options"), "options")],
    )


def parse_commands(yaml_text: str | bytes) -> Commands:
    """Read, validate and sort a YAML command specification."""
    if isinstance(yaml_text, bytes):
        yaml_text = yaml_text.decode("utf-8")
    yaml_text = yaml_text.replace("\r\n", "\n")
    try:
        root = _mapping(yaml.safe_load(yaml_text), "document")
        spec = Commands(
            commands=[_command_from(c) for c in _sequence(root.get("commands"), "commands")],
            option_sets=[
                _option_set_from(s) for s in _sequence(root.get("option-sets"), "option-sets")
            ],
        )
    except (yaml.YAMLError, CommandSpecError) as exc:
        raise CommandSpecError(f"failed unmarshalling yaml: {exc}") from exc

    for option_set in spec.option_sets:
        try:
            option_set.process()
        except CommandSpecError as exc:
            raise CommandSpecError(
                f"failed parsing option set section {_quote(option_set.name)}: {exc}"
            ) from exc
    for command in spec.commands:
        try:
            command.process()
        except CommandSpecError as exc:
            raise CommandSpecError(
                f"failed parsing command section {_quote(command.full_name)}: {exc}"
            ) from exc

    spec.commands.sort(key=lambda command: command.full_name)
    return spec