"""Generation of Go command-line wiring code from a command specification."""

from __future__ import annotations

import contextlib
import posixpath
import re
from datetime import timedelta

from temporalkit.commandsgen.model import Command, Commands, CommandSpecError, Option, OptionSet
from temporalkit.durations import parse_duration

__all__ = ["namify", "set_struct_name", "generate_commands_code"]

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")

_GO_TYPES = {
    "bool": "bool",
    "int": "int",
    "string": "string",
    "float": "float32",
    "duration": "Duration",
    "timestamp": "Timestamp",
    "string[]": "[]string",
    "string-enum": "StringEnum",
    "string-enum[]": "StringEnumArray",
}

_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def _go_quote(text: str) -> str:
    """Quote a string as a double-quoted Go string literal."""
    parts = ['"']
    for ch in text:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ch.isprintable():
            parts.append(ch)
        elif ord(ch) < 0x80:
            parts.append(f"\\x{ord(ch):02x}")
        elif ord(ch) < 0x10000:
            parts.append(f"\\u{ord(ch):04x}")
        else:
            parts.append(f"\\U{ord(ch):08x}")
    parts.append('"')
    return "".join(parts)


def namify(text: str, capitalize_first: bool) -> str:
    """Join the alphanumeric pieces of ``text`` in camel case."""
    pieces = _NON_ALNUM.split(text)
    return "".join(
        piece[:1].upper() + piece[1:] if index > 0 or capitalize_first else piece
        for index, piece in enumerate(pieces)
    )


def set_struct_name(name: str) -> str:
    """Name of the struct generated for the option set ``name``."""
    return namify(name, True) + "Options"


def _struct_name(command: Command) -> str:
    return namify(command.full_name, True) + "Command"


def _indent(code: str) -> str:
    """Indent Go code with tabs according to its brace nesting."""
    depth = 0
    lines = []
    for raw in code.split("\n"):
        line = raw.strip()
        if not line:
            lines.append("")
            continue
        if line[0] in "})":
            depth = max(depth - 1, 0)
        lines.append("\t" * depth + line)
        if line[-1] in "{(":
            depth += 1
    return "\n".join(lines)


class _CodeWriter:
    def __init__(self, commands: Commands) -> None:
        self.all_commands = commands.commands
        self.option_sets = commands.option_sets
        self.lines: list[str] = []
        # Short reference to full import path.
        self.imports: dict[str, str] = {}

    def line(self, text: str) -> None:
        self.lines.append(text + "\n")

    def import_pkg(self, pkg: str) -> str:
        ref = posixpath.basename(pkg).removeprefix("go-")
        previous = self.imports.get(ref)
        if previous is None:
            self.imports[ref] = pkg
        elif previous != pkg:
            raise CommandSpecError(f"duplicate import for {pkg} and {previous}")
        return ref

    def cobra(self) -> str:
        return self.import_pkg("github.com/spf13/cobra")

    def pflag(self) -> str:
        return self.import_pkg("github.com/spf13/pflag")

    def isatty(self) -> str:
        return self.import_pkg("github.com/mattn/go-isatty")

    # Option sets

    def write_option_set(self, option_set: OptionSet) -> None:
        if not option_set.name:
            raise CommandSpecError("missing option set name")
        struct = set_struct_name(option_set.name)
        self.line(f"type {struct} struct {{")
        for option in option_set.options:
            try:
                self.write_struct_field(option)
            except CommandSpecError as exc:
                raise CommandSpecError(
                    f"failed writing option set {option.name}: {exc}"
                ) from exc
        self.line("}\n")

        self.line(f"func (v *{struct}) buildFlags(cctx *CommandContext, f *{self.pflag()}.FlagSet) {{")
        # Flag-building failures within option sets do not abort generation;
        # the remaining options of the set are skipped.
        with contextlib.suppress(CommandSpecError):
            for option in option_set.options:
                self.write_flag_building(option, "v", "f")
        self.line("}\n")

    # Commands

    def write_command(self, command: Command) -> None:
        parent = next(
            (other for other in self.all_commands if command.is_subcommand(other)), None
        )
        struct = _struct_name(command)

        self.line(f"type {struct} struct {{")
        if parent is not None:
            self.line(f"Parent *{_struct_name(parent)}")
        self.line(f"Command {self.cobra()}.Command")
        for set_name in command.option_sets:
            self.line(f"{namify(set_name, True)}Options")
        for option in command.options:
            try:
                self.write_struct_field(option)
            except CommandSpecError as exc:
                raise CommandSpecError(f"failed writing options: {exc}") from exc
        self.line("}\n")

        if parent is not None:
            self.line(
                f"func New{struct}(cctx *CommandContext, parent *{_struct_name(parent)}) *{struct} {{"
            )
        else:
            self.line(f"func New{struct}(cctx *CommandContext) *{struct} {{")
        self.line(f"var s {struct}")
        if parent is not None:
            self.line("s.Parent = parent")

        subcommands = [other for other in self.all_commands if other.is_subcommand(command)]
        leaf = command.name_path[-1]
        if not subcommands:
            self.line("s.Command.DisableFlagsInUseLine = true")
            self.line(f"s.Command.Use = {_go_quote(leaf + ' [flags]')}")
        else:
            self.line(f"s.Command.Use = {_go_quote(leaf)}")
        self.line(f"s.Command.Short = {_go_quote(command.summary)}")
        if command.description_highlighted != command.description_plain:
            self.line("if hasHighlighting {")
            self.line(f"s.Command.Long = {_go_quote(command.description_highlighted)}")
            self.line("} else {")
            self.line(f"s.Command.Long = {_go_quote(command.description_plain)}")
            self.line("}")
        else:
            self.line(f"s.Command.Long = {_go_quote(command.description_plain)}")
        if command.maximum_args > 0:
            self.line(f"s.Command.Args = {self.cobra()}.MaximumNArgs({command.maximum_args})")
        elif command.exact_args > 0:
            self.line(f"s.Command.Args = {self.cobra()}.ExactArgs({command.exact_args})")
        else:
            self.line(f"s.Command.Args = {self.cobra()}.NoArgs")
        if command.ignore_missing_env:
            self.line("s.Command.Annotations = make(map[string]string)")
            self.line('s.Command.Annotations["ignoresMissingEnv"] = "true"')
        for sub in subcommands:
            self.line(f"s.Command.AddCommand(&New{_struct_name(sub)}(cctx, &s).Command)")

        # Commands with subcommands share their flags with them.
        flag_var = "s.Command.PersistentFlags()" if subcommands else "s.Command.Flags()"
        aliases: list[tuple[str, str]] = []
        for option in command.options:
            aliases.extend((alias, option.name) for alias in option.aliases)
            try:
                self.write_flag_building(option, "s", flag_var)
            except CommandSpecError as exc:
                raise CommandSpecError(f"failed building option flags: {exc}") from exc

        for include in command.option_sets:
            option_set = next((s for s in self.option_sets if s.name == include), None)
            if option_set is not None:
                for option in option_set.options:
                    aliases.extend((alias, option.name) for alias in option.aliases)
            self.line(f"s.{set_struct_name(include)}.buildFlags(cctx, {flag_var})")

        if aliases:
            aliases.sort(key=lambda pair: pair[0])
            self.line(f"{flag_var}.SetNormalizeFunc(aliasNormalizer(map[string]string{{")
            for alias, name in aliases:
                self.line(f"{_go_quote(alias)}: {_go_quote(name)},")
            self.line("}))")

        if not subcommands:
            self.line(f"s.Command.Run = func(c *{self.cobra()}.Command, args []string) {{")
            self.line("if err := s.run(cctx, args); err != nil {")
            self.line("cctx.Options.Fail(err)")
            self.line("}")
            self.line("}")
        if command.has_init:
            self.line("s.initCommand(cctx)")
        self.line("return &s")
        self.line("}\n")

    # Options

    def write_struct_field(self, option: Option) -> None:
        go_type = _GO_TYPES.get(option.type)
        if go_type is None:
            raise CommandSpecError(f"unrecognized data type {option.type}")
        self.line(f"{namify(option.name, True)} {go_type}")

    def write_flag_building(self, option: Option, self_var: str, flag_var: str) -> None:
        field = namify(option.name, True)
        default_lit = ""
        set_default = ""
        kind = option.type
        if kind == "bool":
            flag_meth, default_lit = "BoolVar", ", false"
            if option.default:
                raise CommandSpecError("cannot have default for bool var")
        elif kind == "duration":
            flag_meth, set_default = "Var", "0"
            if option.default:
                try:
                    duration = parse_duration(option.default)
                except ValueError as exc:
                    raise CommandSpecError(f"invalid default: {exc}") from exc
                micros = duration // timedelta(microseconds=1)
                millis = abs(micros) // 1000 * (-1 if micros < 0 else 1)
                set_default = f"Duration({millis} * {self.import_pkg('time')}.Millisecond)"
        elif kind == "timestamp":
            if option.default:
                raise CommandSpecError("default value not allowed for timestamp")
            flag_meth = "Var"
        elif kind == "int":
            flag_meth, default_lit = "IntVar", ", " + (option.default or "0")
        elif kind == "float":
            flag_meth, default_lit = "Float32Var", ", " + (option.default or "0")
        elif kind == "string":
            flag_meth, default_lit = "StringVar", ", " + _go_quote(option.default)
        elif kind == "string[]":
            if option.default:
                raise CommandSpecError("default value not allowed for string array")
            flag_meth, default_lit = "StringArrayVar", ", nil"
        elif kind in ("string-enum", "string-enum[]"):
            if not option.enum_values:
                raise CommandSpecError("missing enum values")
            values = ", ".join(_go_quote(value) for value in option.enum_values)
            if kind == "string-enum":
                self.line(
                    f"{self_var}.{field} = NewStringEnum([]string{{{values}}}, "
                    f"{_go_quote(option.default)})"
                )
            elif option.default:
                self.line(
                    f"{self_var}.{field} = NewStringEnumArray([]string{{{values}}}, "
                    f"{_go_quote(option.default)})"
                )
            else:
                self.line(
                    f"{self_var}.{field} = NewStringEnumArray([]string{{{values}}}, []string{{}})"
                )
            flag_meth = "Var"
        else:
            raise CommandSpecError(f"unrecognized data type {kind}")

        desc = option.description
        if option.enum_values:
            desc += f" Accepted values: {', '.join(option.enum_values)}."
        if option.required:
            desc += " Required."
        for alias in option.aliases:
            desc += f' Aliased as "--{alias}".'

        if set_default:
            # Set before registering so the flag records it as its default.
            self.line(f"{self_var}.{field} = {set_default}")
        if option.short:
            self.line(
                f"{flag_var}.{flag_meth}P(&{self_var}.{field}, {_go_quote(option.name)}, "
                f"{_go_quote(option.short)}{default_lit}, {_go_quote(desc)})"
            )
        else:
            self.line(
                f"{flag_var}.{flag_meth}(&{self_var}.{field}, {_go_quote(option.name)}"
                f"{default_lit}, {_go_quote(desc)})"
            )
        if option.required:
            self.line(f"_ = {self.cobra()}.MarkFlagRequired({flag_var}, {_go_quote(option.name)})")
        if option.env:
            self.line(
                f"cctx.BindFlagEnvVar({flag_var}.Lookup({_go_quote(option.name)}), "
                f"{_go_quote(option.env)})"
            )


def generate_commands_code(pkg: str, commands: Commands) -> str:
    """Generate Go source declaring every option set and command of ``commands``."""
    writer = _CodeWriter(commands)
    writer.line(
        f"var hasHighlighting = {writer.isatty()}.IsTerminal({writer.import_pkg('os')}.Stdout.Fd())"
    )
    for option_set in commands.option_sets:
        try:
            writer.write_option_set(option_set)
        except CommandSpecError as exc:
            raise CommandSpecError(f"failed writing command {option_set.name}: {exc}") from exc
    for command in commands.commands:
        try:
            writer.write_command(command)
        except CommandSpecError as exc:
            raise CommandSpecError(f"failed writing command {command.full_name}: {exc}") from exc

    imports = sorted(_go_quote(path) for path in writer.imports.values())
    header = "// Code generated. DO NOT EDIT.\n\npackage " + pkg + "\n\nimport(\n"
    body = header + "".join(f"{line}\n" for line in imports) + ")\n\n" + "".join(writer.lines)
    return _indent(body)