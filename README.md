# temporalkit

Building blocks for workflow command-line tooling, usable on their own from
Python code.

## Install

    pip install temporalkit

For the test suite:

    pip install "temporalkit[test]"

## What is inside

- `temporalkit.durations`: `parse_duration` turns strings such as `"90s"`,
  `"1h30m"`, `"1.5h"` or `"2d"` into a `timedelta`. The units are `ns`,
  `us`, `ms`, `s`, `m`, `h` and `d`, where a day is 24 hours. Precision
  finer than a microsecond is dropped. Invalid input raises `ValueError`.
  `format_duration` renders a `timedelta` or a whole number of nanoseconds
  as text such as `1h2m3.5s` or `250ms`.
- `temporalkit.devserver.freeport`: `get_free_port(host)` returns a TCP
  port that is currently free. On Linux and other Unix systems, but not
  macOS or Windows, it also connects to the port once, so the operating
  system does not hand the same port out again for a while.
  `must_get_free_port` raises `RuntimeError` instead of `OSError` on failure.
  `check_port_free(host, port)` raises `OSError` if the port cannot be
  listened on. `maybe_escape_ipv6` wraps IPv6 addresses in square brackets.
- `temporalkit.commandsgen.model`: `parse_commands` reads a YAML command
  specification into `Commands`, `Command`, `OptionSet` and `Option`
  objects. It validates them, derives the plain and ANSI-highlighted
  descriptions and sorts the commands by full name. Anything invalid raises
  `CommandSpecError`.
- `temporalkit.commandsgen.docs`: `generate_docs_files(commands)` returns a
  dict that maps each top-level command's file name to its Markdown text.
  `encode_json_example` wraps `'Key={...}'` examples in backticks.
- `temporalkit.commandsgen.code`: `generate_commands_code(pkg, commands)`
  returns command-wiring source text with one struct and constructor per
  option set and per command. `namify` and `set_struct_name` are the naming
  helpers it uses.
- `temporalkit.history`: `EventType` and `WorkflowExecutionStatus` enums,
  plus `HistoryEvent.from_json` to read an event.
  - `colored_event_type` returns an event type's name in its terminal colour.
  - `is_workflow_terminating_event` and `close_event_status` classify close
    events.
  - `flatten_event_fields` and `flatten_json_value` turn event JSON into
    sorted `EventField` rows.
  - `find_close_event` follows a continue-as-new chain to the last run.
  - `parse_input_metadata` turns `key=value` entries into payload metadata.
  - `get_fold_statuses` resolves trace fold flags.
  - Errors raise `HistoryError`.
- `temporalkit.reset`: the `ResetReapplyType` and `ResetReapplyExcludeType`
  enums and `reapply_and_exclude_types`.
  - `validate_workflow_reset` and `validate_batch_reset` check reset
    arguments.
  - `batch_reset_options` builds a `ResetOptions`.
  - `last_workflow_task_event_id`, `first_workflow_task_event_id` and
    `last_continued_as_new_event_id` find reset points in pages of history
    events.
  - Errors raise `ResetError`.
- `temporalkit.listing`: `iter_execution_pages(fetch_page, limit)` pages
  through executions up to a limit. `ExecutionSummary` holds the columns of
  one listed execution and `CountGroup` one group of a count.
  `format_count` renders the text report of a count, and `run_duration`
  gives the time from start to close.

## Example

```python
from temporalkit.durations import parse_duration, format_duration
from temporalkit.commandsgen.model import parse_commands
from temporalkit.commandsgen.docs import generate_docs_files

print(format_duration(parse_duration("1h30m")))  # 1h30m0s

with open("commands.yml", encoding="utf-8") as fh:
    commands = parse_commands(fh.read())

for name, content in generate_docs_files(commands).items():
    with open(f"{name}.mdx", "w", encoding="utf-8") as out:
        out.write(content)
```

## What this package does not do

This is a library of pieces, not a command-line program. It installs no
command. It does not connect to a workflow service, start or describe
workflows, or run a development server. The history, reset and listing
helpers work on data and callables that you supply. The dev-server support
covers only choosing and checking free ports.

## Tests

    pytest