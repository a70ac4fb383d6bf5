# rho

`rho` holds the core of a terminal client for an agent server: the
application state behind the interface, the handling of events received
from the server, the conversation history kept on disk, helpers that start
and stop a local agent server process, and the text printed for the list
of recent conversations and on exit.

It has no third-party dependencies.

## What is in the package

- `rho.llm`: `LlmProvider`, with the built-in providers as
  `LlmProvider.OPENHANDS`, `ANTHROPIC`, `OPENAI`, `MISTRAL`, `GOOGLE` and
  `DEEPSEEK`, plus `LlmProvider.other(name)` for any other provider. Each
  has `display_name()`, `provider_prefix()` and `models()` (preset models;
  empty for other providers). `LlmProvider.all()` lists the built-in ones.
  `LlmState` holds provider, model, API key, base URL, custom model,
  timeout (600 seconds by default) and condensation settings.
- `rho.metrics`: `MetricsState` tracks elapsed time, token counts, cost and
  the context window. `MetricsState.parse` reads both the direct
  `accumulated_cost` / `accumulated_token_usage` form and the
  `usage_to_metrics` form, which it resets and then sums across entries.
  A `context_window` of 0 leaves the previous value in place.
- `rho.types`: `ExecutionStatus`, `SecurityRisk` (with `SecurityRisk.parse`,
  which ignores case), `ConfirmationPolicy` (also accepting `always`,
  `never` and `risky`), `InputMode`, `MessageRole`, `DisplayMessage` and
  its constructors (`user`, `assistant`, `system`, `action`, `error`,
  `terminal`, `btw`), `TaskItem`, `PendingAction`, `Notification` and
  `NotificationSeverity`. `effective_risk(action)` gives an action event's
  risk, preferring a meaningful top-level `security_risk` over the one in
  the tool call arguments; `format_tool_args` renders those arguments as
  `key: value, ...`.
- `rho.state`: `AppState` covers input editing, scrolling, the message
  history (capped at 1000 entries, oldest dropped first), pending actions,
  notifications, the run timer, the spinner and fun facts, and
  `reset_conversation`. The modal and settings sub-states
  (`SettingsState`, `SkillsModalState`, `ResumeModalState`,
  `ThemeModalState`, `FileMenuState`, `CommandMenuState`) live here too.
- `rho.events`: `process_event(state, event)` applies a server event, a
  JSON object with a `kind`, to an `AppState`. `needs_confirmation` and
  `request_confirmation` implement the confirmation policy.
- `rho.conversations`: `ConversationEntry`, `scan_conversations`,
  `load_events`, `update_title` and `delete_conversation` work on the
  conversations directory, which is `conversations_dir()` inside
  `data_dir()` (`~/.rho`). Each also takes a `base_dir` to work elsewhere.
- `rho.server`: `version_is_compatible`, `find_agent_server_binary`,
  `start_agent_server`, `stop_agent_server` and `ensure_data_dir`.
- `rho.listing`: `format_relative_time`, `format_recent_conversations` and
  `format_goodbye` return the text (with ANSI colours) for the list of
  recent conversations and the exit message. Both time functions take an
  optional `now` for a fixed reference time.

## Examples

Editing the input line:

```python
from rho.state import AppState

state = AppState()
for ch in "helo":
    state.handle_char(ch)
state.cursor_left()
state.handle_char("l")
assert state.take_input() == "hello"
assert state.cursor_position == 0
```

Applying a server event:

```python
from rho.events import process_event
from rho.state import AppState
from rho.types import ExecutionStatus

state = AppState()
process_event(state, {"kind": "PauseEvent"})
assert state.execution_status is ExecutionStatus.PAUSED
assert state.messages[-1].content == "Conversation paused"
```

Reading metrics reported by the server:

```python
from rho.metrics import MetricsState

metrics = MetricsState()
metrics.parse({
    "accumulated_cost": 0.5,
    "accumulated_token_usage": {"prompt_tokens": 100, "completion_tokens": 50},
})
assert metrics.total_tokens == 150
```

Checking an agent server's version against the minimum required:

```python
from rho.server import version_is_compatible

assert version_is_compatible("1.2.0", "1.1")
assert not version_is_compatible("1.0.9", "1.1.0")
```

## Where data is kept

Conversations are read from the `conversations` directory under the data
directory, `~/.rho` by default. A conversation counts only if its
directory has an `events/` subdirectory. Its title and first message come
from `meta.json` when that file can be read; otherwise the directory's
modification time and the first few event files are used. `load_events`
returns the stored events in file-name order, skipping unreadable files
and events of unknown kind.

`find_agent_server_binary` looks for
`openhands-agent-server/openhands-agent-server` next to the running
script, then under `dist/` in a fallback directory (the current directory
by default). `start_agent_server` runs it in its own process group inside
the data directory with its output discarded; `stop_agent_server` sends
SIGTERM to the group, waits, then SIGKILL.

## What this package does not do

- It draws no screen: there is no terminal interface, key handling or
  rendering. `AppState` only holds the state such an interface would show.
- It has no network client for the agent server: no HTTP requests, no
  health checks, no event stream. Events must be fed to `process_event`
  by the caller.
- It reads no configuration file for themes, spinners, key bindings or
  fun facts; `AppState` starts with empty lists for these.
- It installs no command-line program.

## Running the tests

The tests use pytest, which is included in the `test` extra:

```
pip install -e ".[test]"
pytest
```