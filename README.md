# ctxmeta

`ctxmeta` is a processor for telemetry pipelines that handle traces, logs and metrics.
For each resource in a batch it runs an ordered list of actions. The actions build new
client metadata from the incoming metadata and the resource's attributes. Each resource
is then passed on to the next consumer by itself, together with the new metadata.

It has no dependencies beyond the standard library.

## Installation

```
pip install ctxmeta
```

## Configuration (`ctxmeta.config`)

A `Config` holds `actions`, a list of `ActionConfig` entries. Each entry has these fields:

- `key`: the metadata key.
- `action`: an `ActionType`, or its string form (`"insert"`, `"upsert"`, `"update"`,
  `"delete"`).
- `value`: a literal value.
- `from_attribute`: the name of a resource attribute.

If both `value` and `from_attribute` are given, `value` is used when the attribute is
missing.

| Action   | Behaviour                                                                                   |
|----------|---------------------------------------------------------------------------------------------|
| `insert` | If the key has no values yet, set it to the value. Otherwise carry the current values over. |
| `upsert` | Set the key to the value, replacing anything it had.                                        |
| `update` | If the key already has values, append the value to them. Otherwise do nothing.              |
| `delete` | Drop a value that an earlier action in the list set.                                        |

`Config.validate()` raises `ConfigError` (a `ValueError`) in these cases:

- the action list is empty;
- an action has no key, or its key is empty;
- an action other than delete has neither `value` nor `from_attribute`;
- a delete action has `value` or `from_attribute`.

Validation is not run for you. You must call it yourself.

## How metadata is built (`ctxmeta.actions`)

`ClientContext` holds metadata as a mapping from a key to a list of strings. Keys are
stored in lower case.

`ActionsRunner.apply(ctx, attrs)` does the following:

1. It creates an `EventContext` from the incoming context and the attribute mapping.
2. It runs each action in order.
3. It returns a new `ClientContext`.

The returned context holds **only** the keys that the actions wrote. Incoming metadata
that no action touched is not carried over. An `insert` on a key that already exists
copies its current values into the result.

Lookups see values written earlier in the same run before they see incoming metadata.
`delete` only removes keys from the new metadata, so an incoming value under that key
becomes visible again to later actions.

Non-string attribute values are turned into strings as follows:

| Attribute value    | String form                                               |
|--------------------|-----------------------------------------------------------|
| booleans           | `true` / `false`                                          |
| integers           | decimal digits                                            |
| floats             | without exponent or trailing zeros; `NaN`, `+Inf`, `-Inf` |
| bytes              | base64                                                    |
| mappings and lists | compact JSON with sorted keys                             |
| `None`             | the empty string                                          |

`generate_action(config)` builds one `InsertAction`, `UpsertAction`, `UpdateAction` or
`DeleteAction`. It raises `ConfigError` when the action type is unknown or the key is
missing.

```python
from ctxmeta.actions import ActionsRunner, ClientContext
from ctxmeta.config import ActionConfig, ActionType

runner = ActionsRunner()
runner.add_action(ActionConfig(key="env", action=ActionType.UPSERT, value="prod"))
runner.add_action(ActionConfig(key="service", action="insert",
                               from_attribute="service.name", value="unknown"))
new_ctx = runner.apply(ClientContext({"team": ["core"]}), {"service.name": "api"})
new_ctx.get("env")      # ["prod"]
new_ctx.get("service")  # ["api"]
new_ctx.get("team")     # [] (not touched by any action)
```

## Processors (`ctxmeta.processors`, `ctxmeta.factory`)

A batch is an iterable of `ResourceData` items. Each item has `attributes` (a dict) and
`records` (a list that the processor does not look inside).

There are three processors:

- `ContextTracesProcessor.consume_traces(ctx, resources)`
- `ContextLogsProcessor.consume_logs(ctx, resources)`
- `ContextMetricsProcessor.consume_metrics(ctx, resources)`

For each resource, the processor computes the new context. It then calls
`next_consumer(new_ctx, [copy_of_resource])`. The copy is a deep copy. If the next
consumer raises, processing stops and the exception propagates.

`start(host)` marks the processor as running. It logs each extension the host offers.
The host is either an object with `get_extensions()` or an iterable of ids.
`shutdown()` stops the processor. It raises `RuntimeError` if `start` was never called.
The `running` property reports the current state.

`build_actions_runner(actions)` builds an `ActionsRunner` from a list of `ActionConfig`
entries.

`new_factory()` returns a `Factory` whose component type is `"context"`. The factory
provides:

- `create_default_config()`, which returns an empty `Config`.
- `create_traces_processor(settings, config, next_consumer)`.
- `create_logs_processor(settings, config, next_consumer)`.
- `create_metrics_processor(settings, config, next_consumer)`.

Each `create_*` method takes a `ProcessorSettings` (with an `id` and an optional
`logger`), a `Config`, and the next consumer. It raises `TypeError` if `config` is not a
`Config`. The processors it returns have `capabilities` set to
`Capabilities(mutates_data=True)`.

```python
from ctxmeta.config import ActionConfig, ActionType, Config
from ctxmeta.factory import ProcessorSettings, new_factory
from ctxmeta.processors import ResourceData

received = []

def next_consumer(ctx, batch):
    received.append((ctx.get("tenant"), batch))

config = Config(actions=[
    ActionConfig(key="tenant", action=ActionType.UPSERT,
                 from_attribute="service.namespace", value="default"),
])
config.validate()

processor = new_factory().create_traces_processor(
    ProcessorSettings(id="context"), config, next_consumer,
)
processor.start()
processor.consume_traces(None, [
    ResourceData(attributes={"service.namespace": "shop"}, records=["span-1"]),
    ResourceData(attributes={}, records=["span-2"]),
])
processor.shutdown()
# received[0][0] == ["shop"], received[1][0] == ["default"]
```

## What this package does not do

`ctxmeta` is a library. It provides:

- no pipeline runtime;
- no command-line program;
- no network receiver or exporter;
- no encoding or decoding of trace, log or metric wire formats.

Records are opaque values that you supply. Delivery is whatever your `next_consumer`
callable does.