# dagrun

dagrun runs a set of tasks whose dependencies form a directed acyclic graph.
Each task starts as soon as the tasks it depends on have finished. It receives
their outputs as its input and shares one set of environment variables with
the other tasks of the same graph.

You can define tasks in Python or describe them in a YAML file.

## Installation

```
pip install .
```

The test suite needs the extra dependencies:

```
pip install .[test]
```

## Defining tasks in Python

```python
from dagrun.dag import Dag
from dagrun.env import EnvVar
from dagrun.state import Output
from dagrun.task import DefaultTask


def make(base_value):
    def compute(input, env):
        base = env.get("base", int)
        total = base_value
        for content in input:
            total += content.get(int) * base
        return Output.new(total)
    return compute


a = DefaultTask.with_closure("Compute A", make(1))
b = DefaultTask.with_closure("Compute B", make(2))
c = DefaultTask.with_closure("Compute C", make(4))
b.set_predecessors([a])
c.set_predecessors([a, b])

dag = Dag.with_tasks([a, b, c])
env = EnvVar()
env.set("base", 2)
dag.set_env(env)
dag.start()
print(dag.get_result())
```

A task's logic is either a callable `closure(input, env)` (`DefaultTask.with_closure`,
`set_closure`) or an object of a subclass of `dagrun.action.Complex` that
implements `run(input, env)` (`DefaultTask.with_action`, `set_action`). The
input is iterable and yields one `Content` per predecessor that produced a
value; `Content.get(kind)` returns the value if it is of that type, else
`None`. `EnvVar.get(name, kind)` works the same way for environment variables.

The logic returns an `Output`:

- `Output.new(value)` for a result,
- `Output.empty()` for no result,
- `Output.error(message)` or `Output.error_with_exit_code(code, content)` when
  the task fails.

A task also fails if its logic raises or returns something other than an
`Output`.

A failure stops every task that has not started yet, and `Dag.start()` raises
`dagrun.errors.EmptyJob`, a `DagError`. If you call `Dag.keep_going()` first,
only the tasks that depend on the failed one are skipped. The other tasks still
run, and `start()` raises once they have all finished.

Building a run also raises `LoopGraph` when the dependencies form a cycle,
`RelyTaskIllegal` when a task depends on a task that is not in the graph, and
`EmptyJob` when there are no tasks.

`Dag.get_result()` returns the value of the last task in execution order.
`Dag.get_results()` returns the value of every task, keyed by task id, with
`None` where a task produced none. `Dag.get_outputs()` returns the full
`Output` of every task, failures included.

A job that has run successfully cannot be started again until `Dag.reset()` is
called; `reset()` keeps the tasks but forgets the environment and the
`keep_going` setting.

## Defining tasks in YAML

```yaml
dagrs:
  a:
    name: "Task 1"
    after: [b, c]
    cmd: echo a
  b:
    name: "Task 2"
    after: [c]
    cmd: echo b
  c:
    name: "Task 3"
    cmd: echo c
```

Each entry under `dagrs` is one task. `name` is required. `after` lists the
tasks that must finish first. `cmd` is the shell command to run (`sh -c` on
POSIX systems, PowerShell on Windows). Any entry can take a Python action in
place of its command: give it through the `specific_actions` mapping, keyed by
the entry's identifier, as an `Action`, a `Complex` object or a callable.

```python
from dagrun.dag import Dag

dag = Dag.with_yaml("tasks.yaml", {})
dag.start()
```

`Dag.with_yaml_str` does the same from YAML text. Problems in the
configuration raise subclasses of `dagrun.errors.ParserError`, such as
`FileNotFound`, `IllegalYamlContent`, `StartWordError`, `NoNameAttr`,
`NoScriptAttr` and `NotFoundPrecursor`.

A command task's output is a pair: the list of stdout lines and the list of
stderr lines. String values from predecessors are passed to the command as
extra arguments. When the command exits with a non-zero status, the task fails
with that exit code, and the pair is kept as the content of the error output.

For another file format, write a subclass of `dagrun.parser.Parser` that
implements `parse_tasks_from_str(content, specific_actions)` and pass it to
`Dag.with_config_file_and_parser` or `Dag.with_config_str_and_parser`.

## Running several graphs

```python
from dagrun.engine import Engine

engine = Engine()
engine.append_dag("first", dag_one)
engine.append_dag("second", dag_two)
engine.run_sequential()
print(engine.get_dag_result("first"))
```

`append_dag` prepares the graph straight away; a graph that cannot be prepared
is logged and left out, and a name that is already taken keeps its first
graph. `run_sequential` runs the graphs in the order they were added and stops
at the first failure. `run_dag(name)` runs one graph and raises `EmptyJob` for
an unknown name.

## Channels

`dagrun.channels` offers channels for passing `Content` packets between nodes
identified by `NodeId`. `mpsc_channel(capacity)` gives a bounded queue with one
receiver; `broadcast_channel(capacity)` gives a ring buffer whose receivers each
see every packet unless they fall behind (`ChannelLagged`). Both return
`(OutChannel, InChannel)` and can be used with blocking calls from threads or
with `await` from asyncio. `InChannels` and `OutChannels` hold a node's
channels keyed by `NodeId`. The task graphs above do not use these channels.

## Command line

```
dagrun --yaml tasks.yaml [--log-level debug] [--log-path run.log]
```

This runs the tasks in a YAML file. Log levels are `off`, `error`, `warn`,
`info`, `debug` and `trace`; the default is `info`. Without `--log-path`, the
log is written to standard error. The command exits with status 1 and prints
the error when the file cannot be parsed or a task fails.