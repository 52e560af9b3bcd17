import time

import pytest

from dagrun.action import Action, Complex
from dagrun.dag import Dag
from dagrun.env import EnvVar
from dagrun.errors import EmptyJob, FileNotFound, LoopGraph, ParserError, RelyTaskIllegal
from dagrun.parser import Parser
from dagrun.state import Output
from dagrun.task import DefaultTask

CORRECT_YAML = """\
dagrs:
  a:
    name: "Task 1"
    after: [ b, c ]
    cmd: echo a
  b:
    name: "Task 2"
    after: [ c, f, g ]
    cmd: echo b
  c:
    name: "Task 3"
    after: [ e, g ]
    cmd: echo c
  d:
    name: "Task 4"
    after: [ c, e ]
    cmd: echo d
  e:
    name: "Task 5"
    after: [ h ]
    cmd: echo e
  f:
    name: "Task 6"
    after: [ g ]
    cmd: echo f
  g:
    name: "Task 7"
    after: [ h ]
    cmd: echo g
  h:
    name: "Task 8"
    cmd: echo h
"""

LOOP_YAML = """\
dagrs:
  a:
    name: "Task 1"
    after: [ b ]
    cmd: echo a
  b:
    name: "Task 2"
    after: [ c ]
    cmd: echo b
  c:
    name: "Task 3"
    after: [ a ]
    cmd: echo c
"""

SELF_LOOP_YAML = """\
dagrs:
  a:
    name: "Task 1"
    after: [ a ]
    cmd: echo a
"""

SCRIPT_FAILED_YAML = """\
dagrs:
  a:
    name: "Task 1"
    cmd: exit 3
  b:
    name: "Task 2"
    after: [ a ]
    cmd: echo b
"""

EXIT_CODE_YAML = """\
dagrs:
  a:
    name: "Task 1"
    cmd: echo testing 123; exit 1
"""


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def results_by_name(dag):
    return {dag.tasks[task_id].name: value for task_id, value in dag.get_results().items()}


def test_yaml_task_correct_execute(tmp_path):
    job = Dag.with_yaml(write(tmp_path, "correct.yaml", CORRECT_YAML))
    job.start()
    results = results_by_name(job)
    assert results["Task 1"] == (["a"], [])
    assert results["Task 8"] == (["h"], [])
    assert len(results) == 8


def test_yaml_task_loop_graph(tmp_path):
    job = Dag.with_yaml(write(tmp_path, "loop.yaml", LOOP_YAML))
    with pytest.raises(LoopGraph):
        job.start()


def test_yaml_task_self_loop_graph(tmp_path):
    job = Dag.with_yaml(write(tmp_path, "self_loop.yaml", SELF_LOOP_YAML))
    with pytest.raises(LoopGraph):
        job.start()


def test_yaml_task_failed_execute(tmp_path):
    job = Dag.with_yaml(write(tmp_path, "failed.yaml", SCRIPT_FAILED_YAML))
    with pytest.raises(EmptyJob):
        job.start()
    assert results_by_name(job)["Task 2"] is None


def test_with_yaml_missing_file(tmp_path):
    with pytest.raises(FileNotFound):
        Dag.with_yaml(str(tmp_path / "no_such_file.yaml"))


def test_with_yaml_str_and_specific_action():
    actions = {"h": Action(lambda _input, _env: Output.new(5))}
    job = Dag.with_yaml_str(CORRECT_YAML, actions)
    job.start()
    results = results_by_name(job)
    assert results["Task 8"] == 5
    assert results["Task 5"] == (["e"], [])


def test_task_loop_graph():
    a = DefaultTask.with_closure("a", lambda _i, _e: Output.empty())
    b = DefaultTask.with_closure("b", lambda _i, _e: Output.empty())
    c = DefaultTask.with_closure("c", lambda _i, _e: Output.empty())
    a.set_predecessors([b])
    b.set_predecessors([c])
    c.set_predecessors([a])

    env = EnvVar()
    env.set("base", 2)
    job = Dag.with_tasks([a, b, c])
    job.set_env(env)
    with pytest.raises(LoopGraph):
        job.start()


def test_non_job():
    with pytest.raises(EmptyJob):
        Dag.with_tasks([]).start()


def test_missing_predecessor():
    outside = DefaultTask.with_closure("outside", lambda _i, _e: Output.empty())
    inner = DefaultTask.with_closure("inner", lambda _i, _e: Output.empty())
    inner.set_predecessors_by_id([outside.id])
    with pytest.raises(RelyTaskIllegal) as info:
        Dag.with_tasks([inner]).start()
    assert info.value.task_name == "inner"


class FailedActionC(Complex):
    def __init__(self, value):
        self.value = value

    def run(self, input, env):
        base = env.get("base", int)
        return Output.new(base // self.value)


class FailedActionD(Complex):
    def __init__(self, value):
        self.value = value

    def run(self, input, env):
        return Output.error("error")


class SlowSum(Complex):
    def __init__(self, value):
        self.value = value

    def run(self, input, env):
        base = env.get("base", int)
        total = self.value
        time.sleep(0.1)
        for item in input:
            total += item.get(int) * base
        return Output.new(total)


def run_failing_dag(keep_going):
    a = DefaultTask.with_action("Compute A", SlowSum(1))
    b = DefaultTask.with_action("Compute B", SlowSum(2))
    c = DefaultTask.with_action("Compute C", FailedActionC(0))
    d = DefaultTask.with_action("Compute D", FailedActionD(1))
    e = DefaultTask.with_action("Compute E", SlowSum(16))
    f = DefaultTask.with_action("Compute F", SlowSum(32))
    g = DefaultTask.with_action("Compute G", SlowSum(64))
    others = [DefaultTask.with_action(f"Compute {letter}", SlowSum(64)) for letter in "HIJKLM"]

    b.set_predecessors([a])
    c.set_predecessors([a])
    d.set_predecessors([a])
    e.set_predecessors([b, c])
    f.set_predecessors([c, d])
    g.set_predecessors([b, e, f])

    env = EnvVar()
    env.set("base", 2)
    job = Dag.with_tasks([a, b, c, d, e, f, g, *others])
    if keep_going:
        job = job.keep_going()
    job.set_env(env)
    with pytest.raises(EmptyJob):
        job.start()
    return job


def test_task_failed_execute():
    job = run_failing_dag(keep_going=False)
    results = results_by_name(job)
    assert len(results) == 13
    assert results["Compute C"] is None
    assert results["Compute G"] is None


def test_task_keep_going():
    job = run_failing_dag(keep_going=True)
    results = results_by_name(job)
    assert len(results) == 13
    with_output = {name for name, value in results.items() if value is not None}
    assert len(with_output) == 8
    assert with_output == {"Compute A", "Compute B"} | {f"Compute {letter}" for letter in "HIJKLM"}
    assert results["Compute A"] == 1
    assert results["Compute B"] == 4
    outputs = {job.tasks[task_id].name: out for task_id, out in job.get_outputs().items()}
    assert outputs["Compute D"].get_err() == "error"


def test_error_with_exitcode(tmp_path):
    job = Dag.with_yaml(write(tmp_path, "exit.yaml", EXIT_CODE_YAML))
    with pytest.raises(EmptyJob):
        job.start()
    outputs = list(job.get_outputs().values())
    assert len(outputs) == 1
    out = outputs[0]
    assert out.is_err()
    assert out.exit_code == 1
    stdout, _stderr = out.content.value
    assert stdout[0] == "testing 123"
    assert out.get_err() == "code: 1"


def make_compute(value):
    def compute(input, env):
        base = env.get("base", int)
        total = value
        for item in input:
            total += item.get(int) * base
        return Output.new(total)

    return compute


def test_compute_dag_result():
    a = DefaultTask.with_closure("Compute A", make_compute(1))
    b = DefaultTask.with_closure("Compute B", make_compute(2))
    c = DefaultTask.with_closure("Compute C", make_compute(4))
    d = DefaultTask.with_closure("Compute D", make_compute(8))
    e = DefaultTask.with_closure("Compute E", make_compute(16))
    f = DefaultTask.with_closure("Compute F", make_compute(32))
    g = DefaultTask.with_closure("Compute G", make_compute(64))
    b.set_predecessors([a])
    c.set_predecessors([a])
    d.set_predecessors([a])
    e.set_predecessors([b, c])
    f.set_predecessors([c, d])
    g.set_predecessors([b, e, f])

    dag = Dag.with_tasks([a, b, c, d, e, f, g])
    env = EnvVar()
    env.set("base", 2)
    dag.set_env(env)
    dag.start()
    assert dag.get_result() == 272


def bench_calc(input, env):
    base = env.get("base", int)
    total = 2
    for item in input:
        value = item.get(int)
        if value > 1_000_000:
            value = 2
        total += value * base
    return Output.new(total)


def test_compute_dag_bench_graph():
    tasks = [DefaultTask.with_closure(str(i), bench_calc) for i in range(50)]
    for position in range(20, len(tasks)):
        tasks[position].set_predecessors_by_id(task.id for task in tasks[position - 8 : position])

    dag = Dag.with_tasks(tasks)
    env = EnvVar()
    env.set("base", 2)
    dag.set_env(env)
    dag.start()

    results = dag.get_results()
    assert len(results) == 50
    assert all(isinstance(value, int) and value >= 2 for value in results.values())
    assert [results[task.id] for task in tasks[:20]] == [2] * 20
    assert isinstance(dag.get_result(), int)


def test_inputs_follow_predecessor_order():
    a = DefaultTask.with_closure("a", lambda _i, _e: Output.new(1))
    b = DefaultTask.with_closure("b", lambda _i, _e: Output.new(2))
    c = DefaultTask.with_closure("c", lambda inputs, _e: Output.new([item.value for item in inputs]))
    c.set_predecessors([b, a])
    dag = Dag.with_tasks([a, b, c])
    dag.start()
    assert dag.get_result() == [2, 1]


def test_empty_outputs_are_not_passed_as_input():
    a = DefaultTask.with_closure("a", lambda _i, _e: Output.empty())
    b = DefaultTask.with_closure("b", lambda inputs, _e: Output.new(len(inputs)))
    b.set_predecessors([a])
    dag = Dag.with_tasks([a, b])
    dag.start()
    assert dag.get_result() == 0


def test_raising_action_fails_job():
    def boom(_input, _env):
        raise RuntimeError("boom")

    task = DefaultTask.with_closure("boom", boom)
    dag = Dag.with_tasks([task])
    with pytest.raises(EmptyJob):
        dag.start()
    assert dag.get_outputs() == {task.id: Output.empty()}
    assert dag.get_result() is None


def test_start_twice_fails():
    task = DefaultTask.with_closure("once", lambda _i, _e: Output.new("done"))
    dag = Dag.with_tasks([task])
    dag.start()
    assert dag.get_result() == "done"
    with pytest.raises(EmptyJob):
        dag.start()


def test_reset_allows_restart():
    task = DefaultTask.with_closure("again", lambda _i, _e: Output.new(7))
    dag = Dag.with_tasks([task])
    dag.start()
    dag.reset()
    assert dag.get_result() is None
    dag.start()
    assert dag.get_result() == 7


def test_get_result_before_start():
    task = DefaultTask.with_closure("idle", lambda _i, _e: Output.new(1))
    dag = Dag.with_tasks([task])
    assert dag.get_result() is None
    assert dag.get_results() == {}


def test_keep_going_returns_same_dag():
    dag = Dag.with_tasks([DefaultTask()])
    assert dag.keep_going() is dag


def test_keep_going_success():
    a = DefaultTask.with_closure("a", lambda _i, _e: Output.new(3))
    dag = Dag.with_tasks([a]).keep_going()
    dag.start()
    assert dag.get_results() == {a.id: 3}


class LineParser(Parser):
    """Lines of ``id,value,predecessor predecessor``."""

    def parse_tasks_from_str(self, content, specific_actions=None):
        tasks = {}
        predecessors = {}
        for line in content.splitlines():
            key, value, pres = line.split(",")
            number = int(value)
            tasks[key] = DefaultTask.with_closure(
                key,
                lambda inputs, _env, number=number: Output.new(number + sum(i.value for i in inputs)),
            )
            predecessors[key] = pres.split()
        for key, task in tasks.items():
            try:
                task.set_predecessors(tasks[pre] for pre in predecessors[key])
            except KeyError as exc:
                raise ParserError(f"unknown predecessor {exc}") from None
        return list(tasks.values())


LINES = "a,1,\nb,10,a\nc,100,a b\n"


def test_with_config_str_and_parser():
    dag = Dag.with_config_str_and_parser(LINES, LineParser())
    dag.start()
    assert results_by_name(dag) == {"a": 1, "b": 11, "c": 112}


def test_with_config_file_and_parser(tmp_path):
    dag = Dag.with_config_file_and_parser(write(tmp_path, "tasks.txt", LINES), LineParser())
    dag.start()
    assert dag.get_result() == 112


def test_custom_parser_error_propagates():
    with pytest.raises(ParserError):
        Dag.with_config_str_and_parser("a,1,z\n", LineParser())