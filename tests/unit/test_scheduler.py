"""
Topological scheduler unit tests.
"""

import random

import pytest

from agentplan.core.planning.graph import DependencyGraph, DependencyGraphBuilder
from agentplan.core.planning.scheduler import TopologicalScheduler, find_order_violations
from agentplan.utils.exceptions import CircularDependency


class TestTopologicalScheduler:
    """测试拓扑调度器"""

    def setup_method(self):
        self.scheduler = TopologicalScheduler()

    def test_dependencies_come_first(self, abc_plan):
        """测试依赖总排在被依赖者之前"""
        graph = DependencyGraphBuilder().build_from_plan(abc_plan)
        order = self.scheduler.schedule(graph)

        assert order.index("A") < order.index("B")
        assert sorted(order) == ["A", "B", "C"]

    def test_order_follows_input_when_unconstrained(self):
        """测试没有依赖时保持输入顺序"""
        graph = DependencyGraph({"x": [], "y": [], "z": []})

        assert self.scheduler.schedule(graph) == ["x", "y", "z"]

    def test_diamond(self):
        """测试菱形依赖"""
        graph = DependencyGraph({"d": ["b", "c"], "b": ["a"], "c": ["a"], "a": []})
        order = self.scheduler.schedule(graph)

        assert order == ["a", "b", "c", "d"]
        assert find_order_violations(order, graph) == []

    def test_cycle_detected(self):
        """测试检测循环依赖并指明任务"""
        graph = DependencyGraph({"a": ["b"], "b": ["a"]})

        with pytest.raises(CircularDependency) as exc_info:
            self.scheduler.schedule(graph)
        assert exc_info.value.task_id == "a"
        assert exc_info.value.cycle == ["a", "b", "a"]

    def test_self_dependency(self):
        """测试任务依赖自身"""
        graph = DependencyGraph({"solo": ["solo"]})

        with pytest.raises(CircularDependency) as exc_info:
            self.scheduler.schedule(graph)
        assert exc_info.value.task_id == "solo"

    def test_empty_graph(self):
        """测试空图"""
        assert self.scheduler.schedule(DependencyGraph()) == []

    def test_long_chain(self):
        """测试长依赖链不受递归深度限制"""
        size = 3000
        adjacency = {f"t{i}": ([f"t{i - 1}"] if i else []) for i in reversed(range(size))}
        order = self.scheduler.schedule(DependencyGraph(adjacency))

        assert order == [f"t{i}" for i in range(size)]

    @pytest.mark.parametrize("adjacency, outside", [
        ({"x": ["a"], "a": ["b"], "b": ["a"]}, {"x"}),
        ({"x": ["y"], "y": ["a"], "a": ["b"], "b": ["c"], "c": ["a"]}, {"x", "y"}),
        ({"ok": [], "x": ["ok", "a"], "a": ["b"], "b": ["x"]}, {"ok"}),
    ])
    def test_cycle_entered_from_outside(self, adjacency, outside):
        """测试从环外进入时报告的任务位于环上"""
        with pytest.raises(CircularDependency) as exc_info:
            self.scheduler.schedule(DependencyGraph(adjacency))

        cycle = exc_info.value.cycle
        assert exc_info.value.task_id in cycle
        assert cycle[0] == cycle[-1]
        for task_id, dep in zip(cycle, cycle[1:]):
            assert dep in adjacency[task_id]
        assert not outside & set(cycle)

    @pytest.mark.parametrize("seed", range(10))
    def test_generated_dags(self, seed):
        """测试随机生成的无环图"""
        rng = random.Random(seed)
        names = [f"n{i}" for i in range(rng.randint(5, 40))]
        adjacency = {
            name: rng.sample(names[:i], rng.randint(0, min(i, 4)))
            for i, name in enumerate(names)
        }
        keys = list(adjacency)
        rng.shuffle(keys)
        graph = DependencyGraph({key: adjacency[key] for key in keys})

        order = self.scheduler.schedule(graph)

        assert sorted(order) == sorted(names)
        assert find_order_violations(order, graph) == []


class TestFindOrderViolations:
    """测试执行顺序违规检查"""

    def test_dependency_after_dependent(self):
        """测试依赖排在被依赖者之后"""
        graph = DependencyGraph({"a": [], "b": ["a"]})

        assert find_order_violations(["b", "a"], graph) == [("b", "a")]

    def test_missing_dependency(self):
        """测试依赖不在执行顺序中"""
        graph = DependencyGraph({"a": [], "b": ["a"]})

        assert find_order_violations(["b"], graph) == [("b", "a")]
