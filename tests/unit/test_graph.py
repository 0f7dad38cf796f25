"""
Dependency graph unit tests.
"""

import pytest

from agentplan.core.planning.graph import DependencyGraph, DependencyGraphBuilder
from agentplan.core.planning.schemas import TaskDependency
from agentplan.utils.exceptions import UnknownTaskReference


class TestDependencyGraph:
    """测试依赖图"""

    def test_adjacency_keeps_input_order(self):
        """测试邻接表保持输入顺序"""
        graph = DependencyGraph({"b": [], "a": ["b"], "c": ["a", "b"]})

        assert graph.nodes == ["b", "a", "c"]
        assert graph.dependencies_of("c") == ["a", "b"]
        assert graph.dependents_of("b") == ["a", "c"]
        assert len(graph) == 3 and "a" in graph

    def test_duplicate_edges_ignored(self):
        """测试重复的依赖边只保留一次"""
        graph = DependencyGraph({"a": [], "b": []})
        graph.add_edge("b", "a")
        graph.add_edge("b", "a")

        assert graph.dependencies_of("b") == ["a"]
        assert graph.dependents_of("a") == ["b"]

    def test_unknown_reference(self):
        """测试引用不存在的任务"""
        graph = DependencyGraph({"a": []})

        with pytest.raises(UnknownTaskReference) as exc_info:
            graph.add_edge("a", "ghost")
        assert exc_info.value.task_id == "a"
        assert exc_info.value.referenced_id == "ghost"

    def test_has_edge_either_direction(self):
        """测试直接依赖检查不区分方向"""
        graph = DependencyGraph({"a": [], "b": ["a"], "c": ["b"]})

        assert graph.has_edge("a", "b")
        assert graph.has_edge("b", "a")
        assert not graph.has_edge("a", "c")

    def test_descendants(self):
        """测试传递下游任务"""
        graph = DependencyGraph({"a": [], "b": ["a"], "c": ["b"], "d": []})

        assert graph.descendants("a") == {"b", "c"}
        assert graph.descendants("d") == set()

    def test_to_networkx(self):
        """测试转换为 networkx 图（边方向为执行方向）"""
        digraph = DependencyGraph({"a": [], "b": ["a"]}).to_networkx()

        assert set(digraph.nodes) == {"a", "b"}
        assert list(digraph.edges) == [("a", "b")]


class TestDependencyGraphBuilder:
    """测试依赖图构建器"""

    def setup_method(self):
        self.builder = DependencyGraphBuilder()

    def test_every_task_is_a_node(self, abc_plan):
        """测试无依赖的任务映射到空列表"""
        graph = self.builder.build_from_plan(abc_plan)

        assert graph.to_dict() == {"A": [], "B": ["A"], "C": []}

    def test_union_of_dependency_sources(self, plan_factory):
        """测试任务自身依赖与依赖记录取并集"""
        plan = plan_factory(
            ("a", 5, []), ("b", 5, []), ("c", 5, ["a"]),
            dependencies=[TaskDependency(task_id="c", depends_on=["b", "a"])],
        )

        graph = self.builder.build_from_plan(plan)
        assert graph.dependencies_of("c") == ["a", "b"]

    def test_record_with_unknown_dependency(self, plan_factory):
        """测试依赖记录引用不存在的被依赖任务"""
        plan = plan_factory(
            ("a", 5, []),
            dependencies=[TaskDependency(task_id="a", depends_on=["missing"])],
        )

        with pytest.raises(UnknownTaskReference) as exc_info:
            self.builder.build_from_plan(plan)
        assert exc_info.value.referenced_id == "missing"

    def test_record_with_unknown_task(self, plan_factory):
        """测试依赖记录的声明方不存在"""
        plan = plan_factory(
            ("a", 5, []),
            dependencies=[TaskDependency(task_id="ghost", depends_on=["a"])],
        )

        with pytest.raises(UnknownTaskReference) as exc_info:
            self.builder.build_from_plan(plan)
        assert exc_info.value.task_id == "ghost"

    def test_task_dependency_unknown(self, plan_factory):
        """测试任务自身依赖引用不存在的任务"""
        plan = plan_factory(("a", 5, ["nope"]))

        with pytest.raises(UnknownTaskReference) as exc_info:
            self.builder.build_from_plan(plan)
        assert exc_info.value.task_id == "a"
        assert exc_info.value.referenced_id == "nope"

    def test_summarize(self, abc_plan):
        """测试图的概要统计"""
        summary = DependencyGraphBuilder.summarize(self.builder.build_from_plan(abc_plan))

        assert summary["nodes"] == 3
        assert summary["edges"] == 1
        assert summary["roots"] == ["A", "C"]
        assert summary["leaves"] == ["B", "C"]
