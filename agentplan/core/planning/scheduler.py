"""
Topological scheduler.

Depth-first traversal with three-color marking over an explicit stack of
(task, dependency iterator) frames: a task's dependencies are
visited before the task itself is appended. Roots are taken in plan input
order and dependencies in declaration order, so the resulting order is
reproducible.
"""

from typing import Dict, Iterator, List, Sequence, Tuple

from agentplan.core.planning.graph import DependencyGraph
from agentplan.utils.exceptions import CircularDependency
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)

WHITE, GRAY, BLACK = 0, 1, 2


class TopologicalScheduler:
    """
    拓扑调度器

    功能：
    - 生成满足依赖约束的线性执行顺序
    - 检测循环依赖并指明出环任务
    """

    def schedule(self, graph: DependencyGraph) -> List[str]:
        """
        计算执行顺序

        参数:
            graph: 依赖图

        返回:
            List[str]: 每个任务恰好出现一次，依赖总在被依赖者之前

        异常:
            CircularDependency: 遍历中再次遇到仍在访问中的任务
        """
        color: Dict[str, int] = {task_id: WHITE for task_id in graph.nodes}
        order: List[str] = []

        for root in graph.nodes:
            if color[root] != WHITE:
                continue

            # 显式栈：(任务, 未访问的依赖迭代器)，栈中任务即当前路径
            color[root] = GRAY
            stack: List[Tuple[str, Iterator[str]]] = [(root, iter(graph.dependencies_of(root)))]
            while stack:
                task_id, deps = stack[-1]
                dep = next(deps, None)
                if dep is None:
                    stack.pop()
                    color[task_id] = BLACK
                    order.append(task_id)
                elif color[dep] == GRAY:
                    path = [frame[0] for frame in stack]
                    cycle = path[path.index(dep):] + [dep]
                    logger.error("检测到循环依赖", task_id=dep, cycle=" -> ".join(cycle))
                    raise CircularDependency(dep, cycle)
                elif color[dep] == WHITE:
                    color[dep] = GRAY
                    stack.append((dep, iter(graph.dependencies_of(dep))))

        logger.debug("执行顺序计算完成", steps=len(order))
        return order


def find_order_violations(order: Sequence[str],
                          graph: DependencyGraph) -> List[Tuple[str, str]]:
    """
    检查执行顺序是否违反依赖关系

    参数:
        order: 执行顺序
        graph: 依赖图

    返回:
        List[Tuple[str, str]]: (任务, 依赖) 对，依赖缺失或排在任务之后；空列表表示无违规
    """
    position = {task_id: i for i, task_id in enumerate(order)}
    violations = []
    for task_id in order:
        for dep in graph.dependencies_of(task_id):
            dep_position = position.get(dep)
            if dep_position is None or dep_position >= position[task_id]:
                violations.append((task_id, dep))
    return violations
