"""
agentplan: goal decomposition and execution planning for agents.
"""

from agentplan.core.planning.engine import PlanningEngine

__version__ = "0.1.0"

__all__ = ["PlanningEngine", "__version__"]
