"""
Engine package - graph validation, template resolution and execution.
"""

from nodeflow.engine.graph import is_acyclic
from nodeflow.engine.template import ResolvedPrompts, resolve_templates
from nodeflow.engine.executor import WorkflowExecutor

__all__ = [
    "is_acyclic",
    "ResolvedPrompts",
    "resolve_templates",
    "WorkflowExecutor",
]
