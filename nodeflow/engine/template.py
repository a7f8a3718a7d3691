"""
Prompt template resolution.

Input nodes expose a logical name (``data.inputName``, or their id) and
prompts reference them as ``{{name}}``.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from nodeflow.api.schemas import Node


PLACEHOLDER_OPEN = "{{"


@dataclass(frozen=True)
class ResolvedPrompts:
    """System and user prompts after substitution."""
    system: str
    user: str


def stringify_input(value: Any) -> str:
    """Render an input value the way the browser builder displays it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_templates(
    system_template: str,
    user_template: str,
    input_nodes: Iterable[Node],
    inputs: Mapping[str, Any],
) -> ResolvedPrompts:
    """
    Substitute input values into both prompt templates.
    
    Every ``{{name}}`` occurrence is replaced, in both templates, for each
    input whose node id matches an input node. Values keyed by unknown ids
    are ignored.
    
    When the user template has no placeholder left once substitution is
    done, the user prompt becomes the last matched input value verbatim.
    This keeps the single-input builder flow working where the prompt
    field is left empty or already fully resolved.
    """
    nodes_by_id = {node.id: node for node in input_nodes}
    system = system_template
    user = user_template
    latest: Optional[str] = None
    
    for node_id, raw_value in inputs.items():
        node = nodes_by_id.get(node_id)
        if node is None:
            continue
        
        value = stringify_input(raw_value)
        placeholder = "{{" + node.input_name + "}}"
        system = system.replace(placeholder, value)
        user = user.replace(placeholder, value)
        latest = value
    
    if latest is not None and PLACEHOLDER_OPEN not in user:
        user = latest
    
    return ResolvedPrompts(system=system, user=user)
