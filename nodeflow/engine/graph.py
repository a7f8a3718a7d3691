"""
Graph validation.

The builder lets users wire nodes freely, so the only structural check
the server performs is whether the result is a DAG.
"""

from typing import Dict, Iterable, List, Set

from nodeflow.api.schemas import Edge, Node


def build_adjacency(nodes: Iterable[Node], edges: Iterable[Edge]) -> Dict[str, List[str]]:
    """
    Build a source -> [targets] adjacency list.
    
    Edges whose source is not a known node are dropped. Edges pointing at
    unknown targets are kept; those targets simply have no successors.
    Parallel edges are kept as-is.
    """
    adjacency: Dict[str, List[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        if edge.source in adjacency:
            adjacency[edge.source].append(edge.target)
    return adjacency


def is_acyclic(nodes: Iterable[Node], edges: Iterable[Edge]) -> bool:
    """
    Return True if the graph has no directed cycle.
    
    Depth-first search from every node, tracking the nodes on the current
    path. Reaching a node already on the path is a back-edge, i.e. a cycle.
    Uses an explicit stack so very deep graphs don't hit the recursion limit.
    """
    adjacency = build_adjacency(nodes, edges)
    visited: Set[str] = set()
    on_stack: Set[str] = set()
    
    for start in adjacency:
        if start in visited:
            continue
        
        visited.add(start)
        on_stack.add(start)
        # Each frame is (node, iterator over its successors)
        stack = [(start, iter(adjacency[start]))]
        
        while stack:
            node_id, successors = stack[-1]
            advanced = False
            for neighbor in successors:
                if neighbor in on_stack:
                    return False
                if neighbor not in visited:
                    visited.add(neighbor)
                    on_stack.add(neighbor)
                    stack.append((neighbor, iter(adjacency.get(neighbor, []))))
                    advanced = True
                    break
            if not advanced:
                stack.pop()
                on_stack.discard(node_id)
    
    return True
