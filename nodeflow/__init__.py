"""
NodeFlow - Execution backend for visually composed LLM workflows.

Accepts input -> LLM -> output node graphs from the browser builder,
resolves prompt templates, calls the generation API and returns text
results keyed by output node.
"""

__version__ = "1.0.0"
