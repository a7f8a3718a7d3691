"""
API Routes package.
"""

from nodeflow.api.routes import pipelines, workflow

__all__ = ["pipelines", "workflow"]
