"""
Pipeline API Routes.

Structural inspection of a builder graph without executing it.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
import json
import logging

from nodeflow.api.schemas import (
    ErrorResponse,
    PipelineGraph,
    PipelineParseRequest,
    PipelineParseResponse,
)
from nodeflow.engine.graph import is_acyclic


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipelines", tags=["Pipelines"])


@router.post(
    "/parse",
    response_model=PipelineParseResponse,
    responses={400: {"model": ErrorResponse, "description": "Malformed pipeline"}},
)
async def parse_pipeline(request: PipelineParseRequest):
    """
    Count nodes and edges of a pipeline and report whether it is a DAG.
    
    The ``pipeline`` field is a JSON-encoded ``{nodes, edges}`` document.
    """
    try:
        graph = PipelineGraph.model_validate(json.loads(request.pipeline))
    except (ValueError, PydanticValidationError) as e:
        logger.info(f"Rejected pipeline: {e}")
        return JSONResponse(
            status_code=400,
            content={"error": str(e), "success": False},
        )
    
    return PipelineParseResponse(
        num_nodes=len(graph.nodes),
        num_edges=len(graph.edges),
        is_dag=is_acyclic(graph.nodes, graph.edges),
    )
