"""
Workflow API Routes.

Executes a builder graph against the generation backend.
"""

from fastapi import APIRouter, Depends
import logging

from nodeflow.api.deps import get_executor
from nodeflow.api.schemas import ErrorResponse, ExecutionRequest, ExecutionResponse
from nodeflow.engine.executor import WorkflowExecutor


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Workflow"])


@router.post(
    "/run-workflow",
    response_model=ExecutionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid workflow"},
        401: {"model": ErrorResponse, "description": "Missing or invalid API key"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        502: {"model": ErrorResponse, "description": "Generation backend failed"},
    },
)
async def run_workflow(
    request: ExecutionRequest,
    executor: WorkflowExecutor = Depends(get_executor),
) -> ExecutionResponse:
    """
    Execute a workflow.
    
    Input values are substituted into the LLM prompts, the model is
    called once, and the generated text is returned for every output node.
    Identical requests within the cache TTL are served without calling
    the model again.
    """
    logger.info(
        f"Received workflow execution request: {len(request.nodes)} nodes, "
        f"input keys {list(request.inputs.keys())}"
    )
    return await executor.execute(request)
