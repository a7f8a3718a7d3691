"""
Workflow Executor.

Runs one execution request: validates the graph shape, resolves the
prompts, consults the response cache and, on a miss, calls the
generation backend. The single generated text is delivered to every
output node.
"""

from typing import List, Optional, Protocol, Tuple
import logging

from nodeflow.api.schemas import ExecutionMetadata, ExecutionRequest, ExecutionResponse, Node
from nodeflow.engine.template import resolve_templates
from nodeflow.errors import AuthError, InternalError, UpstreamError, ValidationError, WorkflowError
from nodeflow.storage.cache import ResponseCache, make_cache_key


logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        api_key: str,
    ) -> str: ...


def _preview(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class WorkflowExecutor:
    """
    Executes workflow requests against a text generator.
    
    Usage:
        executor = WorkflowExecutor(client, cache, default_api_key="...")
        response = await executor.execute(request)
    
    The cache and generator are injected so each can be replaced
    independently (tests pass fakes; a shared cache could be dropped in).
    """
    
    def __init__(
        self,
        generator: TextGenerator,
        cache: ResponseCache,
        default_api_key: Optional[str] = None,
        default_model: str = "gemini-2.0-flash-exp",
        default_system_prompt: str = "You are a helpful assistant.",
    ):
        self.generator = generator
        self.cache = cache
        self.default_api_key = default_api_key
        self.default_model = default_model
        self.default_system_prompt = default_system_prompt
    
    async def execute(self, request: ExecutionRequest) -> ExecutionResponse:
        """
        Run a workflow request.
        
        Raises:
            ValidationError: Missing input or output nodes
            AuthError: No API key available, or the backend rejected it
            UpstreamError: Generation failed after retries
            InternalError: Anything unexpected
        """
        try:
            return await self._execute(request)
        except WorkflowError:
            raise
        except Exception as e:
            raise InternalError(f"Unexpected error during workflow execution: {e}") from e
    
    async def _execute(self, request: ExecutionRequest) -> ExecutionResponse:
        input_nodes, output_nodes = self.validate(request)
        
        config = request.llm_config
        api_key = (config.api_key if config else None) or self.default_api_key
        if not api_key:
            raise AuthError(
                "No API key provided. Set GOOGLE_API_KEY on the server "
                "or provide a personal API key."
            )
        
        model = (config.model if config else None) or self.default_model
        system_template = (config.system if config else None) or self.default_system_prompt
        user_template = (config.prompt if config else None) or ""
        
        prompts = resolve_templates(system_template, user_template, input_nodes, request.inputs)
        logger.debug(f"System prompt: {_preview(prompts.system)}")
        logger.debug(f"User prompt: {_preview(prompts.user)}")
        
        cache_key = make_cache_key(model, prompts.system, prompts.user)
        text = self.cache.get(cache_key)
        cached = text is not None
        
        if cached:
            logger.info(f"Cache hit for model {model}")
        else:
            logger.info(f"Cache miss, calling model {model}")
            try:
                text = await self.generator.generate(model, prompts.system, prompts.user, api_key)
            except UpstreamError as e:
                if e.is_auth_failure:
                    raise AuthError("The API key was rejected by the generation backend.") from e
                raise
            self.cache.set(cache_key, text)
        
        outputs = {node.id: text for node in output_nodes}
        token_count = len(text)
        
        logger.info(
            f"Workflow executed: {len(request.nodes)} nodes, "
            f"{len(outputs)} outputs, {token_count} chars"
        )
        
        return ExecutionResponse(
            outputs=outputs,
            metadata=ExecutionMetadata(
                model=model,
                approximate_token_count=token_count,
                tokens_used=token_count,
                cached=cached,
            ),
        )
    
    @staticmethod
    def validate(request: ExecutionRequest) -> Tuple[List[Node], List[Node]]:
        """Return (input_nodes, output_nodes), rejecting graphs missing either."""
        if not isinstance(request.nodes, list):
            raise ValidationError("Invalid nodes data")
        
        input_nodes = [node for node in request.nodes if node.is_input]
        output_nodes = [node for node in request.nodes if node.is_output]
        
        if not input_nodes:
            raise ValidationError("No input nodes found in workflow")
        if not output_nodes:
            raise ValidationError("No output nodes found in workflow")
        
        return input_nodes, output_nodes
