"""
Pydantic Schemas for API Request/Response Models.

Field names follow the browser builder's camelCase JSON (``llmConfig``,
``apiKey``, ``inputName``); Python attributes stay snake_case.
"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


INPUT_NODE_TYPES = {"input", "customInput"}
OUTPUT_NODE_TYPES = {"output", "customOutput"}


class CamelModel(BaseModel):
    """Base model that accepts and emits camelCase keys."""
    
    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ============================================================
# Graph Schemas
# ============================================================

class Node(CamelModel):
    """A node of the user-authored graph."""
    id: str = Field(..., min_length=1, description="Unique node identifier within the graph")
    type: str = Field(..., min_length=1, description="input, output, llm or any passthrough type")
    data: Dict[str, Any] = Field(default_factory=dict, description="Free-form node fields")
    
    @property
    def is_input(self) -> bool:
        return self.type in INPUT_NODE_TYPES
    
    @property
    def is_output(self) -> bool:
        return self.type in OUTPUT_NODE_TYPES
    
    @property
    def input_name(self) -> str:
        """Logical name used in ``{{name}}`` placeholders."""
        return str(self.data.get("inputName") or self.id)


class Edge(CamelModel):
    """A directed connection between two node ids."""
    id: Optional[str] = None
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None


class LLMConfig(CamelModel):
    """Per-request generation settings."""
    model: Optional[str] = None
    system: Optional[str] = None
    prompt: Optional[str] = None
    api_key: Optional[str] = Field(None, description="Falls back to the server's key when absent")
    
    @field_validator("model", "system", "prompt", "api_key")
    @classmethod
    def _strip(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if info.field_name == "api_key" and not value:
            raise ValueError("API key must be a non-empty string")
        return value


InputValue = Union[bool, int, float, str]


# ============================================================
# Execution Schemas
# ============================================================

class ExecutionRequest(CamelModel):
    """Body of ``POST /run-workflow``."""
    nodes: List[Node]
    edges: List[Edge] = Field(default_factory=list)
    inputs: Dict[str, InputValue] = Field(default_factory=dict)
    llm_config: Optional[LLMConfig] = None
    
    class Config:
        json_schema_extra = {
            "example": {
                "nodes": [
                    {"id": "in1", "type": "customInput", "data": {"inputName": "topic"}},
                    {"id": "llm1", "type": "llm", "data": {}},
                    {"id": "out1", "type": "customOutput", "data": {}},
                ],
                "edges": [
                    {"id": "e1", "source": "in1", "target": "llm1"},
                    {"id": "e2", "source": "llm1", "target": "out1"},
                ],
                "inputs": {"in1": "dogs"},
                "llmConfig": {
                    "model": "gemini-2.0-flash-exp",
                    "system": "You are an expert on {{topic}}.",
                    "prompt": "Write a haiku about {{topic}}",
                },
            }
        }


class ExecutionMetadata(CamelModel):
    """Details about the generation that produced the outputs."""
    model: str
    approximate_token_count: int = Field(..., description="Output character length, not a tokenizer count")
    tokens_used: int = Field(..., description="Same value as approximateTokenCount")
    cached: bool = False


class ExecutionResponse(CamelModel):
    """Successful ``POST /run-workflow`` response."""
    success: bool = True
    outputs: Dict[str, str]
    metadata: ExecutionMetadata


# ============================================================
# Pipeline Parse Schemas
# ============================================================

class PipelineParseRequest(BaseModel):
    """Body of ``POST /pipelines/parse``."""
    pipeline: str = Field(..., min_length=1, description="JSON-encoded {nodes, edges}")


class PipelineGraph(BaseModel):
    """Decoded pipeline payload."""
    nodes: List[Node]
    edges: List[Edge] = Field(default_factory=list)


class PipelineParseResponse(BaseModel):
    num_nodes: int
    num_edges: int
    is_dag: bool
    success: bool = True


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    details: Optional[Any] = None
