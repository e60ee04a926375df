"""
LLM interface module.

Concrete provider models live outside this package; they subclass Model and
implement arun_stream().
"""

from .base import Model, ModelResponse, StreamChunk, ToolCallAccumulator

__all__ = ["Model", "ModelResponse", "StreamChunk", "ToolCallAccumulator"]
