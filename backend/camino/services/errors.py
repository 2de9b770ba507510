"""Error taxonomy shared by the planner, executor, and request boundary."""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class CaminoError(Exception):
    """Base class for planner and executor failures."""


class SchemaError(CaminoError):
    """A plan or a tool's arguments do not have the expected shape."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors: List[Dict[str, Any]] = list(errors or [])

    @classmethod
    def from_validation_error(cls, prefix: str, exc: Any) -> "SchemaError":
        details = exc.errors(include_url=False) if hasattr(exc, "errors") else []
        return cls(f"{prefix}: {exc}", errors=details)


class UnknownToolError(SchemaError):
    """A step names a tool that is not registered."""

    def __init__(self, tool: str):
        super().__init__(f"Unknown tool: {tool}", errors=[{"loc": ("tool",), "msg": "unknown tool", "input": tool}])
        self.tool = tool


class ToolExecutionError(CaminoError):
    """A tool kept failing or timing out after all retries."""

    def __init__(self, tool: str, step_id: str, attempts: int, cause: BaseException | None = None):
        reason = error_code_for(cause) if cause is not None else "unknown"
        super().__init__(f"Tool {tool} (step {step_id}) failed after {attempts} attempt(s): {reason}")
        self.tool = tool
        self.step_id = step_id
        self.attempts = attempts
        self.cause = cause


class PlanBuildError(CaminoError):
    """The model could not produce a valid plan, even after one follow-up."""


class ResumeError(CaminoError):
    """An approved plan could not be found or no longer validates."""


def error_code_for(exc: BaseException) -> str:
    """Short code written into step logs."""
    if isinstance(exc, TimeoutError):
        return "timeout"
    message = str(exc).strip()
    return message or type(exc).__name__
