"""
Result type returned by the caller-facing operations
"""
from typing import Any, Callable, Generic, Optional, TypeVar
import logging

from pydantic import BaseModel

from arena.core.errors import ArenaError, ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    """Either a success payload or an error kind with a human-readable message"""
    success: bool
    data: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""
    details: dict = {}

    @classmethod
    def ok(cls, data: Any = None, message: str = "") -> "OperationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, exc: ArenaError) -> "OperationResult":
        details = exc.to_dict()
        details.pop("error", None)
        details.pop("message", None)
        return cls(success=False, error=exc.kind, message=exc.message, details=details)

    def unwrap(self) -> T:
        if not self.success:
            raise RuntimeError(f"{self.error}: {self.message}")
        return self.data


def capture(operation: Callable[..., T], *args, **kwargs) -> OperationResult:
    """Run an operation and fold business errors into an OperationResult"""
    try:
        return OperationResult.ok(operation(*args, **kwargs))
    except ArenaError as e:
        logger.info(f"{operation.__name__} rejected: {e.kind.value}: {e.message}")
        return OperationResult.fail(e)
