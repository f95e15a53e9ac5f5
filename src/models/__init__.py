from .tree import NodeArena, ParseTree
from .task import (
    AttributeValue,
    ClickEvent,
    ExtractedTask,
    ExtractionResult,
    TaskRecord,
    is_custom_state,
)

__all__ = [
    "NodeArena",
    "ParseTree",
    "AttributeValue",
    "ClickEvent",
    "ExtractedTask",
    "ExtractionResult",
    "TaskRecord",
    "is_custom_state",
]
