"""
Error History Schemas

Persisted record of translation failures shown by the settings surface.
"""

from typing import List

from pydantic import BaseModel, Field


class ErrorHistoryEntry(BaseModel):
    # Unix timestamp in seconds
    timestamp: float
    # Error kind, e.g. "rate_limited"
    error_type: str
    error_message: str
    # Length of the input that triggered the error (text itself is not kept)
    input_length: int
    model: str


class ErrorHistorySnapshot(BaseModel):
    entries: List[ErrorHistoryEntry] = Field(default_factory=list)
