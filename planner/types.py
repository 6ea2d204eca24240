"""Enumerations and the request contract shared by planner and executor."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TaskType(str, Enum):
    """Closed set of subtask kinds the engine can plan."""

    CODE_GENERATION = "CODE_GENERATION"
    CODE_REVIEW = "CODE_REVIEW"
    DOCUMENTATION = "DOCUMENTATION"
    TESTING = "TESTING"
    DEBUGGING = "DEBUGGING"
    REFACTORING = "REFACTORING"
    COMPLIANCE_CHECK = "COMPLIANCE_CHECK"
    SECURITY_AUDIT = "SECURITY_AUDIT"
    PERFORMANCE_OPTIMIZATION = "PERFORMANCE_OPTIMIZATION"
    DEPLOYMENT = "DEPLOYMENT"


class Modality(str, Enum):
    """Capability tags a task needs from its executor."""

    TEXT = "TEXT"
    CODE = "CODE"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    DOCUMENT = "DOCUMENT"
    COMPLIANCE_POLICY = "COMPLIANCE_POLICY"


class ConductorMode(str, Enum):
    """AUTO runs everything, GUIDED runs approved steps, MANUAL is user-driven."""

    AUTO = "AUTO"
    GUIDED = "GUIDED"
    MANUAL = "MANUAL"


class ComplianceLevel(str, Enum):
    BASIC = "BASIC"
    ENTERPRISE = "ENTERPRISE"
    GOVERNMENT = "GOVERNMENT"


class ComplianceStatus(str, Enum):
    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    REQUIRES_REVIEW = "REQUIRES_REVIEW"


class EdgeKind(str, Enum):
    """DEPENDENCY and SEQUENCE edges constrain order, PARALLEL_HINT does not."""

    DEPENDENCY = "dependency"
    SEQUENCE = "sequence"
    PARALLEL_HINT = "parallel-hint"


class TaskStatus(str, Enum):
    """Final state of one task within an execution run."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    CANCELLED = "CANCELLED"


class MultimodalInput(BaseModel):
    """A single high-level request."""

    text: str | None = None
    code: str | None = None
    images: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    compliance_policies: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def content(self) -> str:
        """Return the lower-cased text and code used for classification."""
        return f"{self.text or ''} {self.code or ''}".lower()
