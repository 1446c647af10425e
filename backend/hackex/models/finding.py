from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    POSITIVE = "positive"


class FindingType(str, Enum):
    RUNTIME = "runtime"  # Observed on the live target
    STATIC = "static"  # Found inside an uploaded archive


class Finding(BaseModel):
    """A single observation produced by a probe or the archive scanner."""

    type: FindingType = Field(..., description="Where the finding was observed")
    title: str = Field(..., description="Short human readable title")
    severity: Severity = Field(..., description="Severity level")
    location: str = Field(..., description="URL, relative file path or host:port")
    evidence: str = Field("", description="Supporting evidence (truncated)")

    model_config = ConfigDict(frozen=True, use_enum_values=True)


class Explanation(BaseModel):
    """Plain language explanation attached to a finding."""

    explanation: str = ""
    attack_scenario: str = ""
    business_impact: str = ""
    fix_recommendation: str = ""

    def is_empty(self) -> bool:
        return not any(
            (self.explanation, self.attack_scenario, self.business_impact, self.fix_recommendation)
        )


class ExplainedFinding(Finding):
    explanation: Optional[str] = None
    attack_scenario: Optional[str] = None
    business_impact: Optional[str] = None
    fix_recommendation: Optional[str] = None
