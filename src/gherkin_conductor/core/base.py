from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime


class UnitStatus(Enum):
    """Outcome of a registered unit of work"""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class UnitResult:
    """Standard result format for every test the host runner executed"""
    title: str
    status: UnitStatus
    path: List[str] = field(default_factory=list)
    error: Optional[BaseException] = None
    timestamp: datetime = None
    duration: float = 0.0
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()
        if self.metadata is None:
            self.metadata = {}

    @property
    def full_title(self) -> str:
        return " > ".join([*self.path, self.title])

    @property
    def passed(self) -> bool:
        return self.status == UnitStatus.PASSED

    @property
    def failed(self) -> bool:
        return self.status == UnitStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status == UnitStatus.SKIPPED


def summarize(results: List[UnitResult]) -> Dict[str, int]:
    """Count results per status"""
    summary = {"total": len(results), "passed": 0, "failed": 0, "skipped": 0}
    for result in results:
        summary[result.status.value] += 1
    return summary
