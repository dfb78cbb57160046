"""Portfolio-level risk analytics models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from .enums import ContractStatus, ContractType, RiskLevel, RiskTrend


def empty_distribution() -> Dict[RiskLevel, int]:
    """A risk distribution with a zero count for every level."""
    return {level: 0 for level in RiskLevel}


@dataclass
class Contract:
    """Contract metadata needed to group analyses by type and client."""
    id: str
    client_id: str
    name: str = ""
    contract_type: ContractType = ContractType.CUSTOM
    status: ContractStatus = ContractStatus.DRAFT
    value: Optional[float] = None
    currency: Optional[str] = None


@dataclass
class AnalyticsPeriod:
    """Inclusive time window analytics are computed over."""
    start: datetime
    end: datetime
    label: str = ""

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError("Analytics period end must not precede its start")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass
class RiskBreakdown:
    """Risk counts and mean numeric risk for a group of contracts."""
    count: int = 0
    risk_distribution: Dict[RiskLevel, int] = field(default_factory=empty_distribution)
    average_risk_score: float = 0.0


@dataclass
class ClientRiskBreakdown(RiskBreakdown):
    """Per-client breakdown, with the client's trend over the period."""
    trend: RiskTrend = RiskTrend.STABLE


@dataclass
class RiskMitigation:
    """How well violations are being resolved across the portfolio."""
    total_violations: int = 0
    resolved_violations: int = 0
    effectiveness: float = 0.0
    contracts_with_mitigation: int = 0
    common_risk_factors: List[str] = field(default_factory=list)
    recommended_actions: List[str] = field(default_factory=list)


@dataclass
class RiskTrendPoint:
    """Risk-level counts of the analyses recorded on one day."""
    day: date
    counts: Dict[RiskLevel, int] = field(default_factory=empty_distribution)


@dataclass
class RiskAnalytics:
    """Fleet-wide risk analytics for one period."""
    period: AnalyticsPeriod
    total_contracts: int = 0
    risk_distribution: Dict[RiskLevel, int] = field(default_factory=empty_distribution)
    risk_by_contract_type: Dict[ContractType, RiskBreakdown] = field(default_factory=dict)
    risk_by_client: Dict[str, ClientRiskBreakdown] = field(default_factory=dict)
    risk_mitigation: RiskMitigation = field(default_factory=RiskMitigation)
    risk_trends: List[RiskTrendPoint] = field(default_factory=list)
    average_risk_score: float = 0.0
    generated_at: datetime = field(default_factory=datetime.utcnow)
