"""
Mapping Reviewer

Two-phase gate between SKU detection and aggregation. Heuristic matches
become review candidates; aggregation waits until every candidate has
been approved or rejected.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

import structlog

from salesrecon.domain.models import normalize_sku
from salesrecon.exceptions import ImportStateError, ReviewPendingError
from .resolver import MatchRule, Resolution, ResolutionStatus

logger = structlog.get_logger(__name__)


class ReviewDecision(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class ReviewCandidate:
    """One distinct import SKU that matched heuristically"""
    import_sku: str
    proposed_sku: str
    rule: MatchRule
    row_count: int = 0
    revenue: float = 0.0
    decision: ReviewDecision = ReviewDecision.PENDING
    
    @property
    def key(self) -> str:
        return normalize_sku(self.import_sku)


class MappingReviewer:
    """
    Holds the review candidates of one import session.
    
    Example:
        reviewer = MappingReviewer()
        reviewer.observe(resolution, revenue=24.99)
        reviewer.decide("MASTER-UK_1", approve=True)
        reviewer.require_complete()
        aliases = reviewer.approved_aliases()
    """
    
    def __init__(self) -> None:
        self._candidates: Dict[str, ReviewCandidate] = {}
        self.closed = False
    
    def observe(self, resolution: Resolution, revenue: float = 0.0) -> Optional[ReviewCandidate]:
        """Record one row's resolution; only heuristic matches become candidates"""
        if resolution.status != ResolutionStatus.HEURISTIC:
            return None
        
        key = normalize_sku(resolution.import_sku)
        candidate = self._candidates.get(key)
        if candidate is None:
            candidate = ReviewCandidate(
                import_sku=resolution.import_sku,
                proposed_sku=resolution.canonical_sku,
                rule=resolution.rule,
            )
            self._candidates[key] = candidate
        candidate.row_count += 1
        candidate.revenue += revenue
        return candidate
    
    @property
    def candidates(self) -> List[ReviewCandidate]:
        return list(self._candidates.values())
    
    @property
    def pending(self) -> List[ReviewCandidate]:
        return [c for c in self._candidates.values() if c.decision == ReviewDecision.PENDING]
    
    @property
    def needs_review(self) -> bool:
        return bool(self._candidates)
    
    def get(self, import_sku: str) -> ReviewCandidate:
        try:
            return self._candidates[normalize_sku(import_sku)]
        except KeyError:
            raise KeyError(f"No review candidate for {import_sku!r}") from None
    
    def decide(self, import_sku: str, approve: bool) -> ReviewCandidate:
        """Approve or reject a candidate; decisions can change until the session closes"""
        if self.closed:
            raise ImportStateError("Review is closed", details={"import_sku": import_sku})
        candidate = self.get(import_sku)
        candidate.decision = ReviewDecision.APPROVED if approve else ReviewDecision.REJECTED
        logger.info(
            "Mapping decided",
            import_sku=candidate.import_sku,
            proposed_sku=candidate.proposed_sku,
            decision=candidate.decision.value,
        )
        return candidate
    
    def decide_all(self, approve: bool) -> None:
        for candidate in self.pending:
            self.decide(candidate.import_sku, approve)
    
    def require_complete(self) -> None:
        """Raise ReviewPendingError while any candidate is undecided"""
        pending = self.pending
        if pending:
            raise ReviewPendingError(
                f"{len(pending)} SKU mapping(s) awaiting review",
                details={"pending": [c.import_sku for c in pending]},
            )
    
    def resolution_map(self, resolutions: Iterable[Resolution]) -> Dict[str, str]:
        """
        Import SKU (normalised) -> SKU the rows aggregate into.
        
        Certain matches keep their canonical SKU, approved candidates map to
        the proposal, rejected and unresolved SKUs stand for themselves.
        """
        self.require_complete()
        mapping: Dict[str, str] = {}
        for resolution in resolutions:
            key = normalize_sku(resolution.import_sku)
            if resolution.is_certain:
                mapping[key] = resolution.canonical_sku
            elif key in self._candidates and self._candidates[key].decision == ReviewDecision.APPROVED:
                mapping[key] = self._candidates[key].proposed_sku
            else:
                mapping[key] = resolution.import_sku.strip()
        return mapping
    
    def approved_aliases(self) -> Dict[str, str]:
        """Normalised import SKU -> canonical SKU for every approved candidate"""
        return {
            key: c.proposed_sku
            for key, c in self._candidates.items()
            if c.decision == ReviewDecision.APPROVED
        }
