"""
Unit Tests - Mapping Review
"""
import pytest

from salesrecon.exceptions import ImportStateError, ReviewPendingError
from salesrecon.resolution import MappingReviewer, ReviewDecision, SkuResolver


@pytest.fixture
def reviewer(catalog):
    resolver = SkuResolver(catalog)
    reviewer = MappingReviewer()
    for sku, revenue in [("MASTER-UK_1", 10.0), ("MASTER-UK_1", 12.0), ("BF10-RED", 5.0), ("BF10", 3.0)]:
        reviewer.observe(resolver.resolve(sku), revenue=revenue)
    return reviewer


class TestMappingReviewer:
    """Tests for MappingReviewer"""
    
    def test_only_heuristic_matches_become_candidates(self, reviewer):
        """Test exact matches are not reviewed"""
        skus = sorted(c.import_sku for c in reviewer.candidates)
        
        assert skus == ["BF10-RED", "MASTER-UK_1"]
    
    def test_candidate_totals(self, reviewer):
        """Test rows and revenue at stake are summed per import SKU"""
        candidate = reviewer.get("master-uk_1")
        
        assert candidate.row_count == 2
        assert candidate.revenue == pytest.approx(22.0)
        assert candidate.decision == ReviewDecision.PENDING
    
    def test_pending_blocks(self, reviewer):
        """Test aggregation gate while candidates are pending"""
        reviewer.decide("MASTER-UK_1", approve=True)
        
        with pytest.raises(ReviewPendingError) as exc_info:
            reviewer.require_complete()
        
        assert exc_info.value.details["pending"] == ["BF10-RED"]
    
    def test_resolution_map(self, reviewer, catalog):
        """Test approved map to the proposal, rejected stand alone"""
        reviewer.decide("MASTER-UK_1", approve=True)
        reviewer.decide("BF10-RED", approve=False)
        resolver = SkuResolver(catalog)
        
        mapping = reviewer.resolution_map(resolver.resolve(s) for s in ["MASTER-UK_1", "BF10-RED", "BF10", "NEW-1"])
        
        assert mapping == {
            "MASTER-UK_1": "MASTER-UK",
            "BF10-RED": "BF10-RED",
            "BF10": "BF10",
            "NEW-1": "NEW-1",
        }
        assert reviewer.approved_aliases() == {"MASTER-UK_1": "MASTER-UK"}
    
    def test_decision_can_change_until_closed(self, reviewer):
        """Test re-deciding and the closed gate"""
        reviewer.decide("BF10-RED", approve=True)
        reviewer.decide("BF10-RED", approve=False)
        assert reviewer.get("BF10-RED").decision == ReviewDecision.REJECTED
        
        reviewer.closed = True
        with pytest.raises(ImportStateError):
            reviewer.decide("BF10-RED", approve=True)
    
    def test_no_candidates_skips_review(self, catalog):
        """Test an import without heuristic matches needs no review"""
        reviewer = MappingReviewer()
        reviewer.observe(SkuResolver(catalog).resolve("BF10"))
        
        assert not reviewer.needs_review
        reviewer.require_complete()
