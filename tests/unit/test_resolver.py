"""
Unit Tests - SKU Resolution
"""
import pytest

from salesrecon.domain.models import Product
from salesrecon.resolution import MatchRule, ResolutionStatus, SkuResolver, resolve


class TestSkuResolver:
    """Tests for SkuResolver"""
    
    def test_exact_match_is_case_insensitive(self, catalog):
        """Test exact catalog match"""
        resolution = resolve(" master-uk ", catalog)
        
        assert resolution.status == ResolutionStatus.EXACT
        assert resolution.canonical_sku == "MASTER-UK"
    
    def test_learned_alias(self, catalog):
        """Test learned aliases resolve as LEARNED"""
        resolution = resolve("lamp-amz", catalog, {"LAMP-AMZ": "MASTER-UK"})
        
        assert resolution.status == ResolutionStatus.LEARNED
        assert resolution.canonical_sku == "MASTER-UK"
        assert resolution.is_certain
    
    def test_channel_alias_string(self, catalog):
        """Test channel alias strings count as learned"""
        resolution = resolve("hose_2", catalog)
        
        assert resolution.status == ResolutionStatus.LEARNED
        assert resolution.canonical_sku == "GARDEN-HOSE"
    
    def test_suffix_strip(self, catalog):
        """Test numeric suffix is stripped to reach the master SKU"""
        resolution = resolve("MASTER-UK_1", catalog)
        
        assert resolution.status == ResolutionStatus.HEURISTIC
        assert resolution.canonical_sku == "MASTER-UK"
        assert resolution.rule == MatchRule.SUFFIX
        assert not resolution.is_certain
    
    @pytest.mark.parametrize("import_sku", ["MASTER-US", "MASTER_DE", "MASTER 3"])
    def test_region_suffix(self, import_sku):
        """Test region codes and separators"""
        resolution = resolve(import_sku, [Product(sku="MASTER")])
        
        assert resolution.status == ResolutionStatus.HEURISTIC
        assert resolution.canonical_sku == "MASTER"
    
    def test_exact_beats_suffix(self, catalog):
        """Test an import SKU present in the catalog is never stripped"""
        products = catalog + [Product(sku="MASTER-UK_1")]
        
        resolution = resolve("MASTER-UK_1", products)
        
        assert resolution.status == ResolutionStatus.EXACT
        assert resolution.canonical_sku == "MASTER-UK_1"
    
    def test_prefix_requires_separator(self, catalog):
        """Test BF10 never matches as a prefix of BF100"""
        resolution = resolve("BF100X", catalog)
        
        assert resolution.status == ResolutionStatus.UNRESOLVED
    
    def test_prefix_prefers_longest(self, catalog):
        """Test the longest prefix candidate wins"""
        resolution = resolve("BF100-BLUE", catalog)
        
        assert resolution.status == ResolutionStatus.HEURISTIC
        assert resolution.canonical_sku == "BF100"
        assert resolution.rule == MatchRule.PREFIX
    
    def test_unresolved(self, catalog):
        """Test unknown SKUs are unresolved"""
        resolution = resolve("NEW-THING", catalog)
        
        assert resolution.status == ResolutionStatus.UNRESOLVED
        assert resolution.canonical_sku is None
    
    def test_resolver_reuse(self, catalog):
        """Test one resolver serves repeated calls"""
        resolver = SkuResolver(catalog, {"X1": "BF10"})
        
        statuses = [resolver.resolve(s).status for s in ["BF10", "x1", "BF10_UK", "ZZZ"]]
        
        assert statuses == [
            ResolutionStatus.EXACT,
            ResolutionStatus.LEARNED,
            ResolutionStatus.HEURISTIC,
            ResolutionStatus.UNRESOLVED,
        ]
