"""
Unit Tests - History Merging
"""
from datetime import date

import pytest

from salesrecon.domain.models import PriceLog, RefundLog, ShipmentLog
from salesrecon.history import (
    ContainerChange,
    merge_price_logs,
    merge_refund_logs,
    merge_shipment_logs,
    price_log_id,
    refund_id,
)

DAY = date(2025, 3, 14)


def price_log(sku="MASTER-UK", day=DAY, platform="Amazon", order_id=None, price=10.0, velocity=1.0):
    return PriceLog(
        id=price_log_id(sku, day, platform, order_id),
        sku=sku,
        date=day,
        price=price,
        velocity=velocity,
        platform=platform,
        order_id=order_id,
    )


class TestIds:
    """Tests for deterministic log ids"""
    
    def test_price_log_id_stable(self):
        """Test same key gives the same id regardless of case and padding"""
        assert price_log_id("master-uk ", DAY, "AMAZON") == price_log_id("MASTER-UK", DAY, "amazon")
        assert price_log_id("MASTER-UK", DAY, "Amazon").startswith("pl-")
    
    def test_order_id_changes_key(self):
        """Test order-level ids ignore date and platform"""
        assert price_log_id("A", DAY, "Amazon", "O-1") == price_log_id("A", date(2025, 1, 1), "eBay", "O-1")
        assert price_log_id("A", DAY, "Amazon", "O-1") != price_log_id("A", DAY, "Amazon")
    
    def test_refund_id(self):
        """Test refund ids use a truncated, lower-cased reason"""
        first = refund_id("SKU", DAY, 9.5, 1, "Item arrived damaged in transit")
        second = refund_id("sku", DAY, 9.50, 1.0, "ITEM ARRIVED DAMAGED somewhere else")
        
        assert first == second
        assert first.startswith("ref-")
        assert refund_id("SKU", DAY, 9.5, 1) == refund_id("SKU", DAY, 9.5, 1, "unknown")


class TestMergePriceLogs:
    """Tests for merge_price_logs"""
    
    def test_idempotent(self):
        """Test merging the same batch twice changes nothing"""
        batch = [price_log(), price_log(platform="eBay"), price_log(order_id="O-9", day=date(2025, 3, 10))]
        
        once, _ = merge_price_logs([], batch)
        twice, stats = merge_price_logs(once, batch)
        
        assert twice == once
        assert stats.inserted == 0
        assert stats.replaced == 3
    
    def test_replaces_same_key(self):
        """Test a re-imported bucket replaces the stored one"""
        merged, stats = merge_price_logs([price_log(price=10.0)], [price_log(price=11.0)])
        
        assert len(merged) == 1
        assert merged[0].price == 11.0
        assert stats.replaced == 1
    
    def test_last_wins_within_batch(self):
        """Test duplicate keys in one batch keep the later entry"""
        merged, stats = merge_price_logs([], [price_log(price=1.0), price_log(price=2.0)])
        
        assert [log.price for log in merged] == [2.0]
        assert stats.skipped == 1
    
    def test_order_level_supersedes_stored_aggregate(self):
        """Test incoming order detail removes aggregate entries for that day"""
        stored = [price_log(platform="Amazon"), price_log(platform="eBay"), price_log(day=date(2025, 3, 13))]
        
        merged, stats = merge_price_logs(stored, [price_log(order_id="O-1")])
        
        assert stats.superseded == 2
        assert {(log.date, log.order_id) for log in merged} == {(date(2025, 3, 13), None), (DAY, "O-1")}
    
    def test_later_cross_platform_aggregate_kept(self):
        """Test an aggregate imported after order detail for the same day survives"""
        stored = [price_log(order_id="A-1", velocity=2.0)]
        
        merged, stats = merge_price_logs(stored, [price_log(platform="eBay", velocity=30.0)])
        
        assert len(merged) == 2
        assert sum(log.velocity for log in merged) == 32.0
        assert stats.superseded == 0
        assert stats.inserted == 1
    
    def test_mixed_batch_keeps_aggregate(self):
        """Test order detail and an aggregate in one import both count"""
        batch = [price_log(order_id="A-1", velocity=2.0), price_log(platform="eBay", velocity=30.0)]
        
        merged, stats = merge_price_logs([], batch)
        
        assert sum(log.velocity for log in merged) == 32.0
        assert stats.superseded == 0
        assert merge_price_logs(merged, batch)[0] == merged
    
    def test_inputs_untouched(self):
        """Test merging returns a new list"""
        stored = [price_log()]
        merge_price_logs(stored, [price_log(platform="eBay")])
        
        assert len(stored) == 1


class TestMergeRefundLogs:
    """Tests for merge_refund_logs"""
    
    def test_duplicates_skipped(self):
        """Test refunds with a known id are not appended again"""
        refund = RefundLog(id=refund_id("A", DAY, 5.0, 1, "broken"), sku="A", date=DAY, amount=5.0, reason="broken")
        
        merged, stats = merge_refund_logs([refund], [refund, refund])
        
        assert merged == [refund]
        assert stats.skipped == 2


class TestMergeShipmentLogs:
    """Tests for merge_shipment_logs"""
    
    def test_upsert_by_container_and_sku(self):
        """Test a newer report replaces the line for the same container and SKU"""
        stored = [ShipmentLog(container_id="C1", sku="A", quantity=10, eta=date(2025, 4, 1))]
        incoming = [
            ShipmentLog(container_id="C1", sku="a", quantity=12, eta=date(2025, 4, 1)),
            ShipmentLog(container_id="C1", sku="B", quantity=5, eta=date(2025, 4, 1)),
        ]
        
        result = merge_shipment_logs(stored, incoming)
        
        assert len(result.logs) == 2
        assert result.stats.replaced == 1
        assert result.stats.inserted == 1
        assert sum(log.quantity for log in result.logs) == 17
    
    def test_container_changes(self):
        """Test container summaries report delays first"""
        stored = [
            ShipmentLog(container_id="C1", sku="A", quantity=10, eta=date(2025, 4, 1)),
            ShipmentLog(container_id="C2", sku="A", quantity=10, status="To Be Shipped"),
        ]
        incoming = [
            ShipmentLog(container_id="C3", sku="A", quantity=1),
            ShipmentLog(container_id="C2", sku="A", quantity=10, status="Shipped"),
            ShipmentLog(container_id="C1", sku="A", quantity=10, eta=date(2025, 4, 8)),
        ]
        
        containers = merge_shipment_logs(stored, incoming).containers
        
        assert [c.container_id for c in containers] == ["C1", "C2", "C3"]
        assert containers[0].change == ContainerChange.DELAYED
        assert containers[0].days_diff == 7
        assert containers[1].change == ContainerChange.STATUS_CHANGE
        assert containers[2].change == ContainerChange.NEW
    
    @pytest.mark.parametrize("new_eta,expected", [
        (date(2025, 3, 25), ContainerChange.EARLIER),
        (date(2025, 4, 1), ContainerChange.UNCHANGED),
    ])
    def test_eta_comparison(self, new_eta, expected):
        """Test earlier and unchanged ETAs"""
        stored = [ShipmentLog(container_id="C1", sku="A", quantity=1, eta=date(2025, 4, 1))]
        
        result = merge_shipment_logs(stored, [ShipmentLog(container_id="C1", sku="A", quantity=1, eta=new_eta)])
        
        assert result.containers[0].change == expected
