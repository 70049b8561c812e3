"""
Unit Tests - Transaction Aggregation
"""
from datetime import date

import pytest

from salesrecon.aggregation import (
    AggregationBucket,
    TransactionAggregator,
    UpsertOutcome,
    period_index,
    span_days,
    week_start,
)
from salesrecon.domain.models import EngineConfig, FeeCategory, Product


class TestPeriods:
    """Tests for weekly period arithmetic"""
    
    def test_week_starts_on_friday(self):
        """Test Friday anchored weeks"""
        assert week_start(date(2025, 3, 14)) == date(2025, 3, 14)  # Friday
        assert week_start(date(2025, 3, 20)) == date(2025, 3, 14)  # Thursday
        assert week_start(date(2025, 3, 13)) == date(2025, 3, 7)
    
    def test_period_index_walks_backward(self):
        """Test period 0 holds the latest date"""
        latest = date(2025, 3, 18)
        
        assert period_index(date(2025, 3, 14), latest) == 0
        assert period_index(date(2025, 3, 13), latest) == 1
        assert period_index(date(2025, 3, 1), latest) == 2
    
    def test_span_days_inclusive(self):
        """Test import span counts both ends"""
        assert span_days([date(2025, 3, 1), date(2025, 3, 30)]) == 30
        assert span_days([date(2025, 3, 1)]) == 1
        assert span_days([]) == 0


class TestAggregationBucket:
    """Tests for weighted unit values"""
    
    def test_weighted_average_not_naive_mean(self, make_row):
        """Test quantity weighting: (1000 + 50) / 101"""
        bucket = AggregationBucket()
        bucket.add(make_row(quantity=100, revenue=1000.0))
        bucket.add(make_row(quantity=1, revenue=50.0))
        
        assert bucket.unit_price == pytest.approx(1050 / 101)
        assert bucket.unit_price == pytest.approx(10.396, abs=1e-3)
    
    def test_zero_quantity_is_undefined(self):
        """Test an empty bucket has no average"""
        assert AggregationBucket().unit_price is None
    
    def test_margin_from_profit(self, make_row):
        """Test reported profit drives the margin"""
        bucket = AggregationBucket()
        bucket.add(make_row(quantity=2, revenue=20.0, profit=5.0))
        
        assert bucket.margin() == pytest.approx(25.0)
    
    def test_margin_from_weighted_percent(self, make_row):
        """Test margin column is quantity weighted when profit is absent"""
        bucket = AggregationBucket()
        bucket.add(make_row(quantity=3, revenue=30.0, margin_percent=10.0))
        bucket.add(make_row(quantity=1, revenue=10.0, margin_percent=30.0))
        
        # (10 * 3 + 30 * 1) / 4
        assert bucket.margin() == pytest.approx(15.0)
    
    def test_margin_from_costs(self, make_row):
        """Test net margin fallback from unit cost and fees"""
        bucket = AggregationBucket()
        bucket.add(make_row(
            quantity=2,
            revenue=20.0,
            unit_cost=4.0,
            fees={FeeCategory.POSTAGE: 4.0, FeeCategory.EXTRA_FREIGHT: 2.0},
        ))
        
        # ((10 + 1) - (4 + 2)) / 10
        assert bucket.margin() == pytest.approx(50.0)


class TestTransactionAggregator:
    """Tests for TransactionAggregator"""
    
    @pytest.fixture
    def aggregator(self, engine_config):
        return TransactionAggregator(engine_config)
    
    def test_non_sales_skipped(self, aggregator, make_row):
        """Test zero revenue rows are counted, not aggregated"""
        output = aggregator.aggregate([make_row(revenue=0.0), make_row(revenue=0.001), make_row()])
        
        assert output.skipped_non_sale == 2
        assert output.rows_aggregated == 1
    
    def test_resolution_map_applied(self, aggregator, make_row):
        """Test rows aggregate into the resolved SKU and record the alias"""
        rows = [make_row(sku="MASTER-UK"), make_row(sku="master-uk_1", platform="eBay")]
        
        output = aggregator.aggregate(rows, {"MASTER-UK": "MASTER-UK", "MASTER-UK_1": "MASTER-UK"})
        
        result = output.results["MASTER-UK"]
        assert result.totals.quantity == 2
        assert result.aliases == {"master-uk_1"}
        assert result.channel_aliases == {"eBay": {"master-uk_1"}}
    
    def test_excluded_platform_kept_out_of_totals(self, aggregator, make_row):
        """Test excluded platforms only reach channels and history"""
        rows = [make_row(quantity=1, revenue=10.0), make_row(quantity=5, revenue=25.0, platform="Wholesale")]
        
        output = aggregator.aggregate(rows)
        
        result = output.results["MASTER-UK"]
        assert result.totals.quantity == 1
        assert result.channels["Wholesale"].quantity == 5
        assert {log.platform for log in output.history} == {"Amazon", "Wholesale"}
    
    def test_weekly_buckets(self, aggregator, make_row):
        """Test rows land in anchor-weekday periods"""
        rows = [
            make_row(day=date(2025, 3, 14), quantity=2, revenue=24.0),
            make_row(day=date(2025, 3, 10), quantity=1, revenue=10.0),
        ]
        
        result = aggregator.aggregate(rows).results["MASTER-UK"]
        
        assert result.weekly_price(0) == pytest.approx(12.0)
        assert result.weekly_price(1) == pytest.approx(10.0)
        assert result.weekly_price(2) is None
    
    def test_history_buckets(self, aggregator, make_row):
        """Test daily buckets per platform and per order"""
        rows = [
            make_row(quantity=1, revenue=10.0),
            make_row(quantity=3, revenue=33.0),
            make_row(quantity=1, revenue=12.0, order_id="O-1"),
        ]
        
        output = aggregator.aggregate(rows)
        
        by_order = {log.order_id: log for log in output.history}
        assert by_order[None].velocity == 4
        assert by_order[None].price == pytest.approx(43 / 4)
        assert by_order["O-1"].velocity == 1
        assert len({log.id for log in output.history}) == 2
    
    def test_fee_bounds_and_outliers(self, aggregator, make_row):
        """Test per-unit fee bounds flag an outlier"""
        rows = [make_row(quantity=1, fees={FeeCategory.POSTAGE: 1.0}) for _ in range(9)]
        rows.append(make_row(quantity=1, fees={FeeCategory.POSTAGE: 11.0}))
        
        result = aggregator.aggregate(rows).results["MASTER-UK"]
        
        assert result.fee_bounds[FeeCategory.POSTAGE].min == 1.0
        assert result.fee_bounds[FeeCategory.POSTAGE].max == 11.0
        assert result.fee_outliers(3.0) == [FeeCategory.POSTAGE]
    
    def test_upsert_creates_product(self, aggregator, make_row):
        """Test unresolved SKUs create products"""
        output = aggregator.aggregate([make_row(sku="NEW-1", quantity=4, revenue=40.0, unit_cost=3.0)])
        
        product, outcome = aggregator.upsert_product(None, output.results["NEW-1"], output.period_days)
        
        assert outcome == UpsertOutcome.CREATED
        assert product.sku == "NEW-1"
        assert product.cost_price == pytest.approx(3.0)
        assert product.channels[0].manager == "Alice"
        assert product.channels[0].velocity == pytest.approx(4.0)
    
    def test_upsert_updates_channels_and_keeps_locked_cost(self, make_row):
        """Test channel update, gross-up factor and cost lock"""
        aggregator = TransactionAggregator(EngineConfig(gross_up_factor=1.2))
        product = Product(sku="MASTER-UK", cost_price=5.0, cost_locked=True)
        rows = [
            make_row(day=date(2025, 3, 1), quantity=10, revenue=100.0, unit_cost=2.0),
            make_row(day=date(2025, 3, 10), quantity=10, revenue=100.0, unit_cost=2.0),
        ]
        output = aggregator.aggregate(rows)
        
        updated, outcome = aggregator.upsert_product(product, output.results["MASTER-UK"], output.period_days)
        
        assert outcome == UpsertOutcome.UPDATED
        assert updated.cost_price == 5.0
        channel = updated.channel("Amazon")
        assert channel.price == pytest.approx(12.0)
        assert channel.velocity == pytest.approx(2.0)
        assert updated.last_updated == date(2025, 3, 10)
