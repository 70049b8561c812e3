"""
Sales Reconciliation Engine

Ingests sales, refund and shipment reports, resolves their SKUs against
the catalog, merges them into durable logs and derives per-product
operating metrics.
"""

__version__ = "0.3.0"
