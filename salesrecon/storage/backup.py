"""
Backup bundles.

A bundle is one JSON-serialisable snapshot of the whole engine state. On
restore every record is validated before anything is replaced; a bundle
missing a required key or holding a malformed record is rejected whole.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from pydantic import TypeAdapter, ValidationError

from salesrecon.domain.models import (
    LOOKBACK_ALL_DAYS,
    EngineConfig,
    PlatformRule,
    PriceLog,
    Product,
    RefundLog,
    ShipmentLog,
    normalize_sku,
)
from salesrecon.exceptions import RestoreFormatError

REQUIRED_KEYS = ("products", "priceLogs", "refundLogs", "timestamp")

# Key names written by the earlier dashboard export
LEGACY_KEYS = {"history": "priceLogs", "refunds": "refundLogs"}

_products = TypeAdapter(List[Product])
_price_logs = TypeAdapter(List[PriceLog])
_refund_logs = TypeAdapter(List[RefundLog])
_shipment_logs = TypeAdapter(List[ShipmentLog])
_aliases = TypeAdapter(Dict[str, str])
_rules = TypeAdapter(Dict[str, PlatformRule])


@dataclass
class BackupSnapshot:
    """Validated contents of a bundle"""
    products: List[Product]
    price_logs: List[PriceLog]
    refund_logs: List[RefundLog]
    shipment_logs: List[ShipmentLog] = field(default_factory=list)
    learned_aliases: Dict[str, str] = field(default_factory=dict)
    configuration: EngineConfig = None
    timestamp: str = ""


def build_bundle(
    products: List[Product],
    price_logs: List[PriceLog],
    refund_logs: List[RefundLog],
    shipment_logs: List[ShipmentLog],
    learned_aliases: Mapping[str, str],
    configuration: EngineConfig,
) -> Dict[str, Any]:
    return {
        "products": [p.to_json() for p in products],
        "priceLogs": [log.to_json() for log in price_logs],
        "refundLogs": [log.to_json() for log in refund_logs],
        "shipmentLogs": [log.to_json() for log in shipment_logs],
        "learnedAliases": dict(learned_aliases),
        "configuration": configuration.to_json(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _validate(adapter: TypeAdapter, value: Any, key: str) -> Any:
    try:
        return adapter.validate_python(value)
    except ValidationError as e:
        raise RestoreFormatError(
            f"Backup key '{key}' holds malformed records",
            details={"key": key, "errors": e.errors(include_url=False, include_context=False)},
        ) from e


def _with_current_keys(bundle: Mapping[str, Any]) -> Dict[str, Any]:
    renamed = dict(bundle)
    for legacy, current in LEGACY_KEYS.items():
        if current not in renamed and legacy in renamed:
            renamed[current] = renamed.pop(legacy)
    return renamed


def _legacy_configuration(bundle: Mapping[str, Any], current_config: EngineConfig) -> EngineConfig:
    """Platform rules and lookback from an export that has no configuration block"""
    updates: Dict[str, Any] = {}
    if bundle.get("rules"):
        updates["platform_rules"] = _validate(_rules, bundle["rules"], "rules")
    setting = bundle.get("velocitySetting")
    if setting:
        if str(setting).strip().upper() == "ALL":
            updates["lookback_days"] = LOOKBACK_ALL_DAYS
        else:
            try:
                updates["lookback_days"] = int(setting)
            except (TypeError, ValueError):
                raise RestoreFormatError(
                    f"Backup key 'velocitySetting' is not a day count: {setting!r}",
                    details={"key": "velocitySetting"},
                ) from None
    if not updates:
        return current_config
    data = current_config.model_dump()
    data.update(updates)
    return _validate(TypeAdapter(EngineConfig), data, "velocitySetting")


def parse_bundle(bundle: Any, current_config: EngineConfig) -> BackupSnapshot:
    """
    Validate a bundle into a snapshot.
    
    Optional keys missing from older bundles fall back to empty logs, no
    aliases and the current configuration. Exports that use the older key
    names (history, refunds, rules, velocitySetting) are read as well.
    
    Raises:
        RestoreFormatError: if the bundle is not a mapping, lacks a required
            key or contains a malformed record
    """
    if not isinstance(bundle, Mapping):
        raise RestoreFormatError("Backup bundle must be a JSON object")
    
    bundle = _with_current_keys(bundle)
    missing = [key for key in REQUIRED_KEYS if key not in bundle]
    if missing:
        raise RestoreFormatError(
            f"Backup bundle is missing required keys: {', '.join(missing)}",
            details={"missing": missing},
        )
    
    products = _validate(_products, bundle["products"], "products")
    skus = [normalize_sku(p.sku) for p in products]
    if len(set(skus)) != len(skus):
        raise RestoreFormatError("Backup bundle contains duplicate product SKUs")
    
    if bundle.get("configuration") is not None:
        configuration = _validate(TypeAdapter(EngineConfig), bundle["configuration"], "configuration")
    else:
        configuration = _legacy_configuration(bundle, current_config)
    
    aliases = _validate(_aliases, bundle.get("learnedAliases") or {}, "learnedAliases")
    
    return BackupSnapshot(
        products=products,
        price_logs=_validate(_price_logs, bundle["priceLogs"], "priceLogs"),
        refund_logs=_validate(_refund_logs, bundle["refundLogs"], "refundLogs"),
        shipment_logs=_validate(_shipment_logs, bundle.get("shipmentLogs") or [], "shipmentLogs"),
        learned_aliases={normalize_sku(k): v for k, v in aliases.items()},
        configuration=configuration,
        timestamp=str(bundle["timestamp"]),
    )
