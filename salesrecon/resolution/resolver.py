"""
SKU Resolver

Maps a raw import identifier onto a canonical catalog SKU:
- Exact catalog match
- Learned aliases (confirmed by earlier reviews) and channel alias strings
- Regional / numeric suffix stripping ("MASTER-UK_1" -> "MASTER-UK")
- Separator-delimited prefix match, longest canonical SKU first

Heuristic matches are proposals only; they go through the mapping reviewer.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional

from salesrecon.domain.models import Product, normalize_sku

SUFFIX_PATTERN = re.compile(r"[_ \-](UK|US|DE|FR|IT|ES|[0-9]+)$", re.IGNORECASE)
PREFIX_SEPARATORS = ("-", "_")


class ResolutionStatus(str, Enum):
    EXACT = "exact"
    LEARNED = "learned"
    HEURISTIC = "heuristic"
    UNRESOLVED = "unresolved"


class MatchRule(str, Enum):
    """Heuristic that produced a HEURISTIC resolution"""
    SUFFIX = "suffix"
    PREFIX = "prefix"


@dataclass(frozen=True)
class Resolution:
    import_sku: str
    status: ResolutionStatus
    canonical_sku: Optional[str] = None
    rule: Optional[MatchRule] = None
    
    @property
    def is_certain(self) -> bool:
        return self.status in (ResolutionStatus.EXACT, ResolutionStatus.LEARNED)


class SkuResolver:
    """
    Resolver with lookup tables built once per import.
    
    Example:
        resolver = SkuResolver(catalog, learned_aliases)
        resolution = resolver.resolve("MASTER-UK_1")
        # Resolution(status=HEURISTIC, canonical_sku="MASTER-UK", rule=SUFFIX)
    """
    
    def __init__(self, catalog: Iterable[Product], learned_aliases: Optional[Mapping[str, str]] = None):
        self._catalog: Dict[str, str] = {}
        self._aliases: Dict[str, str] = {}
        
        products = list(catalog)
        for product in products:
            self._catalog.setdefault(normalize_sku(product.sku), product.sku)
        
        # Channel alias strings first so confirmed learned aliases override them
        for product in products:
            for channel in product.channels:
                for alias in channel.aliases:
                    self._aliases.setdefault(normalize_sku(alias), product.sku)
        for alias, canonical in (learned_aliases or {}).items():
            self._aliases[normalize_sku(alias)] = canonical
        
        # Longest first so the prefix scan can stop at the first hit
        self._by_length = sorted(self._catalog.items(), key=lambda item: len(item[0]), reverse=True)
    
    def resolve(self, import_sku: str) -> Resolution:
        """Resolve one import SKU; never raises"""
        key = normalize_sku(import_sku)
        raw = str(import_sku).strip()
        
        if key in self._catalog:
            return Resolution(raw, ResolutionStatus.EXACT, self._catalog[key])
        
        if key in self._aliases:
            return Resolution(raw, ResolutionStatus.LEARNED, self._aliases[key])
        
        stripped = SUFFIX_PATTERN.sub("", key)
        if stripped != key and stripped in self._catalog:
            return Resolution(raw, ResolutionStatus.HEURISTIC, self._catalog[stripped], MatchRule.SUFFIX)
        
        for candidate, canonical in self._by_length:
            if (
                len(key) > len(candidate)
                and key.startswith(candidate)
                and key[len(candidate)] in PREFIX_SEPARATORS
            ):
                return Resolution(raw, ResolutionStatus.HEURISTIC, canonical, MatchRule.PREFIX)
        
        return Resolution(raw, ResolutionStatus.UNRESOLVED)


def resolve(
    import_sku: str,
    catalog: Iterable[Product],
    learned_aliases: Optional[Mapping[str, str]] = None,
) -> Resolution:
    """One-off resolution; build a SkuResolver for repeated calls"""
    return SkuResolver(catalog, learned_aliases).resolve(import_sku)
