from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

import yaml

from ..utils import parse_money


DEFAULT_TAX_RATE = Decimal("0.13")

# Used when the company list cannot be read.
FALLBACK_TAX_RATES: Dict[str, Decimal] = {
    "charlotte": Decimal("0.02"),
    "default": DEFAULT_TAX_RATE,
}


def _norm(name: Any) -> str:
    return str(name or "").strip().lower()


def build_tax_rates(companies: Iterable[Mapping[str, Any]]) -> Dict[str, Decimal]:
    """Build the lookup table from material company records.

    Each record has a name and a taxRate in percent; a missing or zero rate
    means 13%.
    """
    rates: Dict[str, Decimal] = {}
    for c in companies:
        name = _norm(c.get("name"))
        if not name:
            continue
        pct = parse_money(c.get("taxRate")) or Decimal(13)
        rates[name] = pct / Decimal(100)
    return rates


def tax_rate_for(
    company: Optional[str],
    rates: Optional[Mapping[str, Any]] = None,
    default: Decimal = DEFAULT_TAX_RATE,
) -> Decimal:
    """Purchase tax rate for a material company.

    Exact name first, then a substring match either way ("charlotte" matches
    "Charlotte Fabrics"), then the table's own "default" entry.
    """
    rates = rates or {}
    name = _norm(company)
    if not name:
        return default
    table = {_norm(k): v for k, v in rates.items()}
    if name in table:
        return parse_money(table[name])
    for key, rate in table.items():
        if key == "default" or not key:
            continue
        if key in name or name in key:
            return parse_money(rate)
    if "default" in table:
        return parse_money(table["default"])
    return default


def load_tax_rates(path: Path) -> Dict[str, Decimal]:
    """Read material_tax_rates.yaml.

    Accepts either a plain {company: rate} mapping (rates as fractions) or a
    `companies:` list of {name, taxRate} records in percent.
    """
    if not path.exists():
        return dict(FALLBACK_TAX_RATES)
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if isinstance(data, dict) and isinstance(data.get("companies"), list):
        rates = build_tax_rates(data["companies"])
        if data.get("default") is not None:
            rates["default"] = parse_money(data["default"])
        return rates
    return {_norm(k): parse_money(v) for k, v in (data or {}).items()}
