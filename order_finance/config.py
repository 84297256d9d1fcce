from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

from .calculators.tax_rates import load_tax_rates
from .models import FinancePolicy


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_policy(configs_dir: Optional[Path] = None) -> FinancePolicy:
    configs_dir = configs_dir or Path("configs")
    return FinancePolicy(**_load_yaml(configs_dir / "policy.yaml"))


def load_configs(configs_dir: Optional[Path] = None) -> Tuple[FinancePolicy, Dict[str, Decimal]]:
    configs_dir = configs_dir or Path("configs")
    return load_policy(configs_dir), load_tax_rates(configs_dir / "material_tax_rates.yaml")
