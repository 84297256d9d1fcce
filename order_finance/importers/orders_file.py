from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import yaml


SUFFIXES = (".json", ".yaml", ".yml")


def _read(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def _documents(data: Any) -> List[Dict[str, Any]]:
    if data is None:
        return []
    if isinstance(data, list):
        return [d for d in data if isinstance(d, dict)]
    if isinstance(data, dict):
        if isinstance(data.get("orders"), list):
            return [d for d in data["orders"] if isinstance(d, dict)]
        return [data]
    return []


def load_orders(path: Path, assign_ids: bool = True) -> List[Dict[str, Any]]:
    """Read raw order documents from an export file or a folder of them.

    A file may hold one document, a list, or {"orders": [...]}. With
    `assign_ids`, documents missing an id get a copy carrying the file stem;
    the documents read from disk are never modified.
    """
    path = Path(path)
    if path.is_dir():
        out: List[Dict[str, Any]] = []
        for p in sorted(path.iterdir()):
            if p.suffix.lower() in SUFFIXES:
                out.extend(load_orders(p, assign_ids))
        return out
    if path.suffix.lower() not in SUFFIXES:
        raise ValueError(f"Unsupported order file: {path.name}")
    docs = _documents(_read(path))
    if not assign_ids:
        return docs
    return [
        d if "id" in d else {**d, "id": path.stem if len(docs) == 1 else f"{path.stem}-{i + 1}"}
        for i, d in enumerate(docs)
    ]


def load_order(path: Path) -> Dict[str, Any]:
    """The single order in `path`, exactly as stored, ready to edit and save back."""
    docs = load_orders(path, assign_ids=False)
    if len(docs) != 1:
        raise ValueError(f"Expected one order in {Path(path).name}, found {len(docs)}")
    return docs[0]


def save_order(path: Path, doc: Dict[str, Any]) -> None:
    path = Path(path)
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(doc, indent=2, default=str), encoding="utf-8")
        return
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(doc, f, sort_keys=False, allow_unicode=True)
