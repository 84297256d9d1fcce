import json

import pytest

from order_finance.importers.orders_file import load_order, load_orders


def test_orders_without_id_take_the_file_stem(tmp_path) -> None:
    (tmp_path / "march.json").write_text(json.dumps([{"status": "done"}, {"id": "x9"}]), encoding="utf-8")
    (tmp_path / "solo.yaml").write_text("orderDetails:\n  billInvoice: 77\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    docs = load_orders(tmp_path)
    assert [d["id"] for d in docs] == ["march-1", "x9", "solo"]


def test_load_order_returns_the_stored_document(tmp_path) -> None:
    p = tmp_path / "order.json"
    p.write_text(json.dumps({"orders": [{"status": "pending"}]}), encoding="utf-8")
    assert load_order(p) == {"status": "pending"}
    p.write_text(json.dumps([{}, {}]), encoding="utf-8")
    with pytest.raises(ValueError, match="found 2"):
        load_order(p)
