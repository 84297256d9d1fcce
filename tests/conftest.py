from __future__ import annotations

from typing import Any, Dict

import pytest


def make_group(**overrides: Any) -> Dict[str, Any]:
    group = {
        "furnitureType": "Sofa",
        "materialCompany": "Ontario Fabrics",
        "materialCode": "OF-221",
        "materialPrice": "0",
        "materialQnty": "0",
        "labourPrice": "0",
        "labourQnty": "0",
    }
    group.update(overrides)
    return group


@pytest.fixture
def sample_order() -> Dict[str, Any]:
    """The worked example: 2 x $100 material, $50 labour, $20 foam."""
    return {
        "id": "ord-1",
        "orderDetails": {"billInvoice": "1001", "startDate": "2024-01-22", "endDate": "2024-02-20"},
        "furnitureData": {
            "groups": [
                make_group(
                    materialPrice=100,
                    materialQnty=2,
                    labourPrice=50,
                    labourQnty=1,
                    foamEnabled=True,
                    foamPrice=20,
                    foamQnty=1,
                )
            ]
        },
        "paymentData": {"pickupDeliveryEnabled": False, "deposit": "100", "amountPaid": "150"},
    }
