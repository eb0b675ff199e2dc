"""Pydantic schemas for the billing endpoints the portal writes to.

Learn: Reads come back as plain dicts — the backend owns those shapes and
the portal only displays them. Writes go through these models so the
payload sent is always the one the backend expects:
- TransactionCreate: POST /api/v1/transactions/ (manual cash payment)
- VoucherPurchase: POST /api/v1/vouchers/purchase/

The IntEnums mirror the backend's numeric type codes and are used for
display labels.
"""

from enum import IntEnum
from typing import Optional, Union

from pydantic import BaseModel, Field


# ─── Type codes ──────────────────────────────────────────


class CustomerType(IntEnum):
    HOTSPOT = 1
    PPPOE = 2
    STATIC = 3
    HOME = 4


class PlanType(IntEnum):
    BILLING_PLAN = 1
    COUPON = 2


class TransactionType(IntEnum):
    MPESA = 1
    PURCHASE = 2
    INVOICE = 3
    CASH = 4
    FLUTTERWAVE = 5
    KOPO_KOPO = 6
    REVERSAL = 7
    TRANSFER = 8
    REFUND = 9


# One table per enum: members of different IntEnums with the same value
# hash and compare equal.
LABELS = {
    CustomerType: {
        CustomerType.HOTSPOT: "Hotspot",
        CustomerType.PPPOE: "PPPoE",
        CustomerType.STATIC: "Static",
        CustomerType.HOME: "Home",
    },
    PlanType: {
        PlanType.BILLING_PLAN: "Billing Plan",
        PlanType.COUPON: "Coupon",
    },
    TransactionType: {
        TransactionType.MPESA: "M-Pesa Top up",
        TransactionType.PURCHASE: "Purchase plan",
        TransactionType.INVOICE: "Invoice clearance",
        TransactionType.CASH: "Cash payment",
        TransactionType.FLUTTERWAVE: "Flutter wave",
        TransactionType.KOPO_KOPO: "Kopo kopo",
        TransactionType.REVERSAL: "Payment reversal",
        TransactionType.TRANSFER: "Balance transfer",
        TransactionType.REFUND: "Voucher refund",
    },
}


def type_label(enum_cls: type[IntEnum], code: Union[int, str]) -> str:
    """Human label for a numeric type code; unknown codes render as "Type N"."""
    try:
        return LABELS[enum_cls][enum_cls(int(code))]
    except (KeyError, ValueError):
        return f"Type {code}"



# ─── Write payloads ──────────────────────────────────────


class TransactionCreate(BaseModel):
    """Manual payment. The backend forces the type to cash regardless."""
    customer: str
    amount: float = Field(..., gt=0)
    narrative: Optional[str] = None
    type: TransactionType = TransactionType.CASH


class VoucherPurchase(BaseModel):
    """Buy a voucher on a billing plan for one of the partner's customers."""
    billing_id: str
    customer_profile: str
