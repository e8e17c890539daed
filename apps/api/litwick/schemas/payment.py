"""Payment and credit catalogue schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class CreditPackage(BaseModel):
    id: str
    name: str
    description: str
    credits: int
    price: float
    currency: str
    popular: bool = False
    discount: int = 0


class CreditPackageList(BaseModel):
    packages: list[CreditPackage]


class Payment(BaseModel):
    id: str
    account_id: str
    provider_payment_id: str | None = None
    preference_id: str | None = None
    status: PaymentStatus
    amount: float
    currency: str
    credits_amount: int
    package_name: str
    payment_method: str | None = None
    payment_details: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class PaymentList(BaseModel):
    payments: list[Payment]


class CreatePaymentRequest(BaseModel):
    package_id: str = Field(min_length=1)


class CreatePaymentResponse(BaseModel):
    payment_id: str
    init_point: str
    preference_id: str


class PaymentCallbackResponse(BaseModel):
    payment: Payment
    replayed: bool
    message: str


class WebhookData(BaseModel):
    id: str | int | None = None


class WebhookNotification(BaseModel):
    """Inbound provider notification body; only the fields reconciliation reads."""

    type: str | None = None
    action: str | None = None
    data: WebhookData = Field(default_factory=WebhookData)


class WebhookAck(BaseModel):
    received: bool = True
    processed: bool
