"""Request and response models shared by the route modules."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from analytics.services.api_server.models import Purchase, Segment

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def envelope(message: str, data: Any = None) -> dict[str, Any]:
    """Successful response body: ``{"success": true, "message", "data"}``."""
    return {"success": True, "message": message, "data": data}


class RegisterRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=6, max_length=128)
    phone: str | None = None
    city: str | None = None
    country: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    phone: str | None = None
    city: str | None = None
    country: str | None = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    role: str
    is_active: bool
    email_verified: bool
    phone: str | None = None
    city: str | None = None
    country: str | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None


class SegmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    criteria: dict[str, Any] = Field(default_factory=dict)


class SegmentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    criteria: dict[str, Any] | None = None
    is_active: bool | None = None


class RunSegmentationRequest(BaseModel):
    segment_id: int
    algorithm: str = Field(default="rfm", description="'rfm' or 'kmeans'")
    k: int | None = Field(default=None, ge=1, le=50, description="Cluster count for kmeans")


class PaymentItemIn(BaseModel):
    product_id: str
    product_name: str
    category: str
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    sku: str | None = None


class InitializePaymentRequest(BaseModel):
    items: list[PaymentItemIn] = Field(min_length=1)
    currency: str = Field(default="GHS", min_length=3, max_length=3)
    payment_method: Literal["card", "mobile_money", "bank_transfer"] = "card"
    metadata: dict[str, Any] = Field(default_factory=dict)


class RefundRequest(BaseModel):
    reference: str
    amount: Decimal | None = Field(default=None, gt=0)


class CampaignCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    type: Literal["email", "sms", "in_app", "push"]
    target_segment_ids: list[int] = Field(default_factory=list)
    content: dict[str, Any] = Field(default_factory=dict)
    promotion: dict[str, Any] = Field(default_factory=dict)
    schedule: dict[str, Any] = Field(default_factory=dict)
    status: Literal["draft", "scheduled", "active", "paused", "completed"] = "draft"


def user_to_dict(user) -> dict[str, Any]:
    return UserOut.model_validate(user).model_dump()


def purchase_to_dict(purchase: Purchase) -> dict[str, Any]:
    return {
        "id": purchase.id,
        "order_number": purchase.order_number,
        "user_id": purchase.user_id,
        "customer_id": purchase.customer_id,
        "total_amount": float(purchase.total_amount),
        "currency": purchase.currency,
        "payment_method": purchase.payment_method,
        "payment_status": purchase.payment_status,
        "reference": purchase.paystack_reference,
        "transaction_date": purchase.transaction_date,
        "items": [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "category": item.category,
                "sku": item.sku,
                "quantity": item.quantity,
                "unit_price": float(item.unit_price),
                "total_price": float(item.total_price),
            }
            for item in purchase.items
        ],
    }


def segment_to_dict(segment: Segment, include_assignments: bool = False) -> dict[str, Any]:
    data = {
        "id": segment.id,
        "name": segment.name,
        "description": segment.description,
        "criteria": segment.criteria or {},
        "algorithm": segment.algorithm,
        "parameters": segment.parameters or {},
        "accuracy": segment.accuracy,
        "last_trained": segment.last_trained,
        "metrics": segment.metrics or {},
        "assignment_count": len(segment.assignments or []),
        "is_active": segment.is_active,
        "version": segment.version,
        "created_at": segment.created_at,
        "updated_at": segment.updated_at,
    }
    if include_assignments:
        data["assignments"] = segment.assignments or []
    return data
