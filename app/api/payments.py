"""Payment endpoints.

While no provider is configured every request answers 503 with the same
fixed message.  The check lives in the route class so it runs before the
body is read, ahead of authentication and validation.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.routing import APIRoute
from pydantic import AliasChoices, BaseModel, Field

from app.api.dependencies import Repos, get_payment_gateway, require_payments_enabled, require_role
from app.api.errors import Envelope
from app.core.errors import ServiceNotConfigured
from app.models.identity import Identity
from app.services.payment_service import DISABLED_MESSAGE, PaymentGateway, PaymentOrder


class PaymentsRoute(APIRoute):
    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()

        async def guarded(request: Request) -> Response:
            if not get_payment_gateway(request).enabled:
                raise ServiceNotConfigured(DISABLED_MESSAGE)
            return await handler(request)

        return guarded


router = APIRouter(prefix="/v1/payments", tags=["payments"], route_class=PaymentsRoute)

Student = Annotated[Identity, Depends(require_role("Student"))]
Gateway = Annotated[PaymentGateway, Depends(require_payments_enabled)]


class CaptureIn(BaseModel):
    courses: list[str] = []


class VerifyIn(BaseModel):
    order_id: str = Field(default="", validation_alias=AliasChoices("order_id", "razorpay_order_id"))
    payment_id: str = Field(
        default="", validation_alias=AliasChoices("payment_id", "razorpay_payment_id")
    )
    signature: str = Field(
        default="", validation_alias=AliasChoices("signature", "razorpay_signature")
    )
    courses: list[str] = []


class ReceiptIn(BaseModel):
    order_id: str = Field(default="", validation_alias=AliasChoices("order_id", "orderId"))
    payment_id: str = Field(default="", validation_alias=AliasChoices("payment_id", "paymentId"))
    amount: int = 0


class OrderOut(BaseModel):
    order_id: str
    amount: int
    currency: str
    key_id: str

    @staticmethod
    def from_order(o: PaymentOrder) -> OrderOut:
        return OrderOut(order_id=o.order_id, amount=o.amount, currency=o.currency, key_id=o.key_id)


@router.post("/capture", response_model=Envelope[OrderOut])
async def capture_payment(
    payload: CaptureIn, repos: Repos, gateway: Gateway, identity: Student
) -> Envelope[OrderOut]:
    order = await gateway.capture(repos, user_id=identity.user_id, course_ids=payload.courses)
    return Envelope(data=OrderOut.from_order(order))


@router.post("/verify", response_model=Envelope[list[str]])
async def verify_payment(
    payload: VerifyIn, repos: Repos, gateway: Gateway, identity: Student
) -> Envelope[list[str]]:
    enrolled = await gateway.verify(
        repos,
        user_id=identity.user_id,
        order_id=payload.order_id,
        payment_id=payload.payment_id,
        signature=payload.signature,
        course_ids=payload.courses,
    )
    return Envelope(message="Payment Verified", data=[str(c) for c in enrolled])


@router.post("/send-receipt", response_model=Envelope[None])
async def send_receipt(
    payload: ReceiptIn, gateway: Gateway, identity: Student
) -> Envelope[None]:
    await gateway.send_receipt(
        user_id=identity.user_id,
        email=identity.email,
        order_id=payload.order_id,
        payment_id=payload.payment_id,
        amount=payload.amount,
    )
    return Envelope(message="Payment receipt queued")
