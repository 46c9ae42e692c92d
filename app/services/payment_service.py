"""Payment gateway adapter.

Exactly one gateway is built at startup from the payment settings variant:

  DisabledPaymentGateway  no credentials; every operation answers 503 with
                          a fixed message, whatever the input
  ProviderPaymentGateway  creates orders on the provider's REST API over
                          httpx and verifies the HMAC-SHA256 signature the
                          provider returns to the browser

A verified payment enrolls the student in each purchased course.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID

import httpx

from app.core.config import PaymentDisabled, PaymentSettings
from app.core.errors import (
    Conflict,
    NotFound,
    ServiceNotConfigured,
    UpstreamFailure,
    ValidationError,
)
from app.repos.registry import Repositories
from app.services.course_service import parse_uuid
from app.services.enrollment_service import enroll_student

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = (
    "Payment service is currently disabled. Please configure payment "
    "credentials to enable payment features."
)


@dataclass(frozen=True)
class PaymentOrder:
    order_id: str
    amount: int
    currency: str
    key_id: str


class PaymentGateway(Protocol):
    enabled: bool

    async def capture(
        self, repos: Repositories, *, user_id: UUID, course_ids: list[Any]
    ) -> PaymentOrder: ...

    async def verify(
        self,
        repos: Repositories,
        *,
        user_id: UUID,
        order_id: str,
        payment_id: str,
        signature: str,
        course_ids: list[Any],
    ) -> list[UUID]: ...

    async def send_receipt(
        self,
        *,
        user_id: UUID,
        email: str,
        order_id: str,
        payment_id: str,
        amount: int,
    ) -> None: ...


class DisabledPaymentGateway:
    enabled = False

    def __init__(self, reason: str) -> None:
        self.reason = reason

    async def capture(self, *args: Any, **kwargs: Any) -> PaymentOrder:
        raise ServiceNotConfigured(DISABLED_MESSAGE)

    async def verify(self, *args: Any, **kwargs: Any) -> list[UUID]:
        raise ServiceNotConfigured(DISABLED_MESSAGE)

    async def send_receipt(self, *args: Any, **kwargs: Any) -> None:
        raise ServiceNotConfigured(DISABLED_MESSAGE)


def _course_ids(raw: list[Any]) -> list[UUID]:
    if not raw:
        raise ValidationError("Please provide Course IDs", field="courses")
    return [parse_uuid(c, "courses") for c in raw]


def sign(order_id: str, payment_id: str, secret: str) -> str:
    body = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class ProviderPaymentGateway:
    enabled = True

    def __init__(
        self,
        settings: PaymentSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.api_base,
            auth=(self._settings.key_id, self._settings.key_secret),
            timeout=10.0,
            transport=self._transport,
        )

    async def capture(
        self, repos: Repositories, *, user_id: UUID, course_ids: list[Any]
    ) -> PaymentOrder:
        total = 0.0
        for cid in _course_ids(course_ids):
            course = await repos.courses.get_by_id(cid)
            if course is None or course.status != "Published":
                raise NotFound("Could not find the Course")
            if user_id in course.students_enrolled:
                raise Conflict("Student is already Enrolled")
            total += course.price

        amount = round(total * 100)
        if amount <= 0:
            raise ValidationError(
                "Free courses do not need payment; enroll directly", field="courses"
            )

        payload = {
            "amount": amount,
            "currency": self._settings.currency,
            "receipt": secrets.token_hex(8),
        }
        try:
            async with self._client() as client:
                resp = await client.post("/orders", json=payload)
                resp.raise_for_status()
                body = resp.json()
                order_id = str(body["id"])
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error("Payment order creation failed: %s", e)
            raise UpstreamFailure("Could not initiate order") from e

        order = PaymentOrder(
            order_id=order_id,
            amount=int(body.get("amount", amount)),
            currency=str(body.get("currency", self._settings.currency)),
            key_id=self._settings.key_id,
        )
        logger.info(
            "Payment order created  order_id=%s user_id=%s amount=%d",
            order.order_id,
            user_id,
            order.amount,
        )
        return order

    async def verify(
        self,
        repos: Repositories,
        *,
        user_id: UUID,
        order_id: str,
        payment_id: str,
        signature: str,
        course_ids: list[Any],
    ) -> list[UUID]:
        if not order_id or not payment_id or not signature:
            raise ValidationError("Payment Failed")
        ids = _course_ids(course_ids)

        expected = sign(order_id, payment_id, self._settings.key_secret)
        if not hmac.compare_digest(expected, signature):
            logger.warning(
                "Payment signature mismatch  order_id=%s user_id=%s", order_id, user_id
            )
            raise ValidationError("Payment Failed")

        for cid in ids:
            await enroll_student(repos, course_id=cid, user_id=user_id)
        logger.info(
            "Payment verified  order_id=%s user_id=%s courses=%d",
            order_id,
            user_id,
            len(ids),
        )
        return ids

    async def send_receipt(
        self,
        *,
        user_id: UUID,
        email: str,
        order_id: str,
        payment_id: str,
        amount: int,
    ) -> None:
        if not order_id or not payment_id or not amount:
            raise ValidationError("Please provide all the details")
        # Delivery is left to the mail pipeline; the request is recorded here
        logger.info(
            "Payment receipt requested  user_id=%s email=%s order_id=%s "
            "payment_id=%s amount=%d",
            user_id,
            email,
            order_id,
            payment_id,
            amount,
        )


def build_payment_gateway(
    settings: PaymentSettings | PaymentDisabled,
) -> DisabledPaymentGateway | ProviderPaymentGateway:
    if isinstance(settings, PaymentDisabled):
        logger.warning("Payments disabled (%s)", settings.reason)
        return DisabledPaymentGateway(settings.reason)
    logger.info("Payments enabled  api_base=%s", settings.api_base)
    return ProviderPaymentGateway(settings)
