"""Subscription Routes - 구독 신청/확인/해지 API"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, ValidationError

from ..dependencies import AppServices, get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscription"])


class SubscribeRequest(BaseModel):
    email: EmailStr
    city: str
    frequency: str


async def _read_subscribe_body(request: Request) -> dict:
    """JSON 또는 폼 본문 읽기"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    form = await request.form()
    return dict(form)


@router.post("/subscribe")
async def subscribe(request: Request, services: AppServices = Depends(get_services)):
    data = await _read_subscribe_body(request)

    missing = [field for field in ("email", "city", "frequency") if not str(data.get(field, "")).strip()]
    if missing:
        return JSONResponse(
            status_code=400,
            content={"error": f"Missing required field: {', '.join(missing)}"},
        )

    try:
        payload = SubscribeRequest(**data)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": e.errors()[0]["msg"]})

    # 메일 발송이 블로킹 I/O 이므로 스레드풀에서 실행
    subscription = await run_in_threadpool(
        services.manager.create_subscription,
        payload.email,
        payload.city,
        payload.frequency,
    )

    return {
        "message": "Subscription successful. Confirmation email sent.",
        "subscription": subscription.to_dict(),
    }


@router.get("/confirm/{token}")
def confirm(token: str, services: AppServices = Depends(get_services)):
    subscription = services.manager.confirm_subscription(token)
    return {
        "message": "Subscription confirmed successfully.",
        "subscription": subscription.to_dict(),
    }


@router.get("/unsubscribe/{token}")
def unsubscribe(token: str, services: AppServices = Depends(get_services)):
    subscription = services.manager.unsubscribe(token)
    return {
        "message": "Unsubscribed successfully.",
        "subscription": subscription.to_dict(),
    }
