"""Job Routes - 발송 작업 조회 및 수동 실행"""

import logging

from fastapi import APIRouter, Depends

from weatherpulse.errors import SubscriptionNotFound

from ..dependencies import AppServices, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["system"])


@router.get("")
def list_jobs(services: AppServices = Depends(get_services)):
    job_ids = services.scheduler.get_job_ids()
    return {"count": len(job_ids), "job_ids": job_ids}


@router.post("/{subscription_id}/trigger")
def trigger_job(subscription_id: str, services: AppServices = Depends(get_services)):
    if services.repository.find_by_id(subscription_id) is None:
        raise SubscriptionNotFound()

    sent = services.scheduler.force_run_job(subscription_id)
    logger.info(f"수동 실행 [subscription={subscription_id}] 결과={sent}")

    return {
        "message": f"Job for subscription {subscription_id} triggered successfully",
        "sent": sent,
    }
