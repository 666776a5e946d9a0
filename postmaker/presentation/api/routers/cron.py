import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from ....application.services.trial_notifier import TrialNotifier
from ....core.dependencies import get_trial_notifier
from ...api.dependencies import verify_cron_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["Scheduled Jobs"], dependencies=[Depends(verify_cron_secret)])


@router.post("/run")
async def run_all_jobs(notifier: TrialNotifier = Depends(get_trial_notifier)) -> Dict[str, Any]:
    try:
        results = await notifier.run_all()
    except Exception as exc:
        logger.exception("Cron job error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to run email jobs", "message": str(exc)},
        ) from exc
    return {"success": True, "results": results}


@router.post("/trial-expiring")
async def run_trial_expiring(notifier: TrialNotifier = Depends(get_trial_notifier)) -> Dict[str, Any]:
    try:
        result = await notifier.send_trial_expiring_emails()
    except Exception as exc:
        logger.exception("Trial expiring email job error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to send trial expiring emails", "message": str(exc)},
        ) from exc
    return {"success": True, "result": result}


@router.post("/trial-expired")
async def run_trial_expired(notifier: TrialNotifier = Depends(get_trial_notifier)) -> Dict[str, Any]:
    try:
        result = await notifier.send_trial_expired_emails()
    except Exception as exc:
        logger.exception("Trial expired email job error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to send trial expired emails", "message": str(exc)},
        ) from exc
    return {"success": True, "result": result}
