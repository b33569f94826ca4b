from fastapi import Request

from ..core.config import get_settings
from ..services.admission_queue import AdmissionQueue
from ..services.eligibility import EligibilityService


def get_admission_queue(request: Request) -> AdmissionQueue:
    """
    The application's admission queue. Created by the lifespan handler;
    created lazily here if the app is driven without one (e.g. a bare
    TestClient without a context manager).
    """
    queue = getattr(request.app.state, "admission_queue", None)
    if queue is None:
        queue = AdmissionQueue(max_size=get_settings().ADMISSION_QUEUE_MAX_SIZE)
        request.app.state.admission_queue = queue
    return queue


def get_eligibility_service() -> EligibilityService:
    return EligibilityService(cooldown_days=get_settings().CV_COOLDOWN_DAYS)
