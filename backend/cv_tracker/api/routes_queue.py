from fastapi import APIRouter, Depends

from ..services.admission_queue import AdmissionQueue
from .deps import get_admission_queue

router = APIRouter(prefix="/queue", tags=["queue"])


@router.get("/stats")
def get_queue_stats(queue: AdmissionQueue = Depends(get_admission_queue)):
    """
    Waiting tasks, in-flight tasks (0 or 1) and the paused flag.

    The dashboard reads the nested `queue` object; the same counters are
    also flattened at the top level.
    """
    stats = queue.stats()
    return {"success": True, "queue": stats, **stats}
