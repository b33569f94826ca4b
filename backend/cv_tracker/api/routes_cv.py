from uuid import UUID, uuid4
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from ..core.db import get_db, get_session_factory
from ..schemas.cv import (
    EligibilityCheckRequest,
    SubmissionRequest,
    SeedRequest,
    company_out,
    iso,
    status_block,
    submission_out,
)
from ..services import companies, seeder
from ..services.admission_queue import AdmissionQueue
from ..services.eligibility import (
    EligibilityDecision,
    EligibilityRequest,
    EligibilityService,
    SubmissionReceipt,
    run_in_session,
)
from ..services.errors import CooldownActive, QueueFull, ValidationError
from .deps import get_admission_queue, get_eligibility_service

router = APIRouter(prefix="/cv", tags=["cv"])

logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


def _internal_error(e: Exception, step: str, request_id: str | None = None) -> JSONResponse:
    logger.exception(
        "Unhandled error in %s: %s", step, e,
        extra={"step": step, "request_id": request_id},
    )
    return _error(500, "Internal server error", message=str(e))


def _build_request(payload: EligibilityCheckRequest) -> EligibilityRequest:
    return EligibilityRequest.build(
        domain=payload.domain,
        linkedin_url=payload.linkedin_url,
        cv_type=payload.cv_type,
        company_name=payload.company_name,
        job_title=getattr(payload, "job_title", None),
    )


def _decision_out(decision: EligibilityDecision) -> dict:
    response = {
        "canGenerateCV": decision.eligible,
        "company": company_out(decision.company),
        "cvType": decision.cv_type.value,
    }
    last = decision.last_submission
    if last is not None:
        response["lastSubmission"] = {
            "id": str(last.id),
            "submittedAt": iso(last.submitted_at),
            "jobTitle": last.job_title,
        }
        response["daysRemaining"] = decision.status.days_remaining
        response["nextAvailableDate"] = iso(decision.status.next_eligible_date)
    else:
        response["daysRemaining"] = 0
        response["message"] = "No previous submission found. CV can be generated."
    return response


def _receipt_out(receipt: SubmissionReceipt) -> dict:
    return {
        "success": True,
        "message": "CV submission recorded successfully",
        "submission": submission_out(receipt.submission),
        "company": company_out(receipt.company),
    }


def _cooldown_out(e: CooldownActive) -> JSONResponse:
    last = e.last_submission
    return _error(
        400,
        "CV cannot be submitted yet",
        daysRemaining=e.days_remaining,
        nextAvailableDate=iso(e.next_eligible_date),
        lastSubmission={
            "submittedAt": iso(last.submitted_at),
            "jobTitle": last.job_title,
        },
    )


@router.post("/check")
async def check_cv_eligibility(
    payload: EligibilityCheckRequest,
    queue: AdmissionQueue = Depends(get_admission_queue),
    session_factory: sessionmaker = Depends(get_session_factory),
    service: EligibilityService = Depends(get_eligibility_service),
):
    """
    Can a CV of this type go to this company now?

    Creates the company on first sight, so it runs through the admission queue
    like the writes do.
    """
    request_id = str(uuid4())
    try:
        request = _build_request(payload)
        decision = await queue.submit(run_in_session, session_factory, service.check, request)
    except ValidationError as e:
        return _error(400, str(e))
    except QueueFull as e:
        return _error(503, "Service busy", message=str(e))
    except Exception as e:
        return _internal_error(e, "check_cv_eligibility", request_id)

    return _decision_out(decision)


async def _submit(
    payload: SubmissionRequest,
    queue: AdmissionQueue,
    session_factory: sessionmaker,
    operation,
    step: str,
):
    request_id = str(uuid4())
    try:
        request = _build_request(payload)
        receipt = await queue.submit(run_in_session, session_factory, operation, request)
    except ValidationError as e:
        return None, _error(400, str(e))
    except CooldownActive as e:
        return None, _cooldown_out(e)
    except QueueFull as e:
        return None, _error(503, "Service busy", message=str(e))
    except Exception as e:
        return None, _internal_error(e, step, request_id)

    logger.info(
        "CV submission accepted",
        extra={
            "step": step,
            "request_id": request_id,
            "company_id": str(receipt.company.id),
            "cv_type": receipt.submission.cv_type.value,
        },
    )
    return receipt, None


@router.post("/submit", status_code=201)
async def save_cv_submission(
    payload: SubmissionRequest,
    queue: AdmissionQueue = Depends(get_admission_queue),
    session_factory: sessionmaker = Depends(get_session_factory),
    service: EligibilityService = Depends(get_eligibility_service),
):
    receipt, failure = await _submit(payload, queue, session_factory, service.submit, "save_cv_submission")
    if failure is not None:
        return failure
    return _receipt_out(receipt)


@router.post("/check-and-submit", status_code=201)
async def check_and_submit(
    payload: SubmissionRequest,
    queue: AdmissionQueue = Depends(get_admission_queue),
    session_factory: sessionmaker = Depends(get_session_factory),
    service: EligibilityService = Depends(get_eligibility_service),
):
    """
    Decision and commit as one queued task. Same outcomes as /submit; the
    response also reports the decision that admitted the submission.
    """
    receipt, failure = await _submit(
        payload, queue, session_factory, service.check_and_submit, "check_and_submit"
    )
    if failure is not None:
        return failure
    response = _receipt_out(receipt)
    response["eligibility"] = _decision_out(receipt.decision)
    return response


@router.get("/companies")
def get_all_companies(
    db: Session = Depends(get_db),
    service: EligibilityService = Depends(get_eligibility_service),
):
    # Advisory listing: read directly, not serialized with the writes.
    try:
        statuses = service.list_all(db)
    except Exception as e:
        return _internal_error(e, "get_all_companies")

    enhanced = []
    for entry in statuses:
        item = company_out(entry.company, with_created_at=True)
        for cv_type, status in entry.statuses.items():
            item[cv_type.value] = status_block(status, entry.latest[cv_type])
        item["totalSubmissions"] = entry.total_submissions
        enhanced.append(item)

    return {"success": True, "count": len(enhanced), "companies": enhanced}


@router.delete("/companies/{company_id}")
def delete_company(company_id: str, db: Session = Depends(get_db)):
    if not company_id or not company_id.strip():
        return _error(400, "Company ID is required")
    try:
        parsed_id = UUID(company_id)
    except ValueError:
        return _error(400, f"Invalid company ID: {company_id}")

    try:
        deleted = companies.delete_by_id(db, parsed_id)
    except Exception as e:
        # NotFound included: the dashboard client treats any failure alike
        return _internal_error(e, "delete_company")

    return {
        "success": True,
        "message": "Company and all submissions deleted",
        "company": company_out(deleted, with_created_at=True),
        "deletedSubmissions": [submission_out(s) for s in deleted["submissions"]],
    }


@router.post("/seed", status_code=201)
def seed_initial_companies(payload: SeedRequest, db: Session = Depends(get_db)):
    try:
        results = seeder.seed(db, [c.to_entry() for c in payload.companies or []])
    except ValidationError as e:
        return _error(400, str(e))
    except Exception as e:
        return _internal_error(e, "seed_initial_companies")

    created = sum(1 for r in results if r.status == "created")
    existing = sum(1 for r in results if r.status == "existing")
    total_submissions = sum(len(r.submissions) for r in results)

    return {
        "success": True,
        "message": (
            f"Seeded {created} new companies ({existing} already existed), "
            f"{total_submissions} submission records created"
        ),
        "created": created,
        "existing": existing,
        "totalSubmissions": total_submissions,
        "companies": [
            {
                **company_out(r.company, with_created_at=True),
                "status": r.status,
                "submissions": [submission_out(s) for s in r.submissions],
            }
            for r in results
        ],
    }
