"""
Job Routes

POST /jobs - Create job posting (recruiter only)
GET /jobs - List open jobs, optional keyword search
GET /jobs/recruiter/my-jobs - Recruiter's own postings
GET /jobs/applications/mine - Caller's applications (user only)
GET /jobs/{job_id} - Get job details
PATCH /jobs/{job_id}/visibility - Open / close a posting (recruiter only)
DELETE /jobs/{job_id} - Delete job (recruiter only)
POST /jobs/{job_id}/apply - Apply to job (user only)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from jobportal.api.deps import get_job_service
from jobportal.core.auth import get_current_recruiter, get_current_user
from jobportal.schemas.schemas import ApplicationCreate, JobCreate, MessageResponse
from jobportal.services.jobs import JobService

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.post("", status_code=201)
def create_job(
    job: JobCreate,
    recruiter: dict = Depends(get_current_recruiter),
    jobs: JobService = Depends(get_job_service),
):
    """Create a new job posting. Only recruiters can create jobs."""
    created = jobs.post_job(recruiter, job.model_dump(mode="json"))
    return {"success": True, "message": "Job posted successfully", "job": created}


@router.get("")
def list_jobs(
    keyword: Optional[str] = Query(None, description="Search title, description, company and skills"),
    jobs: JobService = Depends(get_job_service),
):
    """Open, unexpired postings, newest first."""
    return {"success": True, "jobs": jobs.list_jobs(keyword or "")}


@router.get("/recruiter/my-jobs")
def my_jobs(
    recruiter: dict = Depends(get_current_recruiter),
    jobs: JobService = Depends(get_job_service),
):
    return {"success": True, "jobs": jobs.recruiter_jobs(recruiter["_id"])}


@router.get("/applications/mine")
def my_applications(
    user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    return {"success": True, "applications": jobs.user_applications(user["_id"])}


@router.get("/{job_id}")
def get_job(job_id: str, jobs: JobService = Depends(get_job_service)):
    """Get details of a specific job. Malformed ids are a 400."""
    return {"success": True, "job": jobs.get_job(job_id)}


@router.patch("/{job_id}/visibility")
def toggle_visibility(
    job_id: str,
    recruiter: dict = Depends(get_current_recruiter),
    jobs: JobService = Depends(get_job_service),
):
    job = jobs.toggle_visibility(job_id, recruiter["_id"])
    return {"success": True, "is_active": job["is_active"], "job": job}


@router.delete("/{job_id}", response_model=MessageResponse)
def delete_job(
    job_id: str,
    recruiter: dict = Depends(get_current_recruiter),
    jobs: JobService = Depends(get_job_service),
):
    jobs.delete_job(job_id, recruiter["_id"])
    return MessageResponse(message="Job deleted successfully")


@router.post("/{job_id}/apply", status_code=201)
def apply_to_job(
    job_id: str,
    request: Optional[ApplicationCreate] = None,
    user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    """Apply to a job. One application per user per job."""
    request = request or ApplicationCreate()
    application = jobs.apply(user, job_id, resume=request.resume or "", cover_letter=request.cover_letter or "")
    return {"success": True, "message": "Application submitted successfully", "application": application}
