"""
Job Service - postings and the application pipeline.

Jobs belong to the recruiter that posted them (`company`). An application
ties (user, job, recruiter) together; the unique index on (user, job)
means a user can apply to a job only once.
"""

import math
import re
from datetime import timedelta
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from jobportal.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from jobportal.core.log import get_logger
from jobportal.core.security import ROLE_RECRUITER, ROLE_USER
from jobportal.db.mongodb import COLLECTIONS
from jobportal.services.credential_store import PrincipalStore
from jobportal.services.mongo_service import parse_object_id, serialize_doc, serialize_docs, utcnow
from jobportal.services.notifications import NotificationService

log = get_logger(__name__)

JOB_LIFETIME = timedelta(days=30)
SALARY_SPREAD = 0.2

# Statuses a recruiter can move an application to
REVIEW_STATUSES = ("pending", "shortlisted", "rejected", "hired")


def salary_range(salary: Optional[float]) -> Dict[str, int]:
    """A single figure becomes a +/-20% band, floored at zero."""
    salary = salary or 0
    return {
        "salary_min": max(0, math.floor(salary - salary * SALARY_SPREAD)),
        "salary_max": max(0, math.ceil(salary + salary * SALARY_SPREAD)),
    }


class JobService:

    def __init__(self, db: Database, notifications: NotificationService = None):
        self.jobs = db[COLLECTIONS["jobs"]]
        self.applications = db[COLLECTIONS["applications"]]
        self.users = PrincipalStore(db, ROLE_USER)
        self.notifications = notifications or NotificationService(db)

    # ============================================================
    # Jobs
    # ============================================================

    def post_job(self, recruiter: dict, fields: Dict[str, Any]) -> dict:
        """
        Create a posting owned by the recruiter.

        `fields` is the validated JobCreate payload; an explicit
        salary_min/salary_max pair wins over the single `salary` figure.
        Half a range is rejected rather than guessed.
        """
        data = dict(fields)
        salary = data.pop("salary", None)
        bounds = [data.get("salary_min"), data.get("salary_max")]
        if bounds.count(None) == 1:
            raise InvalidInput("salary_min and salary_max must be given together")
        if bounds.count(None) == 2:
            data.update(salary_range(salary))
        if data["salary_min"] > data["salary_max"]:
            raise InvalidInput("salary_min cannot be greater than salary_max")

        now = utcnow()
        data.update({
            "company": recruiter["_id"],
            "company_name": recruiter.get("company_name", ""),
            "company_logo": recruiter.get("company_logo", ""),
            "applications": [],
            "is_active": True,
            "expires_at": now + JOB_LIFETIME,
            "created_at": now,
            "updated_at": now,
        })
        result = self.jobs.insert_one(data)
        data["_id"] = result.inserted_id
        log.info("Job %s posted by recruiter %s", result.inserted_id, recruiter["_id"])
        return serialize_doc(data)

    def list_jobs(self, keyword: str = "", limit: int = 100) -> List[dict]:
        """Active, unexpired jobs; keyword matches title/description/company/skills."""
        query: Dict[str, Any] = {"is_active": True, "expires_at": {"$gt": utcnow()}}
        keyword = (keyword or "").strip()
        if keyword:
            pattern = re.escape(keyword)
            query["$or"] = [
                {field: {"$regex": pattern, "$options": "i"}}
                for field in ("title", "description", "company_name", "skills")
            ]
        cursor = self.jobs.find(query).sort("created_at", DESCENDING).limit(limit)
        return serialize_docs(cursor)

    def _get_raw(self, job_id) -> dict:
        oid = parse_object_id(job_id, "Job", strict=True)
        job = self.jobs.find_one({"_id": oid})
        if not job:
            raise NotFound("Job not found")
        return job

    def get_job(self, job_id) -> dict:
        return serialize_doc(self._get_raw(job_id))

    def recruiter_jobs(self, recruiter_id) -> List[dict]:
        oid = parse_object_id(recruiter_id, "Recruiter")
        cursor = self.jobs.find({"company": oid}).sort("created_at", DESCENDING)
        return serialize_docs(cursor)

    def _owned_job(self, job_id, recruiter_id) -> dict:
        job = self._get_raw(job_id)
        if job["company"] != parse_object_id(recruiter_id, "Recruiter"):
            raise Forbidden("You can only manage your own jobs")
        return job

    def toggle_visibility(self, job_id, recruiter_id) -> dict:
        job = self._owned_job(job_id, recruiter_id)
        updated = self.jobs.find_one_and_update(
            {"_id": job["_id"]},
            {"$set": {"is_active": not job.get("is_active", True), "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return serialize_doc(updated)

    def delete_job(self, job_id, recruiter_id) -> None:
        """Owner only; the job's applications are removed with it."""
        job = self._owned_job(job_id, recruiter_id)
        self.jobs.delete_one({"_id": job["_id"]})
        self.applications.delete_many({"job": job["_id"]})
        log.info("Job %s deleted", job["_id"])

    # ============================================================
    # Applications
    # ============================================================

    def apply(self, user: dict, job_id, resume: str = "", cover_letter: str = "") -> dict:
        """
        Raises:
            NotFound: no such job, or it is closed/expired
            Conflict: already applied
        """
        job = self._get_raw(job_id)
        if not job.get("is_active", True) or job.get("expires_at", utcnow()) <= utcnow():
            raise NotFound("Job is no longer accepting applications")

        if self.applications.find_one({"user": user["_id"], "job": job["_id"]}, {"_id": 1}):
            raise Conflict("You have already applied for this job")

        application = {
            "user": user["_id"],
            "job": job["_id"],
            "recruiter": job["company"],
            "status": "applied",
            "resume": resume or (user.get("profile") or {}).get("resume", ""),
            "cover_letter": cover_letter,
            "applied_at": utcnow(),
        }
        try:
            result = self.applications.insert_one(application)
        except DuplicateKeyError:
            raise Conflict("You have already applied for this job")

        self.jobs.update_one({"_id": job["_id"]}, {"$addToSet": {"applications": result.inserted_id}})
        application["_id"] = result.inserted_id
        log.info("User %s applied to job %s", user["_id"], job["_id"])
        return serialize_doc(application)

    def user_applications(self, user_id) -> List[dict]:
        oid = parse_object_id(user_id, "User")
        apps = list(self.applications.find({"user": oid}).sort("applied_at", DESCENDING))
        jobs = {j["_id"]: j for j in self.jobs.find({"_id": {"$in": [a["job"] for a in apps]}})}
        listed = []
        for app in apps:
            item = serialize_doc(app)
            item["job"] = serialize_doc(jobs.get(app["job"]))
            listed.append(item)
        return listed

    def recruiter_applications(self, recruiter_id) -> List[dict]:
        """Applications to the recruiter's jobs, with applicant and job details."""
        oid = parse_object_id(recruiter_id, "Recruiter")
        apps = list(self.applications.find({"recruiter": oid}).sort("applied_at", DESCENDING))
        jobs = {
            j["_id"]: j
            for j in self.jobs.find({"_id": {"$in": [a["job"] for a in apps]}}, {"title": 1, "company_name": 1})
        }
        applicants = self.users.snapshots([a["user"] for a in apps])

        listed = []
        for app in apps:
            item = serialize_doc(app)
            item["job"] = serialize_doc(jobs.get(app["job"]))
            item["applicant"] = applicants.get(app["user"])
            listed.append(item)
        return listed

    def update_status(self, application_id, recruiter: dict, status: str) -> dict:
        """
        Move an application through the pipeline and tell the applicant.

        Raises:
            InvalidInput: status not one of pending/shortlisted/rejected/hired
            NotFound: no such application for this recruiter
        """
        if status not in REVIEW_STATUSES:
            raise InvalidInput(f"Status must be one of: {', '.join(REVIEW_STATUSES)}")

        oid = parse_object_id(application_id, "Application", strict=True)
        updated = self.applications.find_one_and_update(
            {"_id": oid, "recruiter": recruiter["_id"]},
            {"$set": {"status": status, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFound("Application not found")

        job = self.jobs.find_one({"_id": updated["job"]}, {"title": 1}) or {}
        self.notifications.notify(
            updated["user"],
            recruiter["_id"],
            "application",
            f"Your application for {job.get('title', 'a job')} is now {status}",
            link="/applications",
            metadata={"application_id": str(oid), "job_id": str(updated["job"]), "status": status},
            from_role=ROLE_RECRUITER,
        )
        log.info("Application %s moved to %s", oid, status)
        return serialize_doc(updated)
