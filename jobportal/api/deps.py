"""
Service providers for route injection.

Every service is built per request from the injected database and
settings, so tests swap the backing store with a single override of
get_database.
"""

from fastapi import Depends
from pymongo.database import Database

from jobportal.core.config import Settings, get_settings
from jobportal.core.security import ROLE_RECRUITER, ROLE_USER
from jobportal.db.mongodb import get_database
from jobportal.services.credential_store import PrincipalStore
from jobportal.services.delivery import DeliveryDispatcher
from jobportal.services.jobs import JobService
from jobportal.services.notifications import NotificationService
from jobportal.services.posts import PostService
from jobportal.services.relationships import RelationshipGraph
from jobportal.services.verification import VerificationService


def get_user_store(db: Database = Depends(get_database)) -> PrincipalStore:
    return PrincipalStore(db, ROLE_USER)


def get_recruiter_store(db: Database = Depends(get_database)) -> PrincipalStore:
    return PrincipalStore(db, ROLE_RECRUITER)


def get_user_verification(
    store: PrincipalStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
) -> VerificationService:
    return VerificationService(store, settings)


def get_recruiter_verification(
    store: PrincipalStore = Depends(get_recruiter_store),
    settings: Settings = Depends(get_settings),
) -> VerificationService:
    return VerificationService(store, settings)


def get_notifications(db: Database = Depends(get_database)) -> NotificationService:
    return NotificationService(db)


def get_graph(
    db: Database = Depends(get_database),
    notifications: NotificationService = Depends(get_notifications),
) -> RelationshipGraph:
    return RelationshipGraph(db, notifications)


def get_post_service(db: Database = Depends(get_database)) -> PostService:
    return PostService(db)


def get_job_service(
    db: Database = Depends(get_database),
    notifications: NotificationService = Depends(get_notifications),
) -> JobService:
    return JobService(db, notifications)


def get_dispatcher(settings: Settings = Depends(get_settings)) -> DeliveryDispatcher:
    return DeliveryDispatcher(settings)
