import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.db.database import get_db
from docvault.jobs.base import JobStore
from docvault.services.processing_service import ProcessingService

logger = logging.getLogger(__name__)


# =====================================================
# Get Current user
# =====================================================
async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """
    Dependency that returns the caller's user id.

    Sessions are validated by the upstream auth gateway, which
    forwards the authenticated user id in the X-User-Id header.

    Raises:
        HTTPException 401: If the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return x_user_id.strip()


# =====================================================
# Job Store
# =====================================================
def get_job_store(request: Request) -> JobStore:
    """
    The job store created in the application lifespan.
    """
    store = getattr(request.app.state, "job_store", None)
    if store is None:
        logger.error("Job store requested before application startup")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Job queue unavailable",
        )
    return store


def get_processing_service(
    db: AsyncSession = Depends(get_db),
    store: JobStore = Depends(get_job_store),
) -> ProcessingService:
    """
    Dependency that provides a ProcessingService per request,
    bound to the request's database session.
    """
    return ProcessingService(db, store)
