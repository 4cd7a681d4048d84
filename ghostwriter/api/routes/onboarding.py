"""
Onboarding API routes.

Submitting a LinkedIn URL starts ingestion in the background; clients poll
the status endpoint every few seconds to follow progress.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ghostwriter.api.deps import get_container, get_current_user
from ghostwriter.core.container import ServiceContainer
from ghostwriter.core.exceptions import InvalidLinkedInUrlError, OnboardingStateError
from ghostwriter.models.user import OnboardingStatus

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


class LinkedInUrlRequest(BaseModel):
    linkedin_url: str


class OnboardingStatusResponse(BaseModel):
    onboarding_status: OnboardingStatus
    linkedin_url: Optional[str] = None


@router.post(
    "/linkedin-url",
    response_model=OnboardingStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_linkedin_url(
    request: LinkedInUrlRequest,
    user_id: str = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> OnboardingStatusResponse:
    """
    Start LinkedIn ingestion.

    Returns as soon as the user is in `scraping_in_progress`; scraping and
    analysis continue in the background.
    """
    try:
        new_status = await container.ingestion.ingest(user_id, request.linkedin_url)
    except InvalidLinkedInUrlError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OnboardingStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info("LinkedIn URL submitted", user_id=user_id)
    return OnboardingStatusResponse(onboarding_status=new_status, linkedin_url=request.linkedin_url.strip())


@router.get("/status", response_model=OnboardingStatusResponse)
async def get_onboarding_status(
    user_id: str = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> OnboardingStatusResponse:
    profile = await container.users.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User profile not found")
    return OnboardingStatusResponse(onboarding_status=profile.status, linkedin_url=profile.linkedin_url)
