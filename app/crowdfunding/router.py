# app/crowdfunding/router.py
"""API routers for users, categories, campaigns and donations."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from app.core.dependencies import ContextDep
from app.core.exceptions import QueryError
from app.crowdfunding.schemas import (
    ActionResult,
    CampaignAction,
    CategoryAction,
    DonationOutcome,
    DonationRequest,
    UserAction,
)
from app.crowdfunding.service import CampaignService, CategoryService, DonationService, UserService

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/users", tags=["users"])
categories_router = APIRouter(prefix="/categories", tags=["categories"])
campaigns_router = APIRouter(prefix="/campaigns", tags=["campaigns"])
donations_router = APIRouter(prefix="/donations", tags=["donations"])


# ===== DEPENDENCY INJECTION =====

def get_user_service(context: ContextDep) -> UserService:
    return UserService(context)


def get_category_service(context: ContextDep) -> CategoryService:
    return CategoryService(context)


def get_campaign_service(context: ContextDep) -> CampaignService:
    return CampaignService(context)


def get_donation_service(context: ContextDep) -> DonationService:
    return DonationService(context)


def _respond(result: ActionResult, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


def _failed(action: str, error: QueryError) -> JSONResponse:
    logger.warning("%s failed: %s", action, error.detail, extra={"kind": error.kind.value})
    return _respond(ActionResult.error(error.user_message), error.status_code)


def _require(value: Any, what: str) -> Any:
    if value is None:
        raise HTTPException(status_code=422, detail=f"{what} is required for this action")
    return value


# ===== USERS =====

@users_router.get("/", response_model=List[Dict[str, Any]])
def list_users(service: UserService = Depends(get_user_service)) -> List[Dict[str, Any]]:
    return service.list_users()


@users_router.get("/donors", response_model=List[Dict[str, Any]])
def list_active_donors(service: UserService = Depends(get_user_service)) -> List[Dict[str, Any]]:
    """Active donors for the donation form."""
    return service.list_active_donors()


@users_router.get("/audit-log", response_model=List[Dict[str, Any]])
def get_user_audit_log(
    user_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    service: UserService = Depends(get_user_service),
) -> List[Dict[str, Any]]:
    return service.get_audit_history(user_id, limit)


@users_router.get("/{user_id}", response_model=Dict[str, Any])
def get_user(user_id: int, service: UserService = Depends(get_user_service)) -> Dict[str, Any]:
    user = service.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@users_router.post("/", response_model=ActionResult)
def user_action(request: UserAction, service: UserService = Depends(get_user_service)):
    """Create, update or delete a user depending on ``action``."""
    try:
        if request.action == "create":
            data = _require(request.create, "create")
            user_id = service.create_user(data)
            return _respond(ActionResult.success(f"User created successfully! Username: {data.username}", user_id))

        user_id = _require(request.user_id, "user_id")
        if request.action == "update":
            if not service.update_user(user_id, _require(request.update, "update")):
                return _respond(ActionResult.error("User not found"), 404)
            return _respond(ActionResult.success("User updated successfully!", user_id))

        if not service.delete_user(user_id):
            return _respond(ActionResult.error("User not found"), 404)
        return _respond(ActionResult.success("User deleted along with their campaigns and donations.", user_id))
    except QueryError as e:
        return _failed(f"User {request.action}", e)


# ===== CATEGORIES =====

@categories_router.get("/", response_model=List[Dict[str, Any]])
def list_categories(service: CategoryService = Depends(get_category_service)) -> List[Dict[str, Any]]:
    return service.list_categories()


@categories_router.post("/", response_model=ActionResult)
def category_action(request: CategoryAction, service: CategoryService = Depends(get_category_service)):
    try:
        category_id = service.create_category(request.create)
    except QueryError as e:
        return _failed("Category create", e)
    return _respond(ActionResult.success("Category created successfully!", category_id))


# ===== CAMPAIGNS =====

@campaigns_router.get("/search", response_model=List[Dict[str, Any]])
def search_campaigns(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(50, ge=1, le=500),
    service: CampaignService = Depends(get_campaign_service),
) -> List[Dict[str, Any]]:
    return service.search_campaigns(q, limit)


@campaigns_router.get("/{campaign_id}", response_model=Dict[str, Any])
def get_campaign(campaign_id: int, service: CampaignService = Depends(get_campaign_service)) -> Dict[str, Any]:
    campaign = service.get_campaign(campaign_id)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


@campaigns_router.get("/{campaign_id}/donations", response_model=List[Dict[str, Any]])
def get_campaign_donations(
    campaign_id: int, service: CampaignService = Depends(get_campaign_service)
) -> List[Dict[str, Any]]:
    return service.get_campaign_donations(campaign_id)


@campaigns_router.get("/{campaign_id}/rewards", response_model=List[Dict[str, Any]])
def get_campaign_rewards(
    campaign_id: int, service: CampaignService = Depends(get_campaign_service)
) -> List[Dict[str, Any]]:
    """Reward tiers from cheapest to most expensive."""
    return service.get_campaign_rewards(campaign_id)


@campaigns_router.get("/{campaign_id}/comments", response_model=List[Dict[str, Any]])
def get_campaign_comments(
    campaign_id: int, service: CampaignService = Depends(get_campaign_service)
) -> List[Dict[str, Any]]:
    return service.get_campaign_comments(campaign_id)


@campaigns_router.post("/", response_model=ActionResult)
def campaign_action(request: CampaignAction, service: CampaignService = Depends(get_campaign_service)):
    """Create, update or delete a campaign depending on ``action``."""
    try:
        if request.action == "create":
            campaign_id = service.create_campaign(_require(request.create, "create"))
            return _respond(ActionResult.success(f"Campaign created successfully! ID: {campaign_id}", campaign_id))

        campaign_id = _require(request.campaign_id, "campaign_id")
        if request.action == "update":
            if not service.update_campaign(campaign_id, _require(request.update, "update")):
                return _respond(ActionResult.error("Campaign not found or nothing to update"), 404)
            return _respond(ActionResult.success("Campaign updated successfully!", campaign_id))

        if not service.delete_campaign(campaign_id):
            return _respond(ActionResult.error("Campaign not found"), 404)
        return _respond(ActionResult.success("Campaign deleted successfully!", campaign_id))
    except QueryError as e:
        return _failed(f"Campaign {request.action}", e)


# ===== DONATIONS =====

@donations_router.post("/", response_model=DonationOutcome)
def process_donation(request: DonationRequest, service: DonationService = Depends(get_donation_service)):
    """Record a donation. Refusals come back with ``success: false`` and status 400."""
    outcome = service.process_donation(request)
    if not outcome.success:
        return JSONResponse(status_code=400, content=outcome.model_dump(mode="json"))
    return outcome


@donations_router.get("/audit-log", response_model=List[Dict[str, Any]])
def get_donation_audit_log(
    limit: int = Query(10, ge=1, le=500),
    service: DonationService = Depends(get_donation_service),
) -> List[Dict[str, Any]]:
    return service.get_recent_audit_entries(limit)
