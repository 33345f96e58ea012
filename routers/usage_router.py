"""
Usage Router - message usage and the derived usage section
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from backend.utils.responses import success_response
from database import get_db
from services.subscription_service import SubscriptionService
from services.usage_service import UsageService
from utils.usage_section import UsageSection

usage_router = APIRouter(prefix="/api/usage", tags=["usage"])


@usage_router.get("")
async def get_usage(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    usage = await UsageService(db).get_usage(current_user["user_id"])
    return success_response(usage)


@usage_router.get("/section")
async def get_usage_section(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Usage section as rendered in the account menu"""
    subscription = await SubscriptionService(db, billing=None).get_subscription(current_user["user_id"])
    usage = await UsageService(db).get_usage(current_user["user_id"])
    return success_response(UsageSection(subscription, usage).render())
