"""Personal dashboard endpoints.

All routes require a bearer credential. Each view records one activity and
returns {"success": true, "data": ...}; any store failure becomes
a 500 carrying the underlying message.
"""
import logging
from functools import partial
from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from models.dashboard import Envelope, ForYouPayload, HomePayload, InboxPayload, LivePayload, SearchPayload
from services.activity import ActivityLogger
from services.auth import get_current_user
from services.dashboard import DashboardAggregator
from services.database import get_db
from services.placeholders import (
    EngagementProvider,
    QuickStatsProvider,
    get_engagement_provider,
    get_quick_stats_provider,
)
from services.search import SubstringSearchEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


def get_aggregator(
    db = Depends(get_db),
    quick_stats: QuickStatsProvider = Depends(get_quick_stats_provider),
    engagement: EngagementProvider = Depends(get_engagement_provider),
) -> DashboardAggregator:
    return DashboardAggregator(
        db,
        search_engine=SubstringSearchEngine(db),
        quick_stats=quick_stats,
        engagement=engagement,
    )


def get_activity_logger(db = Depends(get_db)) -> ActivityLogger:
    return ActivityLogger(db)


def _run(
    page: str,
    build: Callable[[], dict],
    background_tasks: BackgroundTasks,
    log_activity: Optional[Callable[[], bool]] = None,
) -> dict:
    """Call an aggregator method, mapping store errors to a 500.

    The activity is written after the response on success. Starlette drops
    background tasks when the route raises, so a failed view writes it inline.
    """
    try:
        data = build()
    except HTTPException:
        if log_activity:
            log_activity()
        raise
    except Exception as e:
        logger.error(f"Dashboard {page} failed: {e}")
        if log_activity:
            log_activity()
        raise HTTPException(status_code=500, detail=str(e))

    if log_activity:
        background_tasks.add_task(log_activity)
    return data


@router.get("/home", response_model=Envelope[HomePayload])
async def get_home_page(
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    aggregator: DashboardAggregator = Depends(get_aggregator),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Recent activity, quick stats and announcements"""
    user_id = current_user["id"]
    log = partial(activity.record, user_id, "view", "dashboard home")
    return {"success": True, "data": _run("home", lambda: aggregator.home(user_id), background_tasks, log)}


@router.get("/search", response_model=Envelope[SearchPayload])
async def get_search_page(
    background_tasks: BackgroundTasks,
    query: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    aggregator: DashboardAggregator = Depends(get_aggregator),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Search contents and users; always includes recent and popular searches"""
    user_id = current_user["id"]
    log = None
    if query and query.strip():
        log = partial(activity.record, user_id, "search", query.strip())
    return {"success": True, "data": _run("search", lambda: aggregator.search(user_id, query), background_tasks, log)}


@router.get("/inbox", response_model=Envelope[InboxPayload])
async def get_inbox(
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    aggregator: DashboardAggregator = Depends(get_aggregator),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Latest messages addressed to the user"""
    user_id = current_user["id"]
    log = partial(activity.record, user_id, "view", "inbox")
    return {"success": True, "data": _run("inbox", lambda: aggregator.inbox(user_id), background_tasks, log)}


@router.get("/for-you", response_model=Envelope[ForYouPayload])
async def get_for_you_content(
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    aggregator: DashboardAggregator = Depends(get_aggregator),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Recommendations, suggested connections and trending tags"""
    user_id = current_user["id"]
    log = partial(activity.record, user_id, "view", "for you content")
    return {"success": True, "data": _run("for-you", lambda: aggregator.for_you(user_id), background_tasks, log)}


@router.get("/live", response_model=Envelope[LivePayload])
async def get_live_content(
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    aggregator: DashboardAggregator = Depends(get_aggregator),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Live events happening now, coming up, and recently ended"""
    user_id = current_user["id"]
    log = partial(activity.record, user_id, "view", "live content")
    return {"success": True, "data": _run("live", lambda: aggregator.live(user_id), background_tasks, log)}
