"""
FastAPI dependencies

Collaborators are built once in the app lifespan (main.py) and stored on
app.state; routers fetch them through these functions so tests can swap
them with app.dependency_overrides.
"""
from fastapi import HTTPException, Request, status

from repositories.reward_manager_repository import RewardManagerRepository
from repositories.timeline_repository import TimelineRepository
from services.neynar_client import NeynarClient
from services.payout_contract import PayoutStatsReader
from services.timeline_service import TimelineService


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} is not configured",
        )
    return value


def get_timeline_service(request: Request) -> TimelineService:
    return _state(request, 'timeline_service')


def get_timeline_repository(request: Request) -> TimelineRepository:
    return _state(request, 'timeline_repository')


def get_reward_manager_repository(request: Request) -> RewardManagerRepository:
    return _state(request, 'reward_manager_repository')


def get_neynar_client(request: Request) -> NeynarClient:
    return _state(request, 'neynar')


def get_stats_reader(request: Request) -> PayoutStatsReader:
    return _state(request, 'stats_reader')
