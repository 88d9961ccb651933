"""Main API router"""
from fastapi import APIRouter, Depends

from claude_gateway.api import health, messages, metrics
from claude_gateway.api.dependencies import verify_auth

api_router = APIRouter(prefix='/v1', dependencies=[Depends(verify_auth)])
api_router.include_router(messages.router, tags=['messages'])

health_router = APIRouter()
health_router.include_router(health.router, tags=['health'])

metrics_router = APIRouter()
metrics_router.include_router(metrics.router, tags=['metrics'])
