# Lifecycle Routers Module
# Exports all modular API routers for the Revu API

from routers.campaigns import router as campaigns_router
from routers.applications import router as applications_router
from routers.payments import router as payments_router
from routers.settlements import router as settlements_router
from routers.revenue import router as revenue_router
from routers.notifications import router as notifications_router

__all__ = [
    'campaigns_router',
    'applications_router',
    'payments_router',
    'settlements_router',
    'revenue_router',
    'notifications_router',
]
