from fastapi import APIRouter

from . import (
    admin,
    analytics,
    audit,
    auth,
    blockchain,
    clients,
    documents,
    flags,
    health,
    investments,
    investors,
    kyc,
    notifications,
    properties,
    tokens,
    users,
    visits,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(clients.router)
api_router.include_router(investors.router)
api_router.include_router(properties.router)
api_router.include_router(visits.router)
api_router.include_router(tokens.router)
api_router.include_router(investments.router)
api_router.include_router(blockchain.router)
api_router.include_router(kyc.router)
api_router.include_router(notifications.router)
api_router.include_router(documents.router)
api_router.include_router(analytics.router)
api_router.include_router(flags.router)

api_router.include_router(properties.admin_router)
api_router.include_router(tokens.admin_router)
api_router.include_router(investments.admin_router)
api_router.include_router(kyc.admin_router)
api_router.include_router(notifications.admin_router)
api_router.include_router(flags.admin_router)
api_router.include_router(audit.router)
api_router.include_router(admin.router)
