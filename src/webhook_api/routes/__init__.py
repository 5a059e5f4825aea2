"""API routes package.

Routers are organized by concern:

- health: Service status endpoints
- plans: Public plan catalog
- webhooks: PerfectPay webhook receivers
- credentials: Credential (re)issue
- simulation: Sandbox-only webhook simulation

All routers are registered in main.py.
"""

from webhook_api.routes.credentials import router as credentials_router
from webhook_api.routes.health import router as health_router
from webhook_api.routes.plans import router as plans_router
from webhook_api.routes.simulation import router as simulation_router
from webhook_api.routes.webhooks import router as webhooks_router

__all__ = [
    "credentials_router",
    "health_router",
    "plans_router",
    "simulation_router",
    "webhooks_router",
]
