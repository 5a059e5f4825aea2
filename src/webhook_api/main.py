"""FastAPI application for the PerfectPay webhook provisioning service.

Endpoints:
- Status: GET /, GET /health
- Plans: GET /plans
- Webhooks: POST /webhook/perfectpay, POST /api/webhook
- Credentials: POST /credentials/generate
- Sandbox: POST /test/webhook
"""

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from provisioning.utils.logging import configure_logging, get_logger
from webhook_api.exceptions import register_exception_handlers
from webhook_api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from webhook_api.routes import (
    credentials_router,
    health_router,
    plans_router,
    simulation_router,
    webhooks_router,
)

configure_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = get_logger(__name__)

app = FastAPI(
    title="PerfectPay Provisioning API",
    description="Receives PerfectPay webhooks and provisions app accounts and plans",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_ID_HEADER],
)
app.add_middleware(CorrelationIdMiddleware)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

app.include_router(health_router)
app.include_router(plans_router)
app.include_router(webhooks_router)
app.include_router(credentials_router)
app.include_router(simulation_router)


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int | None = None, reload: bool = False) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: PORT env var, else 3000)
        reload: Enable hot reload for development (default: False)
    """
    import uvicorn

    port = port or int(os.getenv("PORT", "3000"))
    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run("webhook_api.main:app", host=host, port=port, reload=True, reload_dirs=["src"])
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
