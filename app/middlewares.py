from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from app.config import settings
from app.services.ip_lockout import get_client_ip
import time
import logging

logger = logging.getLogger("baby_control.requests")


def setup_middlewares(app: FastAPI):
    # Timeline y backups pueden ser grandes: comprimir > 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Con orígenes explícitos se permiten cookies (caretakerId)
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_timing(request: Request, call_next):
        start = time.perf_counter()
        resp = await call_next(request)
        ms = round((time.perf_counter() - start) * 1000, 1)
        resp.headers["X-Response-Time"] = f"{ms}ms"

        # El webhook de Stripe y los health checks no aportan nada en INFO
        level = logging.DEBUG if request.url.path in ("/", "/api/accounts/payments/webhook") else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {resp.status_code}",
            extra={"ip": get_client_ip(request), "status_code": resp.status_code, "ms": ms},
        )
        return resp
