from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import logging
from typing import Optional
from timeclock.utils.logging import configure_logging
from timeclock.config import settings
from timeclock.announcer import QueuedAnnouncer
from timeclock.forms import RequestForms
from timeclock.gateway import StoreGateway
from timeclock.models import ApiResponse
from timeclock.notifications import NotificationCenter
from timeclock.observability.metrics import setup_metrics
from timeclock.routes import auth as auth_routes
from timeclock.routes import requests as requests_routes
from timeclock.routes import session as session_routes
from timeclock.routes.responses import Services
from timeclock.scheduler import SessionMonitor
from timeclock.session import SessionController
from timeclock.utils.dates import now_utc

load_dotenv()
configure_logging()

logger = logging.getLogger(__name__)


def build_services(gateway: Optional[StoreGateway] = None, clock=now_utc) -> Services:
    """Wire the controller, monitor and forms around one gateway."""
    gateway = gateway or StoreGateway()
    announcer = QueuedAnnouncer()
    notifications = NotificationCenter(announcer)
    controller = SessionController(
        gateway,
        announcer,
        notifications,
        clock=clock,
        overtime_threshold=settings.OVERTIME_THRESHOLD_HOURS,
    )
    monitor = SessionMonitor(controller, notifications, announcer)
    monitor.attach()
    forms = RequestForms(gateway, announcer, notifications)
    return Services(
        gateway=gateway,
        announcer=announcer,
        notifications=notifications,
        controller=controller,
        monitor=monitor,
        forms=forms,
    )


def create_app(gateway: Optional[StoreGateway] = None, clock=now_utc) -> FastAPI:
    app = FastAPI(title="Time Clock", version="0.1")
    app.state.services = build_services(gateway, clock)

    # Setup Prometheus metrics if enabled
    setup_metrics(app)

    origins = [s.strip() for s in settings.CORS_ORIGINS.split(",") if s.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://localhost:8080"]
        logger.info("CORS_ORIGINS not set, using defaults: localhost:3000, localhost:8080")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup():
        monitor = app.state.services.monitor
        if not monitor.scheduler.running:
            monitor.scheduler.start()
        logger.info(f"Time clock started against {settings.POCKETBASE_URL}")

    @app.on_event("shutdown")
    async def _shutdown():
        app.state.services.monitor.shutdown()

    @app.get("/healthz")
    async def health(request: Request):
        """Basic health check."""
        svc = request.app.state.services
        return ApiResponse.success(data={
            "status": "healthy",
            "authenticated": svc.gateway.is_authenticated(),
            "session": svc.controller.state.value,
        })

    app.include_router(auth_routes.router)
    app.include_router(session_routes.router)
    app.include_router(requests_routes.router)
    return app


app = create_app()
