import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from agent_relay.config import settings
from agent_relay.dependencies import build_container
from agent_relay.logging_config import get_logger, setup_logging
from agent_relay.routers import agent_channel, analysis, webhook

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Agent Relay",
    description="Relays analyzed customer-chat events to live support agents",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(webhook.router)
app.include_router(agent_channel.router)
app.include_router(analysis.router)

app.state.limiter = analysis.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.state.relay = build_container(settings)


@app.on_event("shutdown")
async def stop_coalescer() -> None:
    await app.state.relay.coalescer.shutdown()
    logger.info("Relay stopped")


@app.get("/health")
async def health():
    relay = app.state.relay
    snapshot = relay.registry.snapshot()
    return {
        "status": "ok",
        "connections": snapshot["connections"],
        "agents": snapshot["agents"],
        "extension_agents": relay.registry.extension_agents(),
        "pending_conversations": len(relay.coalescer.pending_conversation_ids()),
    }
