"""FastAPI application for the module OTA agent."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from ota_agent.api.routes import router
from ota_agent.models.config import AgentConfig
from ota_agent.services.agent import OtaAgent
from ota_agent.utils.logging import setup_logger

CONFIG_ENV = "OTA_AGENT_CONFIG"


def load_config() -> AgentConfig:
    """Load configuration from the file named by $OTA_AGENT_CONFIG (defaults if unset)."""
    return AgentConfig.load(os.environ.get(CONFIG_ENV))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown hooks.

    Startup:
    - Load configuration
    - Initialize logger
    - Build the agent and create the download directory

    Shutdown:
    - Cancel in-flight upgrade tasks
    """
    config = load_config()
    logger = setup_logger(config)
    logger.info("OTA agent starting up...")

    agent = OtaAgent(config)
    agent.start()
    app.state.agent = agent

    logger.info(f"OTA agent ready on port {config.port}")

    yield

    logger.info("OTA agent shutting down...")
    await agent.stop()


app = FastAPI(
    title="Module OTA Agent",
    description="Device-side module upgrade agent",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "ota-agent", "version": "1.0.0"}


def main():
    """Main entry point for running the server."""
    config = load_config()
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
