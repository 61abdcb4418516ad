#!/usr/bin/env python3
"""
Server launcher for the chart signal relay.

Loads a .env file if present, builds settings once, and starts uvicorn on the
configured port.
"""

import logging

import uvicorn
from dotenv import load_dotenv

load_dotenv()  # Loads .env before settings read the environment

from src.api.main import create_app
from src.settings import load_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

if __name__ == "__main__":
    settings = load_settings()
    print(f"Starting chart signal relay on port {settings.port}")
    print(f"API documentation at: http://localhost:{settings.port}/docs")

    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",  # Accept connections from any IP
        port=settings.port,
        log_level="info",
    )
