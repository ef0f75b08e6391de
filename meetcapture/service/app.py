# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
FastAPI application for the MeetCapture recording service.

Each POST /recordings request runs one complete recording session with its
own controller, browser and storage client, and answers when the session
has reached a terminal outcome:

- 200: recording persisted to every destination
- 207: recording persisted to some destinations only
- 500: session failed (see ``failed_stage`` and ``screenshot_location``)

Example Usage:
    Start the service:
    ```bash
    uvicorn meetcapture.service.app:app --host 0.0.0.0 --port 8000
    ```

    Record a meeting:
    ```bash
    curl -X POST http://localhost:8000/recordings \\
      -H "Content-Type: application/json" \\
      -d '{
        "meetingUrl": "https://meet.google.com/abc-defg-hij",
        "durationMinutes": 30,
        "storageType": "both",
        "outputPrefix": "client-name"
      }'
    ```
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import Depends, FastAPI, HTTPException, Response, status
from fastapi.responses import JSONResponse

from meetcapture import __version__
from meetcapture.exceptions import ConfigurationError
from meetcapture.providers import get_provider
from meetcapture.service.models import (
    ErrorResponse,
    HealthResponse,
    RecordingRequest,
    RecordingResponse,
)
from meetcapture.session import SessionController
from meetcapture.utils.logger import logger, session_logger

ControllerFactory = Callable[[str, logging.Logger], SessionController]

# Global state
start_time: float = 0
active_sessions: int = 0


def create_controller(provider_name: str, request_logger: logging.Logger) -> SessionController:
    """Build a controller with its own provider instance for one request."""
    return SessionController(get_provider(provider_name), logger=request_logger)


def get_controller_factory() -> ControllerFactory:
    return create_controller


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup and shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    global start_time, active_sessions

    logger.info("Starting MeetCapture service...")
    start_time = time.time()
    active_sessions = 0
    logger.info("MeetCapture service started successfully")

    yield

    logger.info("MeetCapture service stopped")


app = FastAPI(
    title="MeetCapture API",
    description="Join video conferences in a controlled browser and record them.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    license_info={
        "name": "Apache 2.0",
        "url": "https://www.apache.org/licenses/LICENSE-2.0.html",
    },
    openapi_tags=[
        {
            "name": "Health",
            "description": "Health check and service status endpoints",
        },
        {
            "name": "Recording",
            "description": "Record a meeting and persist the recording",
        },
    ],
)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            message="An unexpected error occurred",
            details={"exception": str(exc)},
        ).model_dump(),
    )


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health check",
)
async def health_check():
    """Return service status, uptime and the number of sessions recording."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=time.time() - start_time if start_time else 0.0,
        active_sessions=active_sessions,
    )


@app.post(
    "/recordings",
    response_model=RecordingResponse,
    tags=["Recording"],
    summary="Record a meeting",
    responses={
        207: {"model": RecordingResponse, "description": "Recording persisted partially"},
        400: {"model": ErrorResponse, "description": "Unknown provider"},
        500: {"model": RecordingResponse, "description": "Session failed"},
    },
)
async def create_recording(
    request: RecordingRequest,
    response: Response,
    controller_factory: ControllerFactory = Depends(get_controller_factory),
):
    """
    Record one meeting.

    The request blocks for the whole session, so clients should use a
    timeout larger than the requested duration.
    """
    global active_sessions

    request_id = str(uuid.uuid4())
    request_logger = session_logger(request_id)
    try:
        controller = controller_factory(request.provider, request_logger)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    logger.info(f"[{request_id}] Recording requested for {request.meeting_url}")
    active_sessions += 1
    try:
        result = await controller.run_session(request.to_session_settings())
    finally:
        active_sessions -= 1

    response.status_code = result.status_code
    return RecordingResponse.from_result(result, request_id)
