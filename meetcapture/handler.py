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
Serverless handler.

Expected event (direct invocation):
    {
        "meetingUrl": "https://meet.google.com/xxx-xxxx-xxx",
        "durationMinutes": 60,
        "botName": "Note Meet Bot",
        "storageType": "remote",
        "outputPrefix": "client-name"
    }

API-gateway events carry the same object as a JSON string in ``body``.
Storage credentials come from the S3_* environment variables.
"""

from __future__ import annotations

import asyncio
import base64
import json
import os
import traceback
from typing import Any, Dict, Mapping, Optional

from meetcapture.config import env_settings
from meetcapture.exceptions import ConfigurationError
from meetcapture.session import SessionOutcome, run_session
from meetcapture.utils.logger import logger

LAMBDA_OUTPUT_DIRECTORY = "/tmp/meet-recordings"

_PAYLOAD_KEYS = {
    "meeting_url": ("meetingUrl", "meeting_url"),
    "bot_name": ("botName", "bot_name"),
    "duration_minutes": ("durationMinutes", "duration_minutes"),
    "storage_mode": ("storageType", "storage_type", "storage_mode"),
    "output_group": ("outputPrefix", "output_prefix", "output_group"),
    "headless": ("headless",),
}

_MESSAGES = {
    SessionOutcome.SUCCESS: "Meeting recording completed successfully",
    SessionOutcome.PARTIAL: "Meeting recording completed with storage failures",
    SessionOutcome.FAILED: "Failed to record meeting",
}


def parse_event(event: Any) -> Dict[str, Any]:
    """
    Extract the request payload from a direct or API-gateway event.

    Raises:
        ConfigurationError: If the event or its body is not a JSON object
    """
    if isinstance(event, Mapping) and "body" in event:
        body = event["body"]
        if body is None:
            return {}
        if isinstance(body, Mapping):
            return dict(body)
        if event.get("isBase64Encoded") and isinstance(body, str):
            body = base64.b64decode(body)
        try:
            payload = json.loads(body)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Request body is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ConfigurationError("Request body must be a JSON object")
        return payload
    if isinstance(event, Mapping):
        return dict(event)
    raise ConfigurationError(f"Unsupported event type: {type(event).__name__}")


def build_session_settings(
    payload: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Merge the event payload over the environment settings."""
    data = env_settings(environ)
    data["output_directory"] = LAMBDA_OUTPUT_DIRECTORY
    for name, keys in _PAYLOAD_KEYS.items():
        for key in keys:
            value = payload.get(key)
            if value is not None and value != "":
                data[name] = value
                break
    return data


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def _debug_enabled() -> bool:
    return os.environ.get("DEBUG", "").lower() == "true"


def handler(event: Any, context: Any = None) -> Dict[str, Any]:
    """Record one meeting and return an HTTP-style response."""
    logger.info(f"Event received: {json.dumps(event, default=str)}")

    try:
        payload = parse_event(event)
    except ConfigurationError as e:
        return _response(400, {"message": "Invalid request", "error": str(e)})

    meeting_url = payload.get("meetingUrl") or payload.get("meeting_url")
    if not meeting_url:
        return _response(400, {
            "message": "Invalid request",
            "error": "Missing required parameter: meetingUrl",
        })

    settings = build_session_settings(payload)
    logger.info(f"Starting recording for meeting: {meeting_url}")
    try:
        result = asyncio.run(run_session(settings))
    except Exception as e:
        logger.error(f"Error recording meeting: {e}", exc_info=True)
        body: Dict[str, Any] = {"message": _MESSAGES[SessionOutcome.FAILED], "error": str(e)}
        if _debug_enabled():
            body["stack"] = traceback.format_exc()
        return _response(500, body)

    body = {
        "message": _MESSAGES[result.outcome],
        "meetingUrl": meeting_url,
        "recordingDuration": settings.get("duration_minutes"),
        "result": result.to_dict(),
    }
    if not result.success:
        body["error"] = result.error
        if _debug_enabled():
            body["stack"] = result.error_traceback
    return _response(result.status_code, body)
