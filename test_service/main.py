"""
Test Service for the FFMS Python SDK

This HTTP server wraps the FFMSClient and exposes a standard interface
for the test harness to interact with.

Protocol:
- GET /  -> Health check
- POST / -> Execute command
- DELETE / -> Cleanup/shutdown
"""

import os
import sys
from typing import Any, List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

# Add parent directory to path to import ffms
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ffms import FFMSClient, FFMSError

client: Optional[FFMSClient] = None
events: List[dict] = []


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Cleanup on shutdown
    await reset_client()


app = FastAPI(lifespan=lifespan)


def make_response(
    value: Optional[bool] = None,
    flags: Optional[dict] = None,
    is_ready: Optional[bool] = None,
    validated: Optional[bool] = None,
    channel_state: Optional[str] = None,
    events: Optional[List[dict]] = None,
    success: Optional[bool] = None,
    error: Optional[str] = None,
    message: Optional[str] = None,
) -> dict:
    resp: dict = {}
    if value is not None:
        resp["value"] = value
    if flags is not None:
        resp["flags"] = flags
    if is_ready is not None:
        resp["isReady"] = is_ready
    if validated is not None:
        resp["validated"] = validated
    if channel_state is not None:
        resp["channelState"] = channel_state
    if events is not None:
        resp["events"] = events
    if success is not None:
        resp["success"] = success
    if error is not None:
        resp["error"] = error
    if message is not None:
        resp["message"] = message
    return resp


def error_response(e: Exception) -> dict:
    return make_response(error=type(e).__name__, message=str(e))


def record_events(target: FFMSClient) -> None:
    """Keep a log of client events for the harness to poll."""
    target.on("initialized", lambda flags: events.append({"type": "initialized", "flags": flags}))
    target.on(
        "flag_updated",
        lambda name, state: events.append({"type": "flagUpdated", "name": name, "state": state}),
    )
    target.on("disconnected", lambda: events.append({"type": "disconnected"}))
    target.on("error", lambda err: events.append({"type": "error", "message": str(err)}))


async def reset_client() -> None:
    global client
    if client:
        await client.close()
        client = None
    events.clear()


def require_client() -> Optional[dict]:
    if not client:
        return make_response(error="NotInitializedError", message="Client not initialized")
    return None


async def handle_command(cmd: dict) -> dict:
    global client
    command = cmd.get("command")

    if command in ("create", "init"):
        config_data = cmd.get("config")
        if not config_data:
            return make_response(error="ConfigurationError", message="config is required")

        # Cleanup previous instance
        await reset_client()

        try:
            client = FFMSClient.from_options(config_data)
        except FFMSError as e:
            return error_response(e)

        record_events(client)
        if command == "create":
            return make_response(success=True)

        try:
            flags = await client.initialize()
            return make_response(success=True, flags=flags)
        except FFMSError as e:
            return error_response(e)

    elif command == "validate":
        missing = require_client()
        if missing:
            return missing

        try:
            await client.validate()
            return make_response(success=True, validated=True)
        except FFMSError as e:
            return error_response(e)

    elif command == "initialize":
        missing = require_client()
        if missing:
            return missing

        try:
            flags = await client.initialize()
            return make_response(success=True, flags=flags)
        except FFMSError as e:
            return error_response(e)

    elif command == "getFlag":
        missing = require_client()
        if missing:
            return missing

        flag_key = cmd.get("flagKey")
        if not flag_key:
            return make_response(error="ValidationError", message="flagKey is required")

        try:
            return make_response(value=client.get_flag(flag_key))
        except FFMSError as e:
            return error_response(e)

    elif command == "isEnabled":
        missing = require_client()
        if missing:
            return missing

        flag_key = cmd.get("flagKey")
        if not flag_key:
            return make_response(error="ValidationError", message="flagKey is required")

        default_value = cmd.get("defaultValue", False)
        return make_response(value=client.is_enabled(flag_key, default_value))

    elif command == "getAllFlags":
        missing = require_client()
        if missing:
            return missing

        return make_response(flags=client.get_all_flags())

    elif command == "listen":
        missing = require_client()
        if missing:
            return missing

        try:
            client.listen_for_updates()
            return make_response(success=True)
        except FFMSError as e:
            return error_response(e)

    elif command == "disconnect":
        missing = require_client()
        if missing:
            return missing

        client.disconnect()
        return make_response(success=True)

    elif command == "getEvents":
        drained = list(events)
        events.clear()
        return make_response(events=drained)

    elif command == "getState":
        if not client:
            return make_response(is_ready=False, channel_state="unknown")

        return make_response(
            is_ready=True,
            validated=client.validated,
            channel_state=client.channel_state.value,
        )

    elif command == "close":
        await reset_client()
        return make_response(success=True)

    else:
        return make_response(error="UnknownCommand", message=f"Unknown command: {command}")


@app.get("/")
async def health_check():
    return {"success": True}


@app.post("/")
async def execute_command(request: Request):
    try:
        cmd: Any = await request.json()
        result = await handle_command(cmd)
        return JSONResponse(content=result)
    except Exception as e:
        return JSONResponse(
            content=make_response(error="ParseError", message=str(e)),
            status_code=400,
        )


@app.delete("/")
async def cleanup():
    await reset_client()
    return {"success": True}


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8007"))
    print(f"[ffms-sdk-python test-service] Listening on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")
