"""One POST endpoint that runs a named action.

The reply is always ``text/plain``: ``"Success"`` or ``"Error: <message>"``.
Actions run one at a time; a process-wide lock serialises requests.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from crm_autopilot import __version__
from crm_autopilot.actions import invoke, response_text
from crm_autopilot.io import TableStore
from crm_autopilot.notify import Notifier

logger = logging.getLogger(__name__)


def create_app(
    open_store: Callable[[], TableStore],
    notifier: Notifier,
    *,
    console: bool = True,
) -> FastAPI:
    """Build the FastAPI app; *open_store* is called once per request."""
    app = FastAPI(title="crm-autopilot", version=__version__)
    lock = threading.Lock()

    def _run(action: Any) -> str:
        with lock:
            try:
                store = open_store()
            except Exception as exc:
                logger.error("Could not open workbook: %s", exc)
                return f"Error: {exc}"
            report = invoke(action, store, notifier, console=console)
            return response_text(report)

    async def run_action(request: Request) -> PlainTextResponse:
        try:
            payload = await request.json()
        except ValueError as exc:
            logger.error("Invalid JSON body: %s", exc)
            return PlainTextResponse(f"Error: Invalid JSON body: {exc}")
        if not isinstance(payload, dict) or "action" not in payload:
            return PlainTextResponse("Error: Request body must be a JSON object with 'action'")
        text = await run_in_threadpool(_run, payload["action"])
        return PlainTextResponse(text)

    app.add_api_route("/", run_action, methods=["POST"], response_class=PlainTextResponse)
    app.add_api_route("/exec", run_action, methods=["POST"], response_class=PlainTextResponse)
    return app
