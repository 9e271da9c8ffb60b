"""
HTTP Entry Point for Pot Balancer

Monzo delivers webhooks to POST /. The handler always answers quickly
with a plain-text status; all decisions live in WebhookFlow.

Run locally with:
    python app/main.py
"""

from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from potbalancer import __version__
from potbalancer.orchestrator import WebhookFlow, create_app_components


def create_app(flow: Optional[WebhookFlow] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        flow: Webhook flow to serve; built from settings if None
    """
    app = FastAPI(title="Pot Balancer", version=__version__)
    app.state.flow = flow

    def get_flow() -> WebhookFlow:
        if app.state.flow is None:
            app.state.flow = create_app_components()
        return app.state.flow

    @app.post("/", response_class=PlainTextResponse)
    async def webhook(request: Request) -> PlainTextResponse:
        try:
            payload = await request.json()
        except ValueError:
            return PlainTextResponse("Bad Request: Invalid JSON", status_code=400)

        response = await get_flow().handle(payload)
        return PlainTextResponse(response.message, status_code=response.status_code)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
