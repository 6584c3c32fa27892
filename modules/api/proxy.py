"""
Inference proxy: the only component holding the model credential.

Request lifecycle (`POST /api/generate`):
1. Reject non-POST methods with 405 and `Allow: POST`.
2. Parse `{image, mimeType}`; missing or malformed data -> 400.
3. Read the credential from the environment; absent -> 500.
4. Decode the base64 image; invalid -> 400.
5. Issue one remote call with the fixed instruction template and return
   the trimmed text as `{prompt}`.

Remote failures are logged with full detail and answered with a generic
500 message; provider text never reaches the client.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from config.settings import AppConfig
from modules.errors import ConfigurationError
from modules.optimization.gemini_backend import BackendFactory, InferenceRequest, gemini_backend
from modules.optimization.instructions import MASTER_PHOTOGRAPHER, InstructionTemplate
from modules.utils.image_utils import decode

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing image data or mimeType"
INVALID_IMAGE_MESSAGE = "Image data is not valid base64."
REMOTE_FAILURE_MESSAGE = "Failed to communicate with the Gemini API."

CredentialLoader = Callable[[], Optional[str]]


def _missing_credential_message(env_name: str) -> str:
    return f"{env_name} environment variable is not set on the server."


def env_credential(env_name: str) -> CredentialLoader:
    """Read ``env_name`` afresh on every call."""

    def _load() -> Optional[str]:
        return os.getenv(env_name) or None

    return _load


def build_router(
    config: AppConfig,
    template: InstructionTemplate = MASTER_PHOTOGRAPHER,
    backend_factory: BackendFactory = gemini_backend,
    credential_loader: Optional[CredentialLoader] = None,
) -> APIRouter:
    """Return the router serving `/api/generate` and `/healthz`."""
    router = APIRouter()
    load_credential = credential_loader or env_credential(config.api_key_env)

    def _require_credential() -> str:
        api_key = load_credential()
        if not api_key:
            raise ConfigurationError(_missing_credential_message(config.api_key_env))
        return api_key

    @router.post("/api/generate")
    async def generate(request: Request):
        try:
            body: Any = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return JSONResponse(status_code=400, content={"error": MISSING_FIELDS_MESSAGE})

        image = body.get("image")
        mime_type = body.get("mimeType")
        if not image or not mime_type or not isinstance(image, str) or not isinstance(mime_type, str):
            return JSONResponse(status_code=400, content={"error": MISSING_FIELDS_MESSAGE})

        try:
            api_key = _require_credential()
        except ConfigurationError as exc:
            logger.error("Refusing generation request: %s", exc)
            return JSONResponse(status_code=500, content={"error": str(exc)})

        try:
            image_bytes = decode(image)
        except ValueError:
            return JSONResponse(status_code=400, content={"error": INVALID_IMAGE_MESSAGE})

        inference = InferenceRequest(
            image=image_bytes,
            mime_type=mime_type,
            system_instruction=template.system_instruction,
            user_instruction=template.user_instruction,
            model=config.gemini_model_id,
        )
        try:
            backend = backend_factory(api_key)
            text = await backend(inference)
        except Exception:  # noqa: BLE001
            logger.exception("Error calling the Gemini API (model=%s)", config.gemini_model_id)
            return JSONResponse(status_code=500, content={"error": REMOTE_FAILURE_MESSAGE})

        prompt = text.strip()
        if not prompt:
            logger.error("Gemini API returned an empty prompt (model=%s)", config.gemini_model_id)
            return JSONResponse(status_code=500, content={"error": REMOTE_FAILURE_MESSAGE})
        return {"prompt": prompt}

    @router.api_route("/api/generate", methods=["GET", "PUT", "PATCH", "DELETE"])
    async def generate_method_not_allowed():
        return PlainTextResponse("Method Not Allowed", status_code=405, headers={"Allow": "POST"})

    @router.get("/healthz")
    def healthz():
        return {
            "status": "ok",
            "model": config.gemini_model_id,
            "instruction_version": template.version,
            "credential_configured": bool(load_credential()),
        }

    return router


def create_proxy_app(config: AppConfig, **router_options: Any) -> FastAPI:
    """FastAPI application factory for the proxy."""
    app = FastAPI(title="ProVision Prompt Crafter", version="0.1.0")
    app.include_router(build_router(config, **router_options))
    return app
