"""
Gateway API Routes.

Endpoints:
    POST    /v1/gateway  - Action dispatch (also mounted at "/")
    OPTIONS /v1/gateway  - CORS preflight, always 200
    GET     /health      - Health check for load balancers and probes
    GET     /metrics     - Prometheus metrics

Actions (``action`` field of the JSON body):
    translate      -> JSON TranslationResult
    speak          -> audio/mpeg, body is base64 text (X-Audio-Encoding: base64)
    speak-chunk    -> JSON {audio, chunkIndex, totalChunks, text, completed}
    save-feedback  -> JSON {success: true}

Request Flow:
    1. Generate request ID for tracing
    2. Parse and validate the JSON body
    3. Resolve the caller from the optional Bearer token
    4. Dispatch to GatewayService
    5. Map GatewayError to a JSON error body

Error Handling:
    {"error": "<human readable message>", "code": "<ERROR_CODE>"}

    Outside production a "stack" field carries the traceback. Status codes
    come from core.errors.status_for(): 400 for bad input, 401 when login
    is required, 405 for wrong methods, 500 for provider/server failures.

Example:
    curl -X POST http://localhost:8000/v1/gateway \\
        -H "Content-Type: application/json" \\
        -d '{"action": "translate", "inputText": "Hello world.", "targetLang": "Korean"}'
"""
from __future__ import annotations

import base64
import json
import traceback
import uuid
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse

from transvox.api.dependencies import bearer_token, get_gateway
from transvox.api.schemas import GatewayRequest
from transvox.core.errors import ErrorCode, GatewayError, ValidationError, status_for
from transvox.core.logging import error, get_logger, info, set_request_id
from transvox.core.metrics import metrics
from transvox.services.gateway import (
    CallerContext,
    GatewayService,
    SpeechRequest,
    TranslationRequest,
)

router = APIRouter()

_LOG = get_logger("transvox.api")

GATEWAY_PATHS = ("/v1/gateway", "/")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _error_response(err: GatewayError, service: GatewayService, rid: str) -> JSONResponse:
    """
    Create a JSON error response from a GatewayError.

    The traceback is included only when the environment is not production.
    """
    body = err.to_dict()
    if not service.config.is_production:
        body["stack"] = "".join(traceback.format_exception(type(err), err, err.__traceback__))
    headers = {**CORS_HEADERS, "X-Request-Id": rid}
    return JSONResponse(status_code=status_for(err), content=body, headers=headers)


async def _parse_body(request: Request) -> GatewayRequest:
    raw = await request.body()
    try:
        data = json.loads(raw or b"{}")
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return GatewayRequest.model_validate(data)
    except pydantic.ValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ValidationError(f"Invalid fields: {', '.join(fields)}", ErrorCode.INVALID_INPUT,
                              {"fields": fields})


def _speech_request(req: GatewayRequest, caller: CallerContext) -> SpeechRequest:
    return SpeechRequest(
        text=req.input_text or "",
        language=req.language,
        voice=req.voice,
        voice_name=req.voice_name,
        use_google_tts=req.use_google_tts,
        user_id=caller.user_id,
        credentials=caller.credentials,
    )


async def _dispatch(req: GatewayRequest, caller: CallerContext, service: GatewayService, rid: str) -> Response:
    headers = {**CORS_HEADERS, "X-Request-Id": rid}

    if req.action == "translate":
        result = await service.translate(TranslationRequest(
            text=req.input_text or "",
            target_language=req.target_lang or "",
            quality_level=req.quality_level,
            pronunciation=req.get_pronunciation,
            contextual_prompt=req.contextual_prompt,
            use_ai_context=req.use_ai_context,
            domain=req.domain or "general",
            model=req.model,
            user_id=caller.user_id,
            credentials=caller.credentials,
        ))
        return JSONResponse(content=result.to_dict(), headers=headers)

    if req.action == "speak":
        result = await service.speak(_speech_request(req, caller))
        headers["X-Audio-Encoding"] = "base64"
        headers["X-Speech-Provider"] = result.provider
        return Response(content=base64.b64encode(result.audio), media_type="audio/mpeg", headers=headers)

    if req.action == "speak-chunk":
        chunk = await service.speak_chunk(_speech_request(req, caller), req.chunk_index)
        return JSONResponse(content=chunk.to_dict(), headers=headers)

    if req.action == "save-feedback":
        await service.save_feedback(
            caller.user_id,
            req.original_text,
            req.original_translation,
            req.corrected_translation,
            req.feedback_target_lang,
        )
        return JSONResponse(content={"success": True}, headers=headers)

    raise ValidationError(f"Unknown action: '{req.action}'", ErrorCode.UNKNOWN_ACTION,
                          {"supported": ["translate", "speak", "speak-chunk", "save-feedback"]})


async def gateway(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    service: GatewayService = Depends(get_gateway),
) -> Response:
    """
    Gateway action endpoint.

    Raises nothing: every failure becomes a JSON error response.
    """
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)

    try:
        req = await _parse_body(request)
        caller = await service.resolve_caller(bearer_token(authorization))
        info(_LOG, "request", action=req.action, user=bool(caller.user_id))
        return await _dispatch(req, caller, service, rid)

    except GatewayError as e:
        return _error_response(e, service, rid)

    except Exception as e:
        # Unexpected errors are logged with their type and returned as 500
        error(_LOG, "unhandled_error", error=str(e), error_type=type(e).__name__)
        wrapped = GatewayError(str(e) or "Internal server error", ErrorCode.INTERNAL_ERROR)
        wrapped.__traceback__ = e.__traceback__
        return _error_response(wrapped, service, rid)


def gateway_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


def gateway_method_not_allowed(service: GatewayService = Depends(get_gateway)) -> Response:
    err = GatewayError("Method Not Allowed", ErrorCode.METHOD_NOT_ALLOWED)
    response = JSONResponse(status_code=status_for(err), content=err.to_dict(), headers=CORS_HEADERS)
    response.headers["Allow"] = "POST, OPTIONS"
    return response


for _path in GATEWAY_PATHS:
    router.add_api_route(_path, gateway, methods=["POST"])
    router.add_api_route(_path, gateway_preflight, methods=["OPTIONS"])
    router.add_api_route(_path, gateway_method_not_allowed, methods=["GET", "PUT", "PATCH", "DELETE"])


@router.get("/health")
def health(service: GatewayService = Depends(get_gateway)):
    """
    Health check endpoint for load balancers and orchestration.

    Returns:
        dict: status, environment, cache statistics and configured providers.
    """
    return service.get_health_info()


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics endpoint (text exposition format)."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
