"""
HTTP routes.

    GET  /health                 liveness plus number of loaded templates
    GET  /api/templates          registered templates and their locales
    POST /api/resume/generate    résumé JSON in, PDF out

The generate route is a thin adapter: size cap, locale negotiation and error mapping
live in quill.contexts.delivery; the work runs on GenerationService. If the client
disconnects mid-generation the task is cancelled, which aborts the compiler.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from quill.contexts.delivery.boundary import (
    MAX_PAYLOAD_BYTES,
    ErrorResponse,
    check_payload_size,
    decode_payload,
    error_response,
    internal_error_response,
    parse_accept_language,
    pdf_response_headers,
)
from quill.contexts.delivery.logger import _log_exception, _log_info, _log_warning
from quill.contexts.generation.service import GenerationService
from quill.contexts.intake.request import GenerationRequest, new_request_id
from quill.contexts.rendering.compiler import CompiledDocument
from quill.contexts.templating.registries import TemplateRegistry, normalize_locale
from quill.exceptions import CompilationCancelled, GenerationError

router = APIRouter()

CALLER_ID_HEADER = "X-Caller-Id"
REQUEST_ID_HEADER = "X-Request-Id"
DISCONNECT_POLL_INTERVAL_S = 0.25


def get_service(request: Request) -> GenerationService:
    return request.app.state.service


def get_registry(request: Request) -> TemplateRegistry:
    return request.app.state.registry


def _declared_length(request: Request) -> Optional[int]:
    value = request.headers.get("content-length")
    if value is None or not value.strip().isdigit():
        return None
    return int(value)


async def _read_body(request: Request, limit: int) -> bytes:
    """Read the body, giving up as soon as it exceeds ``limit`` (covers chunked uploads)."""
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        check_payload_size(len(body), limit)
    return bytes(body)


async def _generate_until_disconnect(
    request: Request, service: GenerationService, generation_request: GenerationRequest
) -> CompiledDocument:
    task = asyncio.ensure_future(service.generate(generation_request))
    while True:
        done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL_S)
        if done:
            return task.result()
        if await request.is_disconnected():
            task.cancel()
            await asyncio.wait({task})
            raise CompilationCancelled("Client disconnected during generation")


def _problem_response(error: ErrorResponse, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=error.body,
        headers={**error.headers, REQUEST_ID_HEADER: request_id},
        media_type="application/problem+json",
    )


@router.get("/health")
async def health(request: Request):
    return {"status": "ok", "templates": len(get_registry(request))}


@router.get("/api/templates")
async def list_templates(request: Request):
    return {"templates": [metadata.to_dict() for metadata in get_registry(request).list_templates()]}


@router.post("/api/resume/generate")
async def generate_resume(request: Request):
    request_id = new_request_id()
    locale = parse_accept_language(request.headers.get("accept-language"))

    try:
        check_payload_size(_declared_length(request))
        payload = decode_payload(await _read_body(request, MAX_PAYLOAD_BYTES))

        generation_request = GenerationRequest.from_payload(
            payload,
            locale=locale,
            caller_id=request.headers.get(CALLER_ID_HEADER),
            request_id=request_id,
        )
        locale = normalize_locale(generation_request.locale)

        document = await _generate_until_disconnect(
            request, get_service(request), generation_request
        )
    except GenerationError as e:
        if isinstance(e, CompilationCancelled):
            _log_warning(f"{request_id}: generation abandoned by client")
        return _problem_response(error_response(e, request_id, locale), request_id)
    except Exception:
        _log_exception(f"{request_id}: unexpected error during generation")
        return _problem_response(internal_error_response(request_id, locale), request_id)

    _log_info(f"{request_id}: delivering {document.size} byte PDF ({locale})")
    return Response(
        content=document.pdf_bytes,
        media_type="application/pdf",
        headers={**pdf_response_headers(document, locale), REQUEST_ID_HEADER: request_id},
    )
