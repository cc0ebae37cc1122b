# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from aiohttp import web

from errors import ValidationError, error_payload
from models import VIDEO_MIME
from services.generation_service import Pipeline, create_video
from utils.validators import validate_job_id

log = logging.getLogger(__name__)

PIPELINE_KEY = web.AppKey("pipeline", Pipeline)

routes = web.RouteTableDef()

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Render pipeline errors as {"error", "code"} JSON with the mapped status."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as exc:
        status, payload = error_payload(exc)
        if status >= 500:
            log.exception("Request failed: %s %s", request.method, request.path)
        else:
            log.info("Request rejected (%s): %s %s: %s", status, request.method, request.path, exc)
        return web.json_response(payload, status=status)


def _pipeline(request: web.Request) -> Pipeline:
    return request.app[PIPELINE_KEY]


async def _json_body(request: web.Request) -> dict[str, Any]:
    if not request.can_read_body:
        raise ValidationError("Request body is required")
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _video_response(job_id: str, data: bytes, content_type: str = VIDEO_MIME) -> web.Response:
    return web.Response(
        body=data,
        content_type=content_type,
        headers={
            "Content-Disposition": f'attachment; filename="dream-video-{job_id}.mp4"',
            "Cache-Control": "public, max-age=31536000",
        },
    )


@routes.post("/api/create-video")
async def create_video_handler(request: web.Request) -> web.Response:
    body = await _json_body(request)
    pipeline = _pipeline(request)
    result = await create_video(
        pipeline.provider,
        prompt=body.get("prompt"),
        use_template=bool(body.get("useTemplate")),
        model=body.get("model"),
        seconds=body.get("seconds"),
        size=body.get("size"),
        default_model=pipeline.default_model,
    )
    return web.json_response(
        {"jobId": result.job_id, "status": result.status.value, "createdAt": result.created_at}
    )


@routes.get("/api/video-status/{job_id}")
async def video_status_handler(request: web.Request) -> web.Response:
    resolution = await _pipeline(request).resolver.resolve(request.match_info["job_id"])
    return web.json_response(resolution.to_dict())


@routes.post("/api/process-video")
async def process_video_handler(request: web.Request) -> web.Response:
    body = await _json_body(request)
    job_id = body.get("jobId")
    if not job_id:
        raise ValidationError("Missing jobId")

    resolver = _pipeline(request).resolver
    if body.get("wait"):
        url = await resolver.complete_now(job_id)
        return web.json_response({"success": True, "jobId": job_id, "cachedUrl": url})

    if not resolver.trigger_completion(job_id):
        return web.json_response(
            {"error": "Processing queue is full, retry later", "code": "QUEUE_FULL"},
            status=503,
        )
    return web.json_response({"success": True, "jobId": job_id, "queued": True}, status=202)


@routes.get("/cache/{job_id}")
async def cached_video_handler(request: web.Request) -> web.Response:
    job_id = validate_job_id(request.match_info["job_id"])
    artifact = await _pipeline(request).cache.get_artifact(job_id)
    if artifact is None:
        log.warning("Video not found: job_id=%s", job_id)
        return web.json_response({"error": f"Video not found for job ID: {job_id}"}, status=404)

    log.info("Video retrieved successfully: job_id=%s size=%d", job_id, artifact.size)
    return _video_response(job_id, artifact.data, artifact.content_type)


@routes.get("/provider/{job_id}")
async def provider_video_handler(request: web.Request) -> web.Response:
    job_id = validate_job_id(request.match_info["job_id"])
    data = await _pipeline(request).provider.download(job_id)
    return _video_response(job_id, data)


@routes.get("/api/cached")
async def cached_list_handler(request: web.Request) -> web.Response:
    job_ids = await _pipeline(request).cache.list_job_ids()
    return web.json_response({"jobIds": job_ids, "count": len(job_ids)})


@routes.get("/healthz")
async def health_handler(request: web.Request) -> web.Response:
    queue = _pipeline(request).queue
    return web.json_response(
        {
            "status": "ok",
            "queueDepth": queue.depth,
            "workersRunning": queue.running,
            "processed": queue.processed,
            "failed": queue.failed,
        }
    )
