# -*- coding: utf-8 -*-
import logging
from typing import Optional

from aiohttp import web

from config import Settings, settings
from handlers.videos import PIPELINE_KEY, error_middleware, routes
from services.generation_service import Pipeline, build_pipeline


def create_app(pipeline: Pipeline) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[PIPELINE_KEY] = pipeline
    app.add_routes(routes)

    async def _on_startup(_: web.Application) -> None:
        await pipeline.start()

    async def _on_cleanup(_: web.Application) -> None:
        await pipeline.stop()

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app


def main(cfg: Optional[Settings] = None) -> None:
    cfg = cfg or settings
    logging.basicConfig(
        level=getattr(logging, (cfg.LOG_LEVEL or "INFO").upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger = logging.getLogger(__name__)
    logger.info("APP_ENV: %s", cfg.APP_ENV)
    problem = cfg.api_key_problem()
    logger.info("OPENAI API Key set: %s", "Yes" if not problem else f"No ({problem})")
    logger.info("Blob store: %s", cfg.BLOB_DB_PATH)
    logger.info("Transcoding: %s", "on" if cfg.TRANSCODE_ENABLED else "off")

    app = create_app(build_pipeline(cfg))
    web.run_app(app, host=cfg.HOST, port=cfg.PORT)


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        pass
