"""
FastAPI application.

Run with:
    uvicorn quill.api.main:app
or:
    python scripts/generate_pdf.py serve
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from quill import __version__
from quill.api.router import router
from quill.contexts.generation.pipeline import GenerationPipeline
from quill.contexts.generation.service import GenerationService
from quill.contexts.rendering.compiler import LatexCompiler
from quill.contexts.templating.registries import TemplateRegistry
from quill.utils.logger import setup_logger

load_dotenv()

_log_dir = os.getenv("API_LOG_DIR")
API_LOG_DIR = Path(_log_dir) if _log_dir else None


def create_app(
    service: Optional[GenerationService] = None,
    registry: Optional[TemplateRegistry] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the API application.

    Anything not supplied is built at startup: the template registry (loaded once,
    immutable), a slot-bounded LatexCompiler on the configured sandbox, and the
    generation service with its worker pool. A service built here is shut down
    with the app.

    Args:
        service: Pre-built generation service (tests inject fakes here)
        registry: Pre-built template registry
        configure_logging: Install console/file log sinks at startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logger("api", log_dir=API_LOG_DIR, extra_provenance={"Version": __version__})

        if app.state.registry is None:
            app.state.registry = TemplateRegistry()

        owns_service = app.state.service is None
        if owns_service:
            pipeline = GenerationPipeline(app.state.registry, LatexCompiler())
            app.state.service = GenerationService(pipeline)

        yield

        if owns_service:
            app.state.service.shutdown(wait=False)

    app = FastAPI(
        title="Quill",
        description="Sandboxed LaTeX résumé-to-PDF generation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.registry = registry
    app.include_router(router)
    return app


app = create_app()
