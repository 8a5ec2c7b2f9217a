"""
Async generation service.

Runs the blocking pipeline on a dedicated, bounded thread pool so slow compilations
never occupy the event loop or its default executor. Cancelling the awaiting task
(e.g. because the HTTP client disconnected) sets the request's cancel event; the
sandbox then kills its compiler and removes its working area.
"""

import asyncio
import os
import threading
from concurrent.futures import ThreadPoolExecutor

from dotenv import load_dotenv

from quill.contexts.generation.logger import _log_debug, _log_info, _log_warning
from quill.contexts.generation.pipeline import GenerationPipeline
from quill.contexts.intake.request import GenerationRequest
from quill.contexts.rendering.compiler import CompiledDocument

load_dotenv()

GENERATION_WORKERS = int(os.getenv("GENERATION_WORKERS", "8"))


class GenerationService:
    """
    Async front end to a GenerationPipeline.

    Example:
        service = GenerationService(pipeline)
        document = await service.generate(request)
        ...
        service.shutdown()
    """

    def __init__(self, pipeline: GenerationPipeline, max_workers: int = GENERATION_WORKERS):
        """
        Args:
            pipeline: Pipeline shared by all workers
            max_workers: Size of the dedicated worker pool
        """
        self.pipeline = pipeline
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="quill-generate"
        )
        _log_info(f"Generation service started with {max_workers} worker(s)")

    async def generate(self, request: GenerationRequest) -> CompiledDocument:
        """
        Generate a PDF without blocking the event loop.

        Raises:
            Whatever the pipeline raises, unchanged
            asyncio.CancelledError: If the awaiting task is cancelled; the in-flight
                                    compilation is aborted
        """
        loop = asyncio.get_running_loop()
        cancel_event = threading.Event()
        future = loop.run_in_executor(
            self._executor, self.pipeline.generate, request, cancel_event
        )

        try:
            return await future
        except asyncio.CancelledError:
            _log_warning(f"{request.request_id}: caller went away, cancelling generation")
            cancel_event.set()
            raise

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; queued requests are dropped."""
        _log_debug("Shutting down generation workers")
        self._executor.shutdown(wait=wait, cancel_futures=True)
