"""Unit tests for the async generation service."""

import asyncio

import pytest

from quill.contexts.generation.pipeline import GenerationPipeline
from quill.contexts.generation.service import GenerationService
from quill.contexts.intake.request import GenerationRequest
from quill.contexts.rendering.compiler import LatexCompiler
from quill.exceptions import ValidationError


@pytest.fixture
def make_service(registry, events_file):
    services = []

    def make(sandbox, max_workers=2):
        pipeline = GenerationPipeline(registry, LatexCompiler(sandbox), events_file=events_file)
        service = GenerationService(pipeline, max_workers=max_workers)
        services.append(service)
        return service

    yield make
    for service in services:
        service.shutdown()


@pytest.mark.unit
def test_generate_runs_off_the_event_loop(make_service, fake_sandbox, minimal_resume, pdf_bytes):
    service = make_service(fake_sandbox)
    request = GenerationRequest("engineering", minimal_resume)

    document = asyncio.run(service.generate(request))

    assert document.pdf_bytes == pdf_bytes


@pytest.mark.unit
def test_generate_propagates_pipeline_errors(make_service, fake_sandbox):
    service = make_service(fake_sandbox)

    with pytest.raises(ValidationError):
        asyncio.run(service.generate(GenerationRequest("engineering", {"basics": {}})))


@pytest.mark.unit
def test_cancelling_the_task_cancels_the_compilation(make_service, make_sandbox, minimal_resume):
    """A cancelled caller sets the cancel event seen by the sandbox."""
    sandbox = make_sandbox(delay_s=10)
    service = make_service(sandbox)

    async def run_and_cancel():
        task = asyncio.ensure_future(service.generate(GenerationRequest("engineering", minimal_resume)))
        while sandbox.calls == 0:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run_and_cancel())

    assert sandbox.cancelled.wait(timeout=5)


@pytest.mark.unit
def test_concurrent_requests(make_service, fake_sandbox, minimal_resume):
    service = make_service(fake_sandbox, max_workers=4)

    async def run_many():
        requests = [GenerationRequest("engineering", minimal_resume) for _ in range(6)]
        return await asyncio.gather(*(service.generate(r) for r in requests))

    documents = asyncio.run(run_many())

    assert len({d.request_id for d in documents}) == 6
    assert fake_sandbox.calls == 6
