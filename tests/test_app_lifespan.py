"""Application lifespan tests.

Runs the real startup/shutdown sequence instead of wiring app.state by hand:
- Startup creates tables and the upload directory, wires the processor and
  fails jobs orphaned by a previous process
- Shutdown cancels in-flight generations; the next startup fails them
"""

import pytest
from httpx import ASGITransport, AsyncClient

from genstudio.app import create_app
from genstudio.models.generation import GenerationStatus, GenerationStyle
from genstudio.models.user import User
from genstudio.services.simulation import FixedProcessingStrategy
from genstudio.workers.generation_processor import GenerationProcessor

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def create_processing_job(uow_factory, storage, job_id: str):
    image_path = await storage.save_upload(PNG_BYTES, "image/png")
    async with await uow_factory() as uow:
        user = User(email=f"{job_id}@example.com", password_hash="hash")
        uow.session.add(user)
        await uow.session.flush()
        await uow.generations.create_job(
            job_id=job_id,
            user_id=user.id,
            prompt="A lighthouse",
            style=GenerationStyle.ARTISTIC,
            image_path=str(image_path),
        )
    return image_path


async def get_status(app, job_id: str) -> GenerationStatus:
    async with await app.state.uow_factory() as uow:
        return (await uow.generations.get_by_id(job_id)).status


@pytest.mark.asyncio
async def test_startup_fails_orphaned_jobs(settings, uow_factory, storage, tmp_path):
    await create_processing_job(uow_factory, storage, "orphan")
    settings.upload_dir = tmp_path / "fresh-uploads"
    app = create_app(settings=settings, processing_strategy=FixedProcessingStrategy())

    async with app.router.lifespan_context(app):
        assert isinstance(app.state.processor, GenerationProcessor)
        assert settings.upload_dir.is_dir()
        assert await get_status(app, "orphan") == GenerationStatus.FAILED

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")
        assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_shutdown_cancels_in_flight_and_restart_fails_them(
    settings, uow_factory, storage
):
    image_path = await create_processing_job(uow_factory, storage, "in-flight")
    app = create_app(settings=settings, processing_strategy=FixedProcessingStrategy(delay=30))

    async with app.router.lifespan_context(app):
        task = app.state.processor.schedule("in-flight", image_path)
        assert app.state.processor.active_count == 1

    assert task.cancelled()

    restarted = create_app(settings=settings, processing_strategy=FixedProcessingStrategy())
    async with restarted.router.lifespan_context(restarted):
        assert await get_status(restarted, "in-flight") == GenerationStatus.FAILED
