"""Generation API endpoints.

This module implements REST endpoints for simulated AI generations:
- POST /api/generations - Upload an image with prompt and style, start processing
- GET /api/generations - Recent generations of the current user
- GET /api/generations/{generation_id} - One generation, owner only

Creation returns as soon as the job row exists in `processing`; the result is
produced by a background task, so clients re-fetch to observe completion.
"""

from datetime import datetime
from typing import Annotated
from uuid import uuid4

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from genstudio.api.dependencies import (
    CurrentUser,
    get_processor,
    get_settings,
    get_storage,
    get_uow_factory,
)
from genstudio.core.config import Settings
from genstudio.models.generation import GenerationJob, GenerationStatus, GenerationStyle
from genstudio.services.exceptions import (
    AuthorizationError,
    ConflictError,
    InternalError,
    TransientOverloadError,
    ValidationError,
)
from genstudio.services.storage import UploadStorage
from genstudio.services.validation import (
    clamp_limit,
    validate_image,
    validate_prompt,
    validate_style,
)
from genstudio.workers.generation_processor import GenerationProcessor

logger = structlog.get_logger()
router = APIRouter(prefix="/api/generations", tags=["generations"])

OVERLOADED_MESSAGE = "Model overloaded, please try again"


# Request/Response Models


class GenerationSummaryDTO(BaseModel):
    """Generation as returned right after creation."""

    id: str = Field(..., description="Public generation identifier")
    prompt: str = Field(..., description="Prompt text (trimmed)")
    style: GenerationStyle = Field(..., description="Requested style")
    status: GenerationStatus = Field(
        ..., description="Lifecycle status (processing, completed, failed)"
    )
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")


class GenerationDTO(GenerationSummaryDTO):
    """Generation with public URLs instead of filesystem paths."""

    model_config = ConfigDict(populate_by_name=True)

    image_url: str | None = Field(
        default=None,
        alias="imageUrl",
        description="URL of the original upload",
    )
    result_image_url: str | None = Field(
        default=None,
        alias="resultImageUrl",
        description="URL of the result (null unless completed)",
    )

    @classmethod
    def from_job(cls, job: GenerationJob, storage: UploadStorage) -> "GenerationDTO":
        result_path = job.result_image_path if job.status == GenerationStatus.COMPLETED else None
        return cls(
            id=job.id,
            prompt=job.prompt,
            style=job.style,
            status=job.status,
            created_at=job.created_at,
            image_url=storage.url_for(job.image_path),
            result_image_url=storage.url_for(result_path),
        )


class CreateGenerationData(BaseModel):
    generation: GenerationSummaryDTO


class CreateGenerationResponse(BaseModel):
    success: bool = True
    message: str
    data: CreateGenerationData


class GenerationListData(BaseModel):
    generations: list[GenerationDTO]
    total: int = Field(..., description="Number of generations in this response")
    overall: int = Field(..., description="Number of generations the user owns")


class GenerationListResponse(BaseModel):
    success: bool = True
    data: GenerationListData


class GenerationData(BaseModel):
    generation: GenerationDTO


class GenerationResponse(BaseModel):
    success: bool = True
    data: GenerationData


# API Endpoints


@router.post("", response_model=CreateGenerationResponse, status_code=status.HTTP_201_CREATED)
async def create_generation(
    current_user: CurrentUser,
    prompt: Annotated[str | None, Form()] = None,
    style: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
    uow_factory=Depends(get_uow_factory),
    settings: Settings = Depends(get_settings),
    storage: UploadStorage = Depends(get_storage),
    processor: GenerationProcessor = Depends(get_processor),
) -> CreateGenerationResponse:
    """Start a simulated generation.

    Workflow:
    1. Validate prompt, style and image (nothing is stored on failure)
    2. Reject with an overload error if the concurrency gate is full
    3. Write the upload to disk
    4. Create the job row in processing state
    5. Schedule background processing and return immediately

    Raises:
        ValidationError 400: Bad prompt, style, missing/wrong-type/oversized image
        TransientOverloadError 500: Too many generations in flight
    """
    clean_prompt = validate_prompt(prompt)
    clean_style = validate_style(style)

    if image is None or not image.filename:
        raise ValidationError("Image file is required")

    # Read one byte past the limit so oversized files are detected without
    # buffering them completely
    content = await image.read(settings.max_upload_bytes + 1)
    await image.close()
    validate_image(image.content_type, len(content), settings.max_upload_bytes)

    if (
        settings.max_concurrent_generations > 0
        and processor.active_count >= settings.max_concurrent_generations
    ):
        logger.warning(
            "generation.overloaded",
            user_id=current_user.id,
            active=processor.active_count,
            limit=settings.max_concurrent_generations,
        )
        raise TransientOverloadError(OVERLOADED_MESSAGE)

    image_path = await storage.save_upload(content, image.content_type)

    try:
        async with await uow_factory() as uow:
            job = await uow.generations.create_job(
                job_id=str(uuid4()),
                user_id=current_user.id,  # type: ignore[arg-type]
                prompt=clean_prompt,
                style=clean_style,
                image_path=str(image_path),
            )
    except ConflictError as e:
        await storage.discard(image_path)
        raise InternalError(f"Generation ID conflict for user {current_user.id}") from e
    except Exception:
        await storage.discard(image_path)
        raise

    # Row is committed; the background task can now find it
    processor.schedule(job.id, image_path)

    logger.info(
        "generation.created",
        generation_id=job.id,
        user_id=current_user.id,
        style=job.style.value,
        prompt_length=len(job.prompt),
    )

    return CreateGenerationResponse(
        message="Generation started",
        data=CreateGenerationData(
            generation=GenerationSummaryDTO(
                id=job.id,
                prompt=job.prompt,
                style=job.style,
                status=job.status,
                created_at=job.created_at,
            )
        ),
    )


@router.get("", response_model=GenerationListResponse, status_code=status.HTTP_200_OK)
async def list_generations(
    current_user: CurrentUser,
    limit: Annotated[str | None, Query(description="Page size, clamped to [1, 20]")] = None,
    uow_factory=Depends(get_uow_factory),
    settings: Settings = Depends(get_settings),
    storage: UploadStorage = Depends(get_storage),
) -> GenerationListResponse:
    """List the current user's most recent generations, newest first."""
    effective_limit = clamp_limit(
        limit,
        default=settings.generations_default_limit,
        maximum=settings.generations_max_limit,
    )

    async with await uow_factory() as uow:
        jobs = await uow.generations.list_by_user(current_user.id, effective_limit)  # type: ignore[arg-type]
        overall = await uow.generations.count_by_user(current_user.id)  # type: ignore[arg-type]

    generations = [GenerationDTO.from_job(job, storage) for job in jobs]

    return GenerationListResponse(
        data=GenerationListData(generations=generations, total=len(generations), overall=overall)
    )


@router.get(
    "/{generation_id}", response_model=GenerationResponse, status_code=status.HTTP_200_OK
)
async def get_generation(
    generation_id: str,
    current_user: CurrentUser,
    uow_factory=Depends(get_uow_factory),
    storage: UploadStorage = Depends(get_storage),
) -> GenerationResponse:
    """Fetch one generation owned by the current user.

    Raises:
        NotFoundError 404: No generation with this id
        AuthorizationError 403: Generation belongs to another user
    """
    async with await uow_factory() as uow:
        job = await uow.generations.get_by_id(generation_id)

    if job.user_id != current_user.id:
        logger.warning(
            "generation.access_denied",
            generation_id=generation_id,
            user_id=current_user.id,
        )
        raise AuthorizationError("Access denied")

    return GenerationResponse(data=GenerationData(generation=GenerationDTO.from_job(job, storage)))
