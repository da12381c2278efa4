# studio/app.py

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from config.settings import settings
from .errors import ValidationError
from .leonardo_client import LeonardoClient
from .model import GenerateRequest, GenerateResponse, GuidanceImageRef, GuidanceImageUpdate, JobResult
from .model_config import ASPECT_RATIO_DIMENSIONS, CONTRAST_VALUES, IMAGE_GEN_STYLES, MODEL_CONFIG, CapabilityTable
from .params_builder import build_generation_params, build_intent
from .uploader import AssetUploader
from .utils import file_extension, gen_job_id
from .worker import process_job

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "webp"}

app = FastAPI(title="Leonardo Studio")


class Studio:
    """Per-process state: staged guidance images and submitted jobs. Nothing is persisted."""

    def __init__(
        self,
        client: LeonardoClient,
        capabilities: CapabilityTable = MODEL_CONFIG,
        uploader: Optional[AssetUploader] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        self.client = client
        self.capabilities = capabilities
        self.uploader = uploader or AssetUploader(client, capabilities)
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.images: Dict[str, GuidanceImageRef] = {}
        self.image_models: Dict[str, str] = {}
        self.jobs: Dict[str, Dict[str, Any]] = {}

    def get_image(self, temp_id: str) -> GuidanceImageRef:
        image = self.images.get(temp_id)
        if image is None:
            raise HTTPException(status_code=404, detail=f"Guidance image {temp_id} not found")
        return image

    def image_view(self, image: GuidanceImageRef) -> Dict[str, Any]:
        view = image.model_dump()
        view["model"] = self.image_models.get(image.temp_id)
        return view


@lru_cache()
def get_studio() -> Studio:
    try:
        client = LeonardoClient(settings.LEONARDO_API_KEY)
    except ValidationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return Studio(client)


@app.exception_handler(ValidationError)
async def validation_error_handler(request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/models")
async def list_models(studio: Studio = Depends(get_studio)) -> List[Dict[str, Any]]:
    models = []
    for name in studio.capabilities.names_for_node_type("image-generation"):
        config = studio.capabilities.resolve(name)
        models.append(config.model_dump())
    return models


@app.get("/styles")
async def list_styles() -> Dict[str, Any]:
    return {
        "styles": list(IMAGE_GEN_STYLES),
        "aspect_ratios": dict(ASPECT_RATIO_DIMENSIONS),
        "contrast_values": list(CONTRAST_VALUES),
    }


@app.post("/guidance-images")
async def add_guidance_image(
    bg: BackgroundTasks,
    file: UploadFile = File(...),
    model: str = Form(...),
    studio: Studio = Depends(get_studio),
):
    capabilities = studio.capabilities
    if not capabilities.supports(model, "guidance") and not capabilities.supports(model, "context_guidance"):
        raise ValidationError(f"{model} does not support image guidance.")

    filename = file.filename or ""
    if file_extension(filename) not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"Unsupported file type: {filename}")

    image = studio.uploader.stage(model, filename, await file.read(), file.content_type)
    studio.images[image.temp_id] = image
    studio.image_models[image.temp_id] = model

    # Upload runs after the response; poll GET /guidance-images/{id} for status
    bg.add_task(studio.uploader.upload, image)
    return studio.image_view(image)


@app.get("/guidance-images/{temp_id}")
async def get_guidance_image(temp_id: str, studio: Studio = Depends(get_studio)):
    return studio.image_view(studio.get_image(temp_id))


@app.patch("/guidance-images/{temp_id}")
async def update_guidance_image(
    temp_id: str,
    update: GuidanceImageUpdate,
    studio: Studio = Depends(get_studio),
):
    image = studio.get_image(temp_id)
    studio.uploader.apply_update(image, update, studio.image_models[temp_id])
    return studio.image_view(image)


@app.delete("/guidance-images/{temp_id}")
async def remove_guidance_image(temp_id: str, studio: Studio = Depends(get_studio)):
    studio.get_image(temp_id)
    del studio.images[temp_id]
    studio.image_models.pop(temp_id, None)
    return {"deleted": temp_id}


@app.post("/generate", response_model=GenerateResponse)
async def generate(req: GenerateRequest, bg: BackgroundTasks, studio: Studio = Depends(get_studio)):
    if not req.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt must not be empty")

    config = studio.capabilities.resolve(req.model)
    images = [studio.get_image(temp_id) for temp_id in req.guidance_image_ids]

    intent = build_intent(req, config, images)
    params = build_generation_params(intent, config)

    job_id = gen_job_id()
    studio.jobs[job_id] = {
        "job_id": job_id,
        "status": "waiting",
        "image_url": None,
        "error_message": None,
        "progress": "Initializing generation...",
        "request": params,
        "generation_id": None,
    }

    logger.info("[App] Queued job %s, model=%s, guidance images=%d", job_id, req.model, len(images))
    bg.add_task(
        process_job,
        studio.jobs,
        job_id,
        studio.client,
        params,
        studio.poll_interval,
        studio.max_attempts,
    )
    return GenerateResponse(job_id=job_id, status="waiting")


@app.get("/result/{job_id}", response_model=JobResult)
async def get_result(job_id: str, studio: Studio = Depends(get_studio)):
    """
    Job status + image_url once done.
    """
    job = studio.jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    return JobResult(
        job_id=job_id,
        status=job["status"],
        image_url=job.get("image_url"),
        error_message=job.get("error_message"),
        extra={
            "progress": job.get("progress"),
            "generation_id": job.get("generation_id"),
            "request": job.get("request"),
        },
    )


if __name__ == "__main__":
    # python -m studio.app
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000, log_level=settings.LOG_LEVEL.lower())
