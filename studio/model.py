# studio/model.py
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

NodeType = Literal["image-generation", "image-edit", "text-to-video"]

UploadStatus = Literal["uploading", "ready", "error"]

JobStatus = Literal["PENDING", "COMPLETE", "FAILED"]

Status = Literal["waiting", "processing", "done", "error"]


# ---------------------------------------------------------------------------
# Model capability descriptors
# ---------------------------------------------------------------------------

class GuidanceSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    preprocessor_id: int
    max_inputs: int
    uses_weight: bool


class ModelSupports(BaseModel):
    model_config = ConfigDict(frozen=True)

    alchemy: bool = False
    contrast: bool = False
    aspect_ratios: Tuple[str, ...] = ()
    guidance: Optional[Dict[str, GuidanceSpec]] = None
    context_guidance: Optional[Tuple[str, ...]] = None
    prompt_enhance: bool = False
    resolutions: Tuple[str, ...] = ()
    frame_interpolation: bool = False

    @model_validator(mode="after")
    def _one_guidance_family(self) -> "ModelSupports":
        if self.guidance and self.context_guidance:
            raise ValueError("a model exposes either guidance or contextGuidance, not both")
        return self


class ModelDefaults(BaseModel):
    model_config = ConfigDict(frozen=True)

    strength: Optional[float] = None
    style: Optional[str] = None
    contrast: Optional[float] = None
    num_images: Optional[int] = None
    photo_real: Optional[bool] = None
    resolution: Optional[str] = None
    frame_interpolation: Optional[bool] = None
    prompt_enhance: Optional[bool] = None


class ModelCapabilities(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    id: Optional[str]  # None when the model lives behind another endpoint family
    node_type: NodeType
    family: str
    supports: ModelSupports = ModelSupports()
    defaults: ModelDefaults = ModelDefaults()


# ---------------------------------------------------------------------------
# Guidance images and generation intent
# ---------------------------------------------------------------------------

class WeightStrength(BaseModel):
    kind: Literal["weight"] = "weight"
    weight: float = Field(1.0, ge=0.0, le=2.0)


class NamedStrength(BaseModel):
    kind: Literal["named"] = "named"
    strength_type: str


Strength = Annotated[Union[WeightStrength, NamedStrength], Field(discriminator="kind")]


class GuidanceImageRef(BaseModel):
    """One staged reference image, owned by the caller's session."""

    temp_id: str
    filename: str
    data: bytes = Field(default=b"", exclude=True, repr=False)
    content_type: Optional[str] = None
    status: UploadStatus = "uploading"
    asset_id: Optional[str] = None
    error: Optional[str] = None

    guidance_type: Optional[str] = None
    context_type: Optional[str] = None
    strength: Optional[Strength] = None


class GenerationIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt: str
    model: str
    negative_prompt: str = ""
    width: int = 1024
    height: int = 1024
    aspect_ratio: Optional[str] = None
    num_images: int = 1
    style: str = "None"
    contrast: float = 1.0
    alchemy: bool = False
    photo_real: bool = False
    guidance_images: Tuple[GuidanceImageRef, ...] = ()


# ---------------------------------------------------------------------------
# Wire shapes
# ---------------------------------------------------------------------------

class _ControlNetBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    init_image_id: str = Field(alias="initImageId")
    init_image_type: Literal["UPLOADED"] = Field("UPLOADED", alias="initImageType")
    preprocessor_id: int = Field(alias="preprocessorId")


class WeightedControlNet(_ControlNetBase):
    weight: float


class StrengthControlNet(_ControlNetBase):
    strength_type: str = Field(alias="strengthType")


ControlNet = Union[WeightedControlNet, StrengthControlNet]


class ContextImage(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    init_image_id: str
    context: str


class UploadTicket(BaseModel):
    id: str
    url: str
    fields: Dict[str, Any] = {}
    key: Optional[str] = None


class GeneratedImage(BaseModel):
    id: Optional[str] = None
    url: Optional[str] = None


class GenerationJob(BaseModel):
    id: str
    status: JobStatus
    generated_images: List[GeneratedImage] = []


# ---------------------------------------------------------------------------
# Service API
# ---------------------------------------------------------------------------

class GenerateRequest(BaseModel):
    prompt: str
    model: str
    negative_prompt: str = ""
    aspect_ratio: Optional[str] = None  # None -> model default
    style: Optional[str] = None
    contrast: Optional[float] = None
    alchemy: Optional[bool] = None
    photo_real: Optional[bool] = None
    num_images: Optional[int] = None
    guidance_image_ids: List[str] = []


class GenerateResponse(BaseModel):
    job_id: str
    status: Status


class JobResult(BaseModel):
    job_id: str
    status: Status
    image_url: Optional[str] = None
    error_message: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


class GuidanceImageUpdate(BaseModel):
    guidance_type: Optional[str] = None
    context_type: Optional[str] = None
    weight: Optional[float] = Field(None, ge=0.0, le=2.0)
    strength_type: Optional[str] = None
