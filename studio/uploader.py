# studio/uploader.py

import asyncio
import logging
from typing import Iterable, List, Optional

import aiohttp
import pydantic

from config.settings import settings

from .errors import HttpError, MissingIdentifierError, NetworkError, StudioError, ValidationError
from .leonardo_client import LeonardoClient
from .model import (
    GuidanceImageRef,
    GuidanceImageUpdate,
    ModelCapabilities,
    NamedStrength,
    UploadTicket,
    WeightStrength,
)
from .model_config import GUIDANCE_STRENGTH_TYPES, MODEL_CONFIG, CapabilityTable
from .params_builder import default_strength, reset_strength
from .utils import file_extension, gen_job_id, parse_ticket_fields

logger = logging.getLogger(__name__)


class AssetUploader:
    """
    Two-step upload of reference images:
      1. POST /init-image -> presigned ticket {id, url, fields}
      2. multipart POST to ticket.url (ticket fields first, file last)
    Each image is uploaded independently; failures are recorded on the image.
    """

    def __init__(
        self,
        client: LeonardoClient,
        capabilities: CapabilityTable = MODEL_CONFIG,
        upload_timeout: Optional[float] = None,
    ):
        self.client = client
        self.capabilities = capabilities
        self.upload_timeout = upload_timeout if upload_timeout is not None else settings.UPLOAD_TIMEOUT

    def stage(
        self,
        model_name: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> GuidanceImageRef:
        """Create a new `uploading` image with the model's default guidance settings."""
        config = self.capabilities.resolve(model_name)
        guidance = self.capabilities.guidance_support(model_name)
        image = GuidanceImageRef(
            temp_id=gen_job_id(),
            filename=filename,
            data=data,
            content_type=content_type,
        )

        if guidance:
            guidance_type = next(iter(guidance))
            image.guidance_type = guidance_type
            image.strength = default_strength(guidance_type, guidance[guidance_type])
        if config.supports.context_guidance:
            image.context_type = config.supports.context_guidance[0]
        return image

    def apply_update(self, image: GuidanceImageRef, update: GuidanceImageUpdate, model_name: str) -> GuidanceImageRef:
        config: ModelCapabilities = self.capabilities.resolve(model_name)
        guidance = self.capabilities.guidance_support(model_name)

        if update.guidance_type is not None:
            spec = guidance.get(update.guidance_type)
            if spec is None:
                raise ValidationError(f'Invalid guidance type "{update.guidance_type}" for this model.')
            image.guidance_type = update.guidance_type
            image.strength = reset_strength(update.guidance_type, spec)

        if update.context_type is not None:
            if update.context_type not in (config.supports.context_guidance or ()):
                raise ValidationError(f'Invalid context type "{update.context_type}" for this model.')
            image.context_type = update.context_type

        if update.weight is not None:
            if not isinstance(image.strength, WeightStrength):
                raise ValidationError(f'Guidance type "{image.guidance_type}" does not take a weight.')
            image.strength = WeightStrength(weight=update.weight)

        if update.strength_type is not None:
            if not isinstance(image.strength, NamedStrength):
                raise ValidationError(f'Guidance type "{image.guidance_type}" does not take a strength type.')
            allowed = GUIDANCE_STRENGTH_TYPES.get(image.guidance_type or "", ())
            if allowed and update.strength_type not in allowed:
                raise ValidationError(
                    f'Invalid strength type "{update.strength_type}" for "{image.guidance_type}".'
                )
            image.strength = NamedStrength(strength_type=update.strength_type)

        return image

    async def request_upload_ticket(self, extension: str) -> UploadTicket:
        extension = (extension or "").strip().lstrip(".").lower()
        if not extension:
            raise ValidationError("Could not determine file extension.")

        data = await self.client.get_init_image_upload_url(extension)
        upload = data.get("uploadInitImage") if isinstance(data, dict) else None
        if not isinstance(upload, dict):
            raise MissingIdentifierError(f"Leonardo did not return an upload ticket: {data}")
        if not upload.get("id"):
            raise MissingIdentifierError(f"Leonardo did not return an init image id: {data}")
        if not upload.get("url"):
            raise MissingIdentifierError(f"Leonardo did not return an upload url: {data}")

        try:
            return UploadTicket(
                id=upload["id"],
                url=upload["url"],
                fields=parse_ticket_fields(upload.get("fields")),
                key=upload.get("key"),
            )
        except pydantic.ValidationError as e:
            raise MissingIdentifierError(f"Leonardo returned an unusable upload ticket: {upload}") from e

    async def push_asset(
        self,
        ticket: UploadTicket,
        data: bytes,
        filename: str = "image",
        content_type: Optional[str] = None,
    ) -> None:
        form = aiohttp.FormData()
        for name, value in ticket.fields.items():
            form.add_field(name, str(value))
        # presigned POST requires the file to be the last field
        form.add_field(
            "file",
            data,
            filename=filename,
            content_type=content_type or "application/octet-stream",
        )

        timeout = aiohttp.ClientTimeout(total=self.upload_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(ticket.url, data=form) as resp:
                    if not 200 <= resp.status < 300:
                        body_text = await resp.text()
                        logger.error("[Uploader] HTTP %s from %s: %s", resp.status, ticket.url, body_text[:300])
                        raise HttpError(resp.status, body_text)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("[Uploader] Push to %s did not complete: %r", ticket.url, e)
            raise NetworkError(e) from e

    async def upload(self, image: GuidanceImageRef) -> GuidanceImageRef:
        """Run both steps for one image; the outcome is written to `image.status`."""
        image.status = "uploading"
        image.asset_id = None
        image.error = None

        try:
            ticket = await self.request_upload_ticket(file_extension(image.filename))
            await self.push_asset(ticket, image.data, image.filename, image.content_type)
        except StudioError as e:
            logger.error("[Uploader] Upload of %s failed: %s", image.filename, e)
            image.status = "error"
            image.error = str(e) or "Upload failed"
            return image

        image.asset_id = ticket.id
        image.status = "ready"
        logger.info("[Uploader] %s ready as %s", image.filename, ticket.id)
        return image

    async def upload_all(self, images: Iterable[GuidanceImageRef]) -> List[GuidanceImageRef]:
        return list(await asyncio.gather(*(self.upload(img) for img in images)))
