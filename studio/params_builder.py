# studio/params_builder.py

import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Tuple

from .errors import ValidationError
from .model import (
    ContextImage,
    ControlNet,
    GenerateRequest,
    GenerationIntent,
    GuidanceImageRef,
    GuidanceSpec,
    ModelCapabilities,
    NamedStrength,
    StrengthControlNet,
    WeightedControlNet,
    WeightStrength,
)
from .model_config import ASPECT_RATIO_DIMENSIONS, GUIDANCE_STRENGTH_TYPES, IMAGE_GEN_STYLES

logger = logging.getLogger(__name__)


def preset_style(style: str) -> str:
    """'Sketch Bw' -> 'SKETCH_BW'"""
    return re.sub(r"\s", "_", style.upper())


def _strength(guidance_type: str, spec: GuidanceSpec, pick: Callable[[Tuple[str, ...]], str]):
    if spec.uses_weight:
        return WeightStrength(weight=1.0)
    allowed = tuple(GUIDANCE_STRENGTH_TYPES.get(guidance_type, ()))
    return NamedStrength(strength_type=pick(allowed))


def default_strength(guidance_type: str, spec: GuidanceSpec):
    return _strength(guidance_type, spec, lambda allowed: allowed[1] if len(allowed) > 1 else "Mid")


def reset_strength(guidance_type: str, spec: GuidanceSpec):
    """Strength to use after an image is switched to `guidance_type`."""
    return _strength(guidance_type, spec, lambda allowed: "Mid" if "Mid" in allowed or not allowed else allowed[0])


def build_intent(
    request: GenerateRequest,
    config: ModelCapabilities,
    guidance_images: Iterable[GuidanceImageRef] = (),
) -> GenerationIntent:
    """
    Fill everything the caller left unset from the model's defaults:
    - alchemy follows alchemy support, photoReal only when alchemy ends up on
    - style/contrast/num_images from the model defaults
    - aspect ratio 1:1 when available, else the first supported one;
      width/height come from the ratio
    """
    supports = config.supports
    defaults = config.defaults

    alchemy = request.alchemy if request.alchemy is not None else supports.alchemy
    if request.photo_real is not None:
        photo_real = request.photo_real
    else:
        photo_real = supports.alchemy and bool(defaults.photo_real)
    if not alchemy:
        photo_real = False

    style = request.style or defaults.style or "None"
    if style not in IMAGE_GEN_STYLES:
        raise ValidationError(f"Unknown style: {style!r}")

    contrast = request.contrast if request.contrast is not None else (defaults.contrast or 1.0)

    ratios = supports.aspect_ratios or ("1:1",)
    aspect_ratio = request.aspect_ratio or ("1:1" if "1:1" in ratios else ratios[0])
    if aspect_ratio not in ratios:
        raise ValidationError(f"Aspect ratio {aspect_ratio} is not supported by {config.name}.")
    dims = ASPECT_RATIO_DIMENSIONS.get(aspect_ratio, {"width": 1024, "height": 1024})

    return GenerationIntent(
        prompt=request.prompt,
        negative_prompt=request.negative_prompt,
        model=config.name,
        width=dims["width"],
        height=dims["height"],
        aspect_ratio=aspect_ratio,
        num_images=request.num_images or defaults.num_images or 1,
        style=style,
        contrast=contrast,
        alchemy=alchemy,
        photo_real=photo_real,
        guidance_images=tuple(guidance_images),
    )


def _ready(images: Iterable[GuidanceImageRef]) -> List[GuidanceImageRef]:
    ready = []
    for img in images:
        if img.status == "ready" and img.asset_id:
            ready.append(img)
        else:
            # Not an error: an image still uploading at submit time is left out
            logger.info("[ParamsBuilder] Skipping %s (status=%s)", img.filename, img.status)
    return ready


def _context_images(images: List[GuidanceImageRef], config: ModelCapabilities) -> List[ContextImage]:
    allowed = config.supports.context_guidance or ()
    entries = []
    for img in images:
        context = img.context_type or allowed[0]
        if context not in allowed:
            raise ValidationError(f'Invalid context type "{context}" for this model.')
        entries.append(ContextImage(init_image_id=img.asset_id, context=context))
    return entries


def _controlnets(images: List[GuidanceImageRef], config: ModelCapabilities) -> List[ControlNet]:
    table = config.supports.guidance or {}
    entries: List[ControlNet] = []
    for img in images:
        spec = table.get(img.guidance_type or "")
        if spec is None:
            raise ValidationError(f'Invalid guidance type "{img.guidance_type}" for this model.')

        strength = img.strength or default_strength(img.guidance_type, spec)
        if spec.uses_weight:
            if not isinstance(strength, WeightStrength):
                raise ValidationError(f'Guidance type "{img.guidance_type}" takes a weight, not a strength type.')
            entries.append(WeightedControlNet(
                init_image_id=img.asset_id,
                preprocessor_id=spec.preprocessor_id,
                weight=strength.weight,
            ))
        else:
            if not isinstance(strength, NamedStrength):
                raise ValidationError(f'Guidance type "{img.guidance_type}" takes a strength type, not a weight.')
            entries.append(StrengthControlNet(
                init_image_id=img.asset_id,
                preprocessor_id=spec.preprocessor_id,
                strength_type=strength.strength_type,
            ))
    return entries


def build_generation_params(intent: GenerationIntent, config: ModelCapabilities) -> Dict[str, Any]:
    """
    Turn an intent into a POST /generations body that `config` accepts.
    Optional keys are only present when the model supports them.
    """
    supports = config.supports

    params: Dict[str, Any] = {
        "prompt": intent.prompt,
        "modelId": config.id,
        "width": intent.width,
        "height": intent.height,
        "num_images": intent.num_images,
    }
    if intent.negative_prompt:
        params["negative_prompt"] = intent.negative_prompt

    if supports.alchemy:
        params["alchemy"] = intent.alchemy
        # PhotoReal and preset styles are only legal with Alchemy on
        if intent.alchemy:
            params["photoReal"] = intent.photo_real
            if intent.style and intent.style != "None":
                params["presetStyle"] = preset_style(intent.style)

    if supports.contrast:
        params["contrast"] = intent.contrast

    ready = _ready(intent.guidance_images)
    if supports.context_guidance:
        if ready:
            params["contextImages"] = [e.model_dump() for e in _context_images(ready, config)]
    elif supports.guidance and ready:
        params["controlnets"] = [e.model_dump(by_alias=True) for e in _controlnets(ready, config)]

    return params

