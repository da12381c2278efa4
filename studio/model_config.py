"""
Static model configuration for the Leonardo REST API.

Holds the capability table (which model accepts which optional feature) plus the
reference lists the service exposes to callers. The table is read-only; pass a
`CapabilityTable` explicitly to whatever needs it.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import ValidationError
from .model import GuidanceSpec, ModelCapabilities, NodeType

# Available styles for image generation models
IMAGE_GEN_STYLES = (
    "None", "Leonardo", "Anime", "Bokeh", "Cinematic", "Creative",
    "Dynamic", "Environment", "Fashion", "Film", "Food", "General", "Hdr",
    "Illustration", "Long Exposure", "Macro", "Minimalistic", "Monochrome",
    "Moody", "Neutral", "Photography", "Portrait", "Raytraced", "Render 3d",
    "Retro", "Sketch Bw", "Sketch Color", "Stock Photo", "Vibrant",
)

# Only these width/height pairs are accepted by the Flux models
ASPECT_RATIO_DIMENSIONS: Mapping[str, Dict[str, int]] = MappingProxyType({
    "1:1": {"width": 1024, "height": 1024},
    "16:9": {"width": 1456, "height": 720},
    "9:16": {"width": 720, "height": 1456},
    "4:3": {"width": 1184, "height": 880},
    "3:4": {"width": 880, "height": 1184},
})

CONTRAST_VALUES = (1.0, 1.3, 1.8, 2.5, 3.0, 3.5, 4.5)

VIDEO_RESOLUTIONS = ("RESOLUTION_480", "RESOLUTION_720")

GUIDANCE_STRENGTH_TYPES: Mapping[str, tuple] = MappingProxyType({
    "Style Reference": ("Low", "Mid", "High", "Ultra", "Max"),
    "Character Reference": ("Low", "Mid", "High"),
    "Content Reference": ("Low", "Mid", "High"),
})

_RATIOS = tuple(ASPECT_RATIO_DIMENSIONS)
_CONTEXT_TYPES = ("SUBJECT_AND_STYLE", "STYLE_ONLY", "SUBJECT_ONLY", "NEGATIVE")


def _guidance(style: int, content: Optional[int] = None, character: Optional[int] = None) -> Dict[str, Any]:
    table = {"Style Reference": {"preprocessor_id": style, "max_inputs": 4, "uses_weight": False}}
    if character is not None:
        table["Character Reference"] = {"preprocessor_id": character, "max_inputs": 1, "uses_weight": False}
    if content is not None:
        table["Content Reference"] = {"preprocessor_id": content, "max_inputs": 1, "uses_weight": False}
    return table


_XL_GUIDANCE = _guidance(style=67, character=133, content=100)
_PHOENIX_GUIDANCE = _guidance(style=166, character=397, content=364)

_MODEL_DATA: Dict[str, Dict[str, Any]] = {
    # --- FLUX ---
    "FLUX.1 Kontext": {
        "id": "28aeddf8-bd19-4803-80fc-79602d1a9989",
        "node_type": "image-generation",
        "family": "FLUX",
        "supports": {"contrast": True, "aspect_ratios": _RATIOS, "context_guidance": _CONTEXT_TYPES},
        "defaults": {"strength": 0.6},
    },
    "FLUX.1 Kontext Pro": {
        "id": "28aeddf8-bd19-4803-80fc-79602d1a9989",
        "node_type": "image-generation",
        "family": "FLUX",
        "supports": {
            "contrast": True,
            "aspect_ratios": _RATIOS,
            "context_guidance": _CONTEXT_TYPES,
            "prompt_enhance": True,
        },
        "defaults": {"style": "Dynamic", "contrast": 1.0, "num_images": 1},
    },
    "Flux Dev (Precision)": {
        "id": "b2614463-296c-462a-9586-aafdb8f00e36",
        "node_type": "image-generation",
        "family": "FLUX",
        "supports": {"contrast": True, "aspect_ratios": _RATIOS, "guidance": _guidance(style=299, content=233)},
        "defaults": {"style": "Dynamic", "contrast": 1.0},
    },
    "Flux Schnell (Speed)": {
        "id": "1dd50843-d653-4516-a8e3-f0238ee453ff",
        "node_type": "image-generation",
        "family": "FLUX",
        "supports": {"contrast": True, "aspect_ratios": _RATIOS, "guidance": _guidance(style=298, content=232)},
        "defaults": {"style": "Dynamic", "contrast": 1.0},
    },
    # --- Phoenix ---
    "Leonardo Phoenix 1.0": {
        "id": "de7d3faf-762f-48e0-b3b7-9d0ac3a3fcf3",
        "node_type": "image-generation",
        "family": "PHOENIX",
        "supports": {"alchemy": True, "contrast": True, "aspect_ratios": _RATIOS, "guidance": _PHOENIX_GUIDANCE},
        "defaults": {"style": "Dynamic", "contrast": 2.5},  # alchemy needs contrast >= 2.5
    },
    "Leonardo Phoenix 0.9": {
        "id": "6b645e3a-d64f-4341-a6d8-7a3690fbf042",
        "node_type": "image-generation",
        "family": "PHOENIX",
        "supports": {"alchemy": True, "contrast": True, "aspect_ratios": _RATIOS, "guidance": _PHOENIX_GUIDANCE},
        "defaults": {"style": "Dynamic", "contrast": 2.5},
    },
    # --- XL ---
    "Leonardo Lightning XL": {
        "id": "b24e16ff-06e3-43eb-8d33-4416c2d75876",
        "node_type": "image-generation",
        "family": "SDXL",
        "supports": {"aspect_ratios": _RATIOS, "guidance": _XL_GUIDANCE},
        "defaults": {"style": "Dynamic"},
    },
    "Leonardo Anime XL": {
        "id": "e71a1c2f-4f80-4800-934f-2c68979d8cc8",
        "node_type": "image-generation",
        "family": "SDXL",
        "supports": {"aspect_ratios": _RATIOS, "guidance": _XL_GUIDANCE},
        "defaults": {"style": "Anime"},
    },
    "Leonardo Diffusion XL": {
        "id": "1e60896f-3c26-4296-8ecc-53e2afecc132",
        "node_type": "image-generation",
        "family": "SDXL",
        "supports": {"alchemy": True, "aspect_ratios": _RATIOS, "guidance": _XL_GUIDANCE},
        "defaults": {"style": "Dynamic"},
    },
    "Leonardo Kino XL": {
        "id": "aa77f04e-3eec-4034-9c07-d0f619684628",
        "node_type": "image-generation",
        "family": "SDXL",
        "supports": {"aspect_ratios": _RATIOS, "guidance": _XL_GUIDANCE},
        "defaults": {"style": "Cinematic"},
    },
    "Leonardo Vision XL": {
        "id": "5c232a9e-9061-4777-980a-ddc8e65647c6",
        "node_type": "image-generation",
        "family": "VISION",
        # Vision uses Alchemy but has no contrast setting
        "supports": {"alchemy": True, "aspect_ratios": _RATIOS, "guidance": _XL_GUIDANCE},
        "defaults": {"style": "Dynamic"},
    },
    "SDXL 1.0": {
        "id": "16e7060a-803e-4df3-97ee-edcfa5dc9cc8",
        "node_type": "image-generation",
        "family": "SDXL",
        "supports": {"aspect_ratios": _RATIOS, "guidance": _XL_GUIDANCE},
        "defaults": {"style": "Dynamic"},
    },
    "AlbedoBase XL": {
        "id": "2067ae52-33fd-4a82-bb92-c2c55e7d2786",
        "node_type": "image-generation",
        "family": "SDXL",
        "supports": {"aspect_ratios": _RATIOS, "guidance": _XL_GUIDANCE},
        "defaults": {"style": "Dynamic"},
    },
    # --- Custom ---
    "Lucid Realism": {
        "id": "05ce0082-2d80-4a2d-8653-4d1c85e2418e",
        "node_type": "image-generation",
        "family": "CUSTOM",
        "supports": {"aspect_ratios": _RATIOS, "guidance": _guidance(style=431, content=430)},
        "defaults": {"style": "Photography"},
    },
    "Lucid Origin": {
        "id": "7b592283-e8a7-4c5a-9ba6-d18c31f258b9",
        "node_type": "image-generation",
        "family": "CUSTOM",
        "supports": {"aspect_ratios": _RATIOS, "guidance": _guidance(style=431)},
        "defaults": {"style": "Vibrant"},
    },
    # --- Video (no model id on these endpoints) ---
    "MOTION2": {
        "id": None,
        "node_type": "text-to-video",
        "family": "MOTION",
        "supports": {"resolutions": VIDEO_RESOLUTIONS, "frame_interpolation": True, "prompt_enhance": True},
        "defaults": {"resolution": "RESOLUTION_480", "frame_interpolation": False, "prompt_enhance": False},
    },
    "VEO3": {
        "id": None,
        "node_type": "text-to-video",
        "family": "VEO",
        "supports": {"resolutions": ("RESOLUTION_720",), "frame_interpolation": True, "prompt_enhance": True},
        "defaults": {"resolution": "RESOLUTION_720", "frame_interpolation": False, "prompt_enhance": False},
    },
}


class CapabilityTable:
    """Immutable name -> ModelCapabilities lookup."""

    def __init__(self, entries: Iterable[ModelCapabilities]):
        self._entries: Mapping[str, ModelCapabilities] = MappingProxyType({e.name: e for e in entries})

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, Any]]) -> "CapabilityTable":
        return cls(ModelCapabilities(name=name, **entry) for name, entry in data.items())

    def resolve(self, name: str) -> ModelCapabilities:
        config = self._entries.get(name)
        if config is None:
            raise ValidationError(f"Unknown model: {name!r}")
        return config

    def guidance_support(self, name: str) -> Dict[str, GuidanceSpec]:
        config = self.resolve(name)
        return dict(config.supports.guidance or {})

    def supports(self, name: str, feature: str) -> bool:
        config = self.resolve(name)
        return bool(getattr(config.supports, feature, None))

    def names_for_node_type(self, node_type: NodeType) -> List[str]:
        return [name for name, config in self._entries.items() if config.node_type == node_type]


MODEL_CONFIG = CapabilityTable.from_dict(_MODEL_DATA)
