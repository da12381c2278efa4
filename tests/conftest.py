import json

import httpx
import pytest

from studio.leonardo_client import LeonardoClient
from studio.model import GuidanceImageRef, ModelCapabilities, NamedStrength, WeightStrength

BASE_URL = "https://api.test/v1"


def make_client(handler) -> LeonardoClient:
    return LeonardoClient("test-key", base_url=BASE_URL, transport=httpx.MockTransport(handler))


def json_body(request: httpx.Request):
    return json.loads(request.content) if request.content else None


def ready_image(asset_id: str, guidance_type=None, strength=None, context_type=None, status="ready") -> GuidanceImageRef:
    return GuidanceImageRef(
        temp_id=f"tmp-{asset_id}",
        filename=f"{asset_id}.png",
        status=status,
        asset_id=asset_id if status == "ready" else None,
        guidance_type=guidance_type,
        context_type=context_type,
        strength=strength,
    )


@pytest.fixture
def plain_model():
    return ModelCapabilities(name="Plain", id="m1", node_type="image-generation", family="TEST")


@pytest.fixture
def alchemy_model():
    return ModelCapabilities(
        name="Alchemist",
        id="m2",
        node_type="image-generation",
        family="TEST",
        supports={
            "alchemy": True,
            "contrast": True,
            "aspect_ratios": ("1:1", "16:9"),
            "guidance": {
                "Style Reference": {"preprocessor_id": 166, "max_inputs": 4, "uses_weight": False},
                "Depth": {"preprocessor_id": 19, "max_inputs": 1, "uses_weight": True},
            },
        },
        defaults={"style": "Dynamic", "contrast": 2.5},
    )


@pytest.fixture
def context_model():
    return ModelCapabilities(
        name="Kontext",
        id="m3",
        node_type="image-generation",
        family="FLUX",
        supports={"contrast": True, "context_guidance": ("SUBJECT_AND_STYLE", "STYLE_ONLY")},
    )


@pytest.fixture
def weight():
    return WeightStrength(weight=0.75)


@pytest.fixture
def named():
    return NamedStrength(strength_type="High")
