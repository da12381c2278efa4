# studio/worker.py

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, get_args

import pydantic

from config.settings import settings

from .errors import (
    GenerationFailedError,
    MalformedResponseError,
    MissingAssetError,
    MissingIdentifierError,
    PollingTimeoutError,
)
from .leonardo_client import LeonardoClient
from .model import GenerationJob, JobStatus

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]


def extract_generation_id(response: Any) -> Optional[str]:
    job = response.get("sdGenerationJob") if isinstance(response, dict) else None
    return job.get("generationId") if isinstance(job, dict) else None


def parse_generation(data: Any) -> Optional[GenerationJob]:
    """`generations_by_pk` as a GenerationJob, or None while there is nothing usable yet."""
    generation = data.get("generations_by_pk") if isinstance(data, dict) else None
    if not isinstance(generation, dict) or generation.get("status") not in get_args(JobStatus):
        return None
    try:
        return GenerationJob.model_validate(generation)
    except pydantic.ValidationError as e:
        raise MalformedResponseError(200, str(generation)) from e


def extract_first_image_url(job: GenerationJob) -> Optional[str]:
    if not job.generated_images:
        return None
    return job.generated_images[0].url


class GenerationRunner:
    """
    Drives one submission: submitting -> polling -> done.
    Polls are strictly sequential, `poll_interval` seconds apart, at most
    `max_attempts` of them. Any error ends the run; nothing is retried.
    """

    def __init__(
        self,
        client: LeonardoClient,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        on_status: Optional[StatusCallback] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.poll_interval = poll_interval if poll_interval is not None else settings.POLL_INTERVAL
        self.max_attempts = max_attempts if max_attempts is not None else settings.POLL_MAX_ATTEMPTS
        self.on_status = on_status
        self._sleep = sleep

        self.state = "submitting"
        self.generation_id: Optional[str] = None
        self.attempts = 0
        self.image_url: Optional[str] = None

    def _report(self, message: str) -> None:
        logger.info("[Worker] %s", message)
        if self.on_status:
            self.on_status(message)

    async def submit(self, params: Dict[str, Any]) -> str:
        self._report("Sending generation request...")
        response = await self.client.generate_image(params)
        generation_id = extract_generation_id(response)
        if not generation_id:
            self.state = "failed"
            raise MissingIdentifierError(
                f"Failed to get generation ID from the initial response: {response}"
            )
        self.generation_id = generation_id
        self.state = "polling"
        logger.info("[Worker] Got generation id: %s", generation_id)
        return generation_id

    async def wait_for_result(self, generation_id: str) -> str:
        while self.attempts < self.max_attempts:
            if self.attempts:
                await self._sleep(self.poll_interval)
            self.attempts += 1
            self._report(f"Polling for result... (Attempt {self.attempts})")

            try:
                job = parse_generation(await self.client.get_generation(generation_id))
            except Exception:
                self.state = "failed"
                raise

            if job is None:
                continue

            if job.status == "COMPLETE":
                image_url = extract_first_image_url(job)
                if not image_url:
                    self.state = "failed"
                    raise MissingAssetError(
                        f"Generation {generation_id} completed, but no image URL was found."
                    )
                self.state = "done"
                self.image_url = image_url
                return image_url

            if job.status == "FAILED":
                self.state = "failed"
                raise GenerationFailedError(generation_id)

        self.state = "failed"
        raise PollingTimeoutError(generation_id, self.attempts)

    async def run(self, params: Dict[str, Any]) -> str:
        generation_id = await self.submit(params)
        image_url = await self.wait_for_result(generation_id)
        self._report("Generation Complete!")
        return image_url


async def process_job(
    jobs: Dict[str, Dict[str, Any]],
    job_id: str,
    client: LeonardoClient,
    params: Dict[str, Any],
    poll_interval: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> None:
    """Run one job and record its outcome in `jobs[job_id]`."""
    job = jobs[job_id]
    job["status"] = "processing"

    def on_status(message: str) -> None:
        job["progress"] = message

    runner = GenerationRunner(
        client,
        poll_interval=poll_interval,
        max_attempts=max_attempts,
        on_status=on_status,
    )

    logger.info("[Worker] Processing job %s, model=%s", job_id, params.get("modelId"))
    try:
        image_url = await runner.run(params)
    except Exception as e:
        logger.exception("[Worker] ERROR processing job %s: %s", job_id, e)
        job["status"] = "error"
        job["error_message"] = str(e)
        job["generation_id"] = runner.generation_id
        return

    job["status"] = "done"
    job["image_url"] = image_url
    job["generation_id"] = runner.generation_id
    logger.info("[Worker] Job %s completed successfully", job_id)
