# backstory/backend/app.py
import logging
import os
import uuid
from typing import Dict, List, Optional

import requests
from dotenv import load_dotenv

from ..common.paths import env_file

DOTENV_PATH = env_file()
load_dotenv(dotenv_path=DOTENV_PATH)

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field

from .deps import Services, get_services
from .storage.files import MEDIA_DIR, ensure_media_dir, inspect_image, save_image_bytes
from backstory.common.db import (
    init_db,
    create_backstory as db_create_backstory,
    get_backstory as db_get_backstory,
    latest_backstory as db_latest_backstory,
    list_backstories as db_list_backstories,
    delete_backstory as db_delete_backstory,
)
from backstory.common.errors import (
    GenerationFailedError,
    InappropriateStoryError,
    ResponseParseError,
    ServiceUnavailableError,
)
from backstory.common.logs import setup_logging
from backstory.story.pipeline import generate_final_story, generate_prompt, is_appropriate
from backstory.story.toxicity import REQUESTED_ATTRIBUTES

setup_logging(os.getenv("LOG_LEVEL", "INFO"), json_format=os.getenv("LOG_JSON", "0") == "1")
logger = logging.getLogger(__name__)

STORY_MAX_LENGTH = int(os.getenv("STORY_MAX_LENGTH", "200"))
STORY_TEMPERATURE = float(os.getenv("STORY_TEMPERATURE", "0.7"))

INVALID_IMAGE_MESSAGE = "Please upload a valid image."
GENERATION_FAILED_MESSAGE = "Sorry! There was an error in your backstory generation. Please try again!"
INAPPROPRIATE_MESSAGE = (
    "Sorry! No appropriate Backstory was found for your image. "
    "Please try again with another image."
)

PROVIDER_ERRORS = (ServiceUnavailableError, ResponseParseError)


# -------------------------------
# FastAPI app & middleware
# -------------------------------
app = FastAPI(title="Backstory API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded images
ensure_media_dir()
if os.path.isdir(MEDIA_DIR):
    app.mount("/media", StaticFiles(directory=MEDIA_DIR), name="media")

init_db()


# -------------------------------
# Pydantic models
# -------------------------------
class PromptReq(BaseModel):
    keywords: List[str] = Field(default_factory=list, max_length=50)
    locations: List[str] = Field(default_factory=list, max_length=10)
    randomize: bool = True
    model_config = ConfigDict(extra="forbid")


class PromptResp(BaseModel):
    prompt: str


class GenerateTextReq(BaseModel):
    prompt: str = Field(min_length=1, max_length=2000)
    # Range checks happen in the generator.
    max_length: int = 200
    temperature: float = 0.7
    model_config = ConfigDict(extra="forbid")


class GenerateTextResp(BaseModel):
    text: str


class PerspectiveReq(BaseModel):
    text: str = Field(min_length=1, max_length=20000)


class PerspectiveResp(BaseModel):
    scores: Dict[str, float]
    appropriate: bool


class BackstoryResp(BaseModel):
    id: str
    image_url: Optional[str] = None
    labels: List[str]
    prompt: str
    text: str
    created_at: str


class BackstoryListResp(BaseModel):
    backstories: List[BackstoryResp]


# -------------------------------
# Routes
# -------------------------------
@app.get("/health")
def health():
    return {"ok": True}


@app.post("/prompt", response_model=PromptResp)
def create_prompt(req: PromptReq, services: Services = Depends(get_services)):
    try:
        prompt = generate_prompt(
            req.keywords,
            req.locations,
            randomize=req.randomize,
            classifier=services.classifier,
            fetcher=services.fetcher,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"prompt": prompt}


@app.post("/generate-text", response_model=GenerateTextResp)
def generate_text(req: GenerateTextReq, services: Services = Depends(get_services)):
    try:
        text = services.generator.generate_text(req.prompt, req.max_length, req.temperature)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationFailedError as e:
        logger.error("Raw generation failed: %s", e)
        raise HTTPException(status_code=502, detail=GENERATION_FAILED_MESSAGE)
    return {"text": text}


@app.post("/perspective", response_model=PerspectiveResp)
def perspective(req: PerspectiveReq, services: Services = Depends(get_services)):
    try:
        scores = services.score_text(req.text, REQUESTED_ATTRIBUTES)
    except PROVIDER_ERRORS as e:
        raise HTTPException(status_code=502, detail=f"Perspective provider error: {e}")
    try:
        appropriate = is_appropriate(scores)
    except ValueError as e:
        raise HTTPException(status_code=502, detail=f"Perspective response incomplete: {e}")
    return {"scores": dict(scores), "appropriate": appropriate}


@app.post("/backstory", response_model=BackstoryResp)
def create_backstory(
    image: UploadFile = File(...),
    services: Services = Depends(get_services),
):
    """
    Full pipeline: store the image, label it, build a prompt from the labels,
    generate and filter a story, then persist the result.
    """
    data = image.file.read()
    try:
        ext, mime_type = inspect_image(data)
    except ValueError:
        raise HTTPException(status_code=400, detail=INVALID_IMAGE_MESSAGE)

    image_id = f"img_{uuid.uuid4().hex[:8]}"
    try:
        image_url = save_image_bytes(image_id, data, ext=ext, content_type=mime_type)
    except (OSError, RuntimeError, requests.RequestException) as e:
        raise HTTPException(status_code=502, detail=f"Image save error: {e}")

    try:
        annotated = services.detect_labels(data, mime_type=mime_type)
    except PROVIDER_ERRORS as e:
        raise HTTPException(status_code=502, detail=f"Vision provider error: {e}")

    prompt = generate_prompt(
        list(annotated.labels),
        list(annotated.landmarks),
        randomize=True,
        classifier=services.classifier,
        fetcher=services.fetcher,
    )
    logger.info("Prompt for %s: %s", image_id, prompt)

    try:
        story = generate_final_story(
            prompt,
            STORY_MAX_LENGTH,
            STORY_TEMPERATURE,
            generator=services.generator,
            scorer=services.score_text,
        )
    except GenerationFailedError as e:
        logger.error("Backstory generation failed for %s: %s", image_id, e)
        raise HTTPException(status_code=502, detail=GENERATION_FAILED_MESSAGE)
    except InappropriateStoryError as e:
        logger.warning("Backstory for %s rejected by the toxicity gate: %s", image_id, e.scores)
        raise HTTPException(status_code=400, detail=INAPPROPRIATE_MESSAGE)
    except PROVIDER_ERRORS as e:
        raise HTTPException(status_code=502, detail=f"Perspective provider error: {e}")
    except ValueError as e:
        raise HTTPException(status_code=502, detail=f"Story check failed: {e}")

    record = db_create_backstory(
        prompt=prompt,
        text=story,
        labels=annotated.labels,
        image_url=image_url,
    )
    return record.to_dict()


@app.get("/backstories", response_model=BackstoryListResp)
def list_backstories(limit: int = Query(default=20, ge=1, le=100)):
    return {"backstories": [b.to_dict() for b in db_list_backstories(limit)]}


# Declared before /backstory/{backstory_id} so "latest" is not taken as an id.
@app.get("/backstory/latest", response_model=BackstoryResp)
def latest_backstory():
    record = db_latest_backstory()
    if not record:
        raise HTTPException(status_code=404, detail="No backstories yet")
    return record.to_dict()


@app.get("/backstory/{backstory_id}", response_model=BackstoryResp)
def get_backstory(backstory_id: str):
    record = db_get_backstory(backstory_id)
    if not record:
        raise HTTPException(status_code=404, detail="Backstory not found")
    return record.to_dict()


@app.delete("/backstory/{backstory_id}")
def delete_backstory(backstory_id: str):
    if not db_delete_backstory(backstory_id):
        raise HTTPException(status_code=404, detail="Backstory not found")
    return {"ok": True}
