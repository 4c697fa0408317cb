from contextlib import asynccontextmanager
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional
from pydantic import BaseModel
import logging

from ..ai_models.ai_models import get_provider_registry
from ..config import config
from ..recap_generator.exceptions.recap_exceptions import (
    InputValidationError,
    ModelNotReady,
    ProviderUnavailable,
    RecapSenseiError,
    StageFailure,
)
from ..recap_generator.models.recap_models import GenerationInput
from ..recap_generator.models.state_models import Completed, describe_state
from ..recap_generator.pipeline_controller import PipelineController
from ..storage.recap_history import ResultStore, create_result_store
from ..utils.logger_utils import setup_logging
from ..utils.recap_utils import build_share_payload, build_share_url

logger = setup_logging(__name__)

# Disable uvicorn access log to avoid duplicate logging
logging.getLogger("uvicorn.access").handlers = []


class RecapRequest(BaseModel):
    anime: Optional[str] = None
    episode: Optional[str] = None
    subtitles: Optional[str] = None
    image_name: Optional[str] = None


class ShareResponse(BaseModel):
    url: str
    title: str
    text: str


def status_code_for(error: RecapSenseiError) -> int:
    """HTTP status for each error kind."""
    if isinstance(error, InputValidationError):
        return 400
    if isinstance(error, (ProviderUnavailable, ModelNotReady)):
        return 503
    if isinstance(error, StageFailure):
        return 502
    return 500


def _error_response(status_code: int, kind: str, message: str, hint: str = "") -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"kind": kind, "message": message, "hint": hint})


def _build_default_controller(store: Optional[ResultStore] = None) -> PipelineController:
    store = store or create_result_store(config.history_db_url, config.history_max_entries)
    return PipelineController(get_provider_registry(), config, store)


def create_app(controller: Optional[PipelineController] = None,
               store: Optional[ResultStore] = None) -> FastAPI:
    """
    Build the API around a controller.

    Without a controller, one backed by the Azure registry and the configured
    history store is created on the first request.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        pipeline = app.state.controller
        history = pipeline.result_store if pipeline is not None else app.state.store
        if history is not None:
            history.close()
            logger.info("🛑 History store closed")

    app = FastAPI(title="RecapSensei API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )

    if controller is not None and store is not None:
        controller.result_store = store
    app.state.controller = controller
    app.state.store = store

    def get_controller(request: Request) -> PipelineController:
        if request.app.state.controller is None:
            logger.info("🚀 Creating default pipeline controller")
            request.app.state.controller = _build_default_controller(request.app.state.store)
        return request.app.state.controller

    @app.exception_handler(RecapSenseiError)
    async def recap_error_handler(request: Request, error: RecapSenseiError):
        return JSONResponse(status_code=status_code_for(error), content=error.to_dict())

    @app.post("/api/recaps")
    async def create_recap(request: Request, body: RecapRequest):
        pipeline = get_controller(request)
        generation_input = GenerationInput.from_raw(
            dialogue_text=body.subtitles,
            image_name=body.image_name,
            subject_label=body.anime,
            episode_label=body.episode,
        )
        logger.info(f"📥 Recap requested for {generation_input.subject_label or 'Unknown'} "
                    f"Ep{generation_input.episode_label or '?'}")

        # Validation errors propagate to the exception handler
        outcome = await pipeline.run(generation_input)

        if outcome is None:
            return _error_response(409, "Superseded", "A newer recap request replaced this one.")
        if isinstance(outcome, Completed):
            return describe_state(outcome)
        return JSONResponse(status_code=status_code_for(outcome.error), content=outcome.error.to_dict())

    @app.get("/api/recaps/state")
    async def get_state(request: Request) -> Dict[str, Any]:
        pipeline = get_controller(request)
        description = describe_state(pipeline.state)
        if pipeline.last_failure is not None:
            description["last_error"] = pipeline.last_failure.error.to_dict()
        return description

    @app.get("/api/history")
    async def get_history(request: Request, limit: Optional[int] = Query(None, ge=1)) -> List[Dict[str, Any]]:
        pipeline = get_controller(request)
        if pipeline.result_store is None:
            return []
        return [result.model_dump(mode="json") for result in pipeline.result_store.list_results(limit)]

    @app.post("/api/history")
    async def save_current_result(request: Request):
        pipeline = get_controller(request)
        try:
            result = pipeline.save_result()
        except LookupError as e:
            return _error_response(404, "NothingToSave", str(e), "Generate a recap first.")
        return result.model_dump(mode="json")

    @app.delete("/api/history")
    async def clear_history(request: Request) -> Dict[str, str]:
        pipeline = get_controller(request)
        if pipeline.result_store is not None:
            pipeline.result_store.clear()
        return {"message": "History cleared"}

    @app.get("/api/share", response_model=ShareResponse)
    async def share_current_result(request: Request):
        pipeline = get_controller(request)
        result = pipeline.current_result
        if result is None:
            return _error_response(404, "NothingToShare", "There is no completed recap to share",
                                   "Generate a recap first.")
        payload = build_share_payload(result)
        return ShareResponse(url=build_share_url(result.blurb), **payload)

    return app


app = create_app()


def main():
    import uvicorn
    uvicorn.run(app, host=config.api_host, port=config.api_port)


if __name__ == "__main__":
    main()
