from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.config import Settings, load_env
from adapters.redis_manager import RedisConfig, RedisManager
from contracts.errors import InternalError, SearchError, ValidationError
from contracts.models import FeedbackRecord
from services.feedback_service import FeedbackService
from services.search_service import SearchService, build_search_service
from utils.get_logger import get_logger

logger = get_logger(__name__)


def create_app(
    search_service: SearchService | None = None,
    feedback_service: FeedbackService | None = None,
) -> FastAPI:
    """Build the HTTP app. Services are wired from the environment unless injected."""
    redis_manager: RedisManager | None = None
    if search_service is None:
        load_env()
        settings = Settings.from_env()
        redis_manager = RedisManager(RedisConfig.from_settings(settings))
        if feedback_service is None:
            feedback_service = FeedbackService(redis_manager.get_redis(decode_responses=True))
        search_service = build_search_service(
            settings, feedback=feedback_service, redis_manager=redis_manager
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if redis_manager is not None:
            await redis_manager.close()

    app = FastAPI(
        title="Movie Search API",
        description="Movie search aggregated across catalog, ratings and term extraction services",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.search_service = search_service
    app.state.feedback_service = feedback_service

    # CORS - allow all origins for public API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request parameters", "message": str(exc.errors())},
        )

    @app.exception_handler(SearchError)
    async def search_error_handler(request: Request, exc: SearchError):
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": exc.message},
        )

    @app.get("/search")
    async def search_endpoint(
        request: Request,
        query: str | None = Query(None),
        page: int = Query(1),
        user_id: str | None = Query(None),
    ):
        service: SearchService = request.app.state.search_service
        try:
            response = await service.search(query, page=page, user_id=user_id)
        except SearchError:
            raise
        except Exception as e:
            logger.error(f"Unhandled error during search: {e!r}", exc_info=True)
            raise InternalError(str(e)) from e
        return response.to_dict()

    @app.post("/feedback")
    async def feedback_endpoint(request: Request, record: FeedbackRecord):
        service: FeedbackService | None = request.app.state.feedback_service
        try:
            if service is None:
                raise RuntimeError("Feedback storage is not configured")
            await service.store_feedback(record)
        except Exception as e:
            logger.error(f"Feedback storage error: {e!r}")
            return JSONResponse(status_code=500, content={"error": "Error storing feedback"})
        return {"message": "Feedback stored successfully"}

    @app.get("/feedback/weights/{user_id}")
    async def weights_endpoint(request: Request, user_id: str):
        service: FeedbackService | None = request.app.state.feedback_service
        try:
            if service is None:
                raise RuntimeError("Feedback storage is not configured")
            weights = await service.get_personalized_weights(user_id)
        except Exception as e:
            logger.error(f"Weight retrieval error: {e!r}")
            return JSONResponse(status_code=500, content={"error": "Error retrieving weights"})
        return weights.to_dict()

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("search_api.main:app", host="0.0.0.0", port=Settings.from_env().port)
