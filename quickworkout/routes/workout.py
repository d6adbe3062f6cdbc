"""
Workout generation routes.
"""
import time

from fastapi import APIRouter, HTTPException, Request

from quickworkout.models.schemas import (
    DurationStrategyAPIResponse,
    ProcessResponseRequest,
    WorkoutAPIResponse,
)
from quickworkout.models.workout import WorkoutRequestContext
from quickworkout.services import openai_service
from quickworkout.services.duration_strategy import DurationStrategy
from quickworkout.services.response_processor import ResponseProcessor
from quickworkout.core.logger import log_request, log_response, log_error
from quickworkout.core.limiter import (
    limiter,
    DURATION_STRATEGY_LIMIT,
    GENERATE_LIMIT,
    PROCESS_RESPONSE_LIMIT,
)

router = APIRouter()

duration_strategy = DurationStrategy()
response_processor = ResponseProcessor()


@router.post("/duration-strategy", response_model=DurationStrategyAPIResponse)
@limiter.limit(DURATION_STRATEGY_LIMIT)
def select_duration(request: Request, req: WorkoutRequestContext):
    """
    Explain which canonical duration a request maps to.

    No model call is made.
    """
    log_request("/duration-strategy")

    result = duration_strategy.select_strategy(req)
    duration_strategy.validate_strategy(result, req)
    optimization = duration_strategy.create_duration_optimization(req, result)
    return DurationStrategyAPIResponse(strategy=result, optimization=optimization)


@router.post("/process-response", response_model=WorkoutAPIResponse)
@limiter.limit(PROCESS_RESPONSE_LIMIT)
def process_response(request: Request, req: ProcessResponseRequest):
    """
    Run the parsing and normalization pipeline on an existing model reply.

    Useful for replaying stored responses; never calls the model.
    """
    log_request("/process-response")

    strategy = duration_strategy.select_strategy(req.context)
    result = response_processor.process(req.response, strategy, req.context)
    return WorkoutAPIResponse(strategy=strategy, result=result)


@router.post("/generate-workout", response_model=WorkoutAPIResponse)
@limiter.limit(GENERATE_LIMIT)
async def generate_workout(request: Request, req: WorkoutRequestContext):
    """
    Generate a quick workout.

    Selects the duration, asks the model for a plan and repairs whatever
    comes back into a complete workout.
    """
    log_request("/generate-workout")
    start = time.perf_counter()

    strategy = duration_strategy.select_strategy(req)

    try:
        raw_response = await openai_service.generate_workout(req, strategy)
    except Exception as e:
        log_error("Workout generation", e)
        raise HTTPException(status_code=500, detail="Workout generation failed")

    result = response_processor.process(raw_response, strategy, req)
    log_response(
        "/generate-workout",
        "valid" if result.validation.isValid else "invalid",
        (time.perf_counter() - start) * 1000
    )
    return WorkoutAPIResponse(strategy=strategy, result=result)
