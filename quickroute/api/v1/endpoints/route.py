import logging

from fastapi import APIRouter, HTTPException, Request

from quickroute.core.config import settings
from quickroute.domain.exceptions import RoutePlanningError
from quickroute.models.schemas import PlanRouteRequest, PlanRouteResponse
from quickroute.services.route_planner import RoutePlanner

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/plan", response_model=PlanRouteResponse)
async def plan_route(payload: PlanRouteRequest, request: Request) -> PlanRouteResponse:
    planner = RoutePlanner(transport_mode=payload.transport_mode)
    planner.origin = payload.origin
    planner.intermediate_destinations = list(payload.intermediate_destinations)
    planner.final_stop = payload.final_stop

    try:
        result = await planner.plan_route(run_id=request.headers.get("X-Run-Id"))
    except RoutePlanningError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    except Exception as exc:
        logger.exception("Unexpected route planning failure")
        raise HTTPException(status_code=500, detail="Route planning failed unexpectedly") from exc

    return PlanRouteResponse.from_result(result, metric=settings.USE_METRIC_UNITS)
