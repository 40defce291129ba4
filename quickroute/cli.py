from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from quickroute.core.config import settings
from quickroute.core.logging import configure_logging
from quickroute.domain.exceptions import RoutePlanningError
from quickroute.domain.models import TransportMode
from quickroute.models.schemas import PlanRouteResponse
from quickroute.services.route_planner import RoutePlanner
from quickroute.services.twogis_client import twogis_client

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quickroute-plan",
        description="Plan the fastest route from ORIGIN to FINAL through every --stop",
    )
    parser.add_argument("origin", help="Starting address")
    parser.add_argument("final", help="Final destination address")
    parser.add_argument(
        "--stop",
        dest="stops",
        action="append",
        default=[],
        metavar="ADDRESS",
        help="Intermediate stop; repeat for several stops",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in TransportMode],
        default=settings.DEFAULT_TRANSPORT_MODE,
        help="Transport mode",
    )
    parser.add_argument("--json", action="store_true", help="Print the plan as JSON")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")
    return parser


async def _plan(args: argparse.Namespace) -> PlanRouteResponse:
    planner = RoutePlanner(transport_mode=TransportMode(args.mode))
    planner.origin = args.origin
    planner.intermediate_destinations = list(args.stops)
    planner.final_stop = args.final

    await twogis_client.connect_redis()
    try:
        result = await planner.plan_route()
    finally:
        await twogis_client.close()
    return PlanRouteResponse.from_result(result, metric=planner.use_metric_units)


def _print_plan(plan: PlanRouteResponse) -> None:
    for leg in plan.legs:
        print(
            f"{leg.order + 1}. {leg.source_address} → {leg.destination_address}"
            f"  ({leg.distance_m / 1000:.1f} km, {leg.duration_s / 60:.0f} min)"
        )
    print(f"Total: {plan.total_distance_text}, {plan.total_duration_text}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("quickroute.cli", args.log_level, stream=sys.stderr)

    try:
        plan = asyncio.run(_plan(args))
    except RoutePlanningError as exc:
        logger.error("Planning failed: %s", exc.message)
        print(f"error: {exc.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(plan.model_dump(mode="json"), ensure_ascii=False, indent=2))
    else:
        _print_plan(plan)
    return 0


if __name__ == "__main__":
    sys.exit(main())
