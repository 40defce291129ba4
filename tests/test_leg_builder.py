import pytest

from quickroute.domain.exceptions import ExternalServiceError, NoRouteFoundError
from quickroute.domain.models import Stop, TransportMode
from quickroute.services.leg_builder import build_route_legs

from conftest import FakeDirections, coordinate_for


def _stops(count: int):
    return [Stop(f"P{i}", coordinate_for(i)) for i in range(count)]


@pytest.mark.asyncio
async def test_build_route_legs_follows_tour_order(directions: FakeDirections):
    legs = await build_route_legs(_stops(5), [0, 3, 1, 2, 4], directions, TransportMode.WALKING)

    assert [leg.address_pair for leg in legs] == [
        ("P0", "P3"),
        ("P3", "P1"),
        ("P1", "P2"),
        ("P2", "P4"),
    ]
    assert [leg.duration_s for leg in legs] == [60.0, 120.0, 180.0, 240.0]
    assert all(call[2] is TransportMode.WALKING for call in directions.route_calls)


@pytest.mark.asyncio
async def test_build_route_legs_aborts_on_missing_route():
    directions = FakeDirections(no_route=[(3, 1)])

    with pytest.raises(NoRouteFoundError) as excinfo:
        await build_route_legs(_stops(5), [0, 3, 1, 2, 4], directions, TransportMode.AUTOMOBILE)

    assert excinfo.value.source_address == "P3"
    assert excinfo.value.destination_address == "P1"
    assert [(i, j) for i, j, _ in directions.route_calls] == [(0, 3), (3, 1)]


@pytest.mark.asyncio
async def test_build_route_legs_propagates_service_errors():
    class BrokenDirections(FakeDirections):
        async def compute_route(self, origin, destination, mode):
            raise ExternalServiceError("Directions service failed to compute route")

    with pytest.raises(ExternalServiceError):
        await build_route_legs(_stops(2), [0, 1], BrokenDirections(), TransportMode.AUTOMOBILE)


@pytest.mark.asyncio
async def test_build_route_legs_with_single_stop_is_empty(directions: FakeDirections):
    assert await build_route_legs(_stops(1), [0], directions, TransportMode.AUTOMOBILE) == []
