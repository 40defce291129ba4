from __future__ import annotations

from typing import Iterable, Tuple


class RoutePlanningError(Exception):
    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class StopValidationError(RoutePlanningError):
    def __init__(self, message: str, status_code: int = 422) -> None:
        super().__init__(message, status_code=status_code)


class AddressNotFoundError(RoutePlanningError):
    def __init__(self, address: str) -> None:
        super().__init__(f"Address could not be located: '{address}'.", status_code=404)
        self.address = address


class ExternalServiceError(RoutePlanningError):
    def __init__(self, message: str, status_code: int = 503) -> None:
        super().__init__(message, status_code=status_code)


class MatrixIncompleteError(ExternalServiceError):
    def __init__(self, missing: Iterable[Tuple[int, int]]) -> None:
        self.missing = sorted(missing)
        cells = ", ".join(f"{i}->{j}" for i, j in self.missing[:10])
        super().__init__(f"Travel-time matrix is incomplete; missing cells: {cells}")


class NoRouteFoundError(RoutePlanningError):
    def __init__(self, source_address: str, destination_address: str) -> None:
        super().__init__(
            f"No route found between '{source_address}' and '{destination_address}'.",
            status_code=422,
        )
        self.source_address = source_address
        self.destination_address = destination_address
