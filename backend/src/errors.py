"""Typed errors that cross the core boundary.

Each carries a user-facing ``message`` (shown as-is by the UI) and a
``detail`` string for logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


class RouletteError(RuntimeError):
    message = "發生未預期的錯誤，請稍後再試"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.message)
        self.detail = detail


class AddressNotFound(RouletteError):
    message = "無法找到該地址，請檢查後重新輸入"

    def __init__(self, address: str) -> None:
        super().__init__(f"no geocoding result for {address!r}")
        self.address = address
        self.message = f"無法找到「{address}」，請檢查後重新輸入"


@dataclass(frozen=True)
class EndpointFailure:
    endpoint: str
    reason: str


class ProviderUnavailable(RouletteError):
    message = "搜尋地點時發生錯誤，請稍後再試"

    def __init__(self, failures: Sequence[EndpointFailure]) -> None:
        self.failures: List[EndpointFailure] = list(failures)
        summary = "; ".join(f"{f.endpoint}: {f.reason}" for f in self.failures) or "no endpoints configured"
        super().__init__(f"all endpoints failed ({summary})")

    @property
    def reasons(self) -> List[str]:
        return [f.reason for f in self.failures]


class NoCandidatesAfterFilter(RouletteError):
    message = "找不到符合條件的地點，請試試擴大搜尋範圍或調整人數"

    def __init__(self, found: int, radius_m: Optional[float] = None, people: Optional[int] = None) -> None:
        super().__init__(f"{found} venues found, none left after filtering (radius={radius_m}, people={people})")
        self.found = found
        self.radius_m = radius_m
        self.people = people


class GeolocationError(RouletteError):
    code = 0


class GeolocationDenied(GeolocationError):
    code = 1
    message = "定位權限被拒絕，請改為手動輸入地址"


class GeolocationUnavailable(GeolocationError):
    code = 2
    message = "目前無法取得位置資訊，請改為手動輸入地址"


class GeolocationTimeout(GeolocationError):
    code = 3
    message = "定位逾時，請重試或改為手動輸入地址"


_GEOLOCATION_ERRORS = {cls.code: cls for cls in (GeolocationDenied, GeolocationUnavailable, GeolocationTimeout)}


def geolocation_error_from_code(code: int) -> GeolocationError:
    """Map a W3C GeolocationPositionError code to a typed error."""
    cls = _GEOLOCATION_ERRORS.get(code, GeolocationUnavailable)
    return cls(f"geolocation error code {code}")


class SelectionBusy(RouletteError):
    message = "正在搜尋或抽選中，請稍候"


class InvalidTransition(RouletteError):
    message = "目前狀態無法執行此操作，請重新開始"
