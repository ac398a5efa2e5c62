from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

import requests
from loguru import logger

from config import Configuration
from errors import EndpointFailure, ProviderUnavailable
from models import CommercialRecord, OSMRecord
from services.bbox_builder import ProviderRequest


class SoftFailure(Exception):
    """One endpoint attempt failed; the caller moves on to the next one."""


Extractor = Callable[[Any], list]


@dataclass
class FetchResult:
    endpoint: str
    records: list
    failures: List[EndpointFailure] = field(default_factory=list)


def overpass_elements(payload: Any) -> List[OSMRecord]:
    if not isinstance(payload, dict):
        raise SoftFailure("unexpected payload shape")
    if payload.get("remark") and not payload.get("elements"):
        # Overpass reports runtime errors (timeouts, quota) as a remark with 200 OK.
        raise SoftFailure(f"overpass remark: {str(payload['remark'])[:200]}")
    elements = payload.get("elements") or []
    return [OSMRecord(el) for el in elements if isinstance(el, dict)]


_PLACES_OK = {"OK", "ZERO_RESULTS"}


def places_results(payload: Any) -> List[CommercialRecord]:
    if not isinstance(payload, dict):
        raise SoftFailure("unexpected payload shape")
    status = payload.get("status", "OK")
    if status not in _PLACES_OK:
        message = payload.get("error_message") or ""
        raise SoftFailure(f"places status {status} {message}".strip())
    results = payload.get("results") or []
    return [CommercialRecord(r) for r in results if isinstance(r, dict)]


def place_details_result(payload: Any) -> List[dict]:
    if not isinstance(payload, dict):
        raise SoftFailure("unexpected payload shape")
    status = payload.get("status", "OK")
    if status != "OK":
        message = payload.get("error_message") or ""
        raise SoftFailure(f"details status {status} {message}".strip())
    result = payload.get("result")
    return [result] if isinstance(result, dict) and result else []


def nominatim_results(payload: Any) -> List[dict]:
    if not isinstance(payload, list):
        raise SoftFailure("unexpected payload shape")
    return [r for r in payload if isinstance(r, dict)]


class MultiEndpointFetcher:
    def __init__(
        self,
        cfg: Configuration,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cfg = cfg
        self.session = session or requests.Session()
        self._sleep = sleep

    def attempt(self, endpoint: str, request: ProviderRequest, *, timeout: Optional[float] = None) -> Any:
        """Issue one request and return the parsed JSON body.

        Raises SoftFailure for network errors, timeouts, non-2xx statuses and
        unparseable bodies.
        """
        try:
            resp = self.session.request(
                request.method,
                endpoint,
                params=request.params or None,
                data=request.data,
                headers=request.headers or None,
                timeout=timeout if timeout is not None else self.cfg.provider_timeout,
            )
        except requests.Timeout:
            raise SoftFailure("timeout")
        except requests.RequestException as exc:  # network error
            raise SoftFailure(f"request error: {exc}")

        if not resp.ok:
            snippet = (resp.text or "")[:200]
            raise SoftFailure(f"upstream {resp.status_code}: {snippet}")

        try:
            return resp.json()
        except ValueError:
            raise SoftFailure("invalid json response")

    def fetch(
        self,
        endpoints: Sequence[str],
        request: ProviderRequest,
        extract: Extractor,
        *,
        timeout: Optional[float] = None,
    ) -> FetchResult:
        """Try endpoints in order; the first non-empty result wins."""
        failures: list[EndpointFailure] = []
        for idx, endpoint in enumerate(endpoints):
            if idx and self.cfg.endpoint_delay > 0:
                self._sleep(self.cfg.endpoint_delay)
            try:
                records = extract(self.attempt(endpoint, request, timeout=timeout))
                if not records:
                    raise SoftFailure("empty result")
            except SoftFailure as exc:
                logger.warning("endpoint {} failed: {}", endpoint, exc)
                failures.append(EndpointFailure(endpoint=endpoint, reason=str(exc)))
                continue
            logger.info("endpoint {} returned {} records", endpoint, len(records))
            return FetchResult(endpoint=endpoint, records=records, failures=failures)

        raise ProviderUnavailable(failures)
