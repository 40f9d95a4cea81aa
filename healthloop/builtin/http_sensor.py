"""HTTP(S) sensor — latency, status code and reachability via httpx."""

from __future__ import annotations

import logging
import time

import httpx

from healthloop.capabilities import Capability, Sensor
from healthloop.core.models import Measurement

logger = logging.getLogger(__name__)

METRIC_LATENCY = "latency_ms"
METRIC_STATUS = "status_code"
METRIC_UP = "up"


class HttpSensor(Sensor):
    """Probes one URL per fetch; an unreachable endpoint yields ``up = 0``."""

    capabilities = frozenset({Capability.SENSE, Capability.MEASUREMENT_TYPES})

    def __init__(
        self,
        url: str,
        method: str = "GET",
        expected_status: int = 200,
        timeout_ms: int = 10_000,
        component: str | None = None,
    ) -> None:
        self.url = url
        self.method = method
        self.expected_status = expected_status
        self.timeout_ms = timeout_ms
        self.component = component or url
        self._client: httpx.Client | None = None

    def initialize(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout_ms / 1000, follow_redirects=True)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def measurement_types(self) -> list[str]:
        return [METRIC_LATENCY, METRIC_STATUS, METRIC_UP]

    def fetch(self) -> list[Measurement]:
        client = self.initialize()

        t0 = time.perf_counter()
        try:
            resp = client.request(self.method, self.url)
        except httpx.TimeoutException:
            logger.warning("HTTP probe timed out: %s (%dms)", self.url, self.timeout_ms)
            return [
                Measurement(self.component, METRIC_LATENCY, float(self.timeout_ms)),
                Measurement(self.component, METRIC_UP, 0.0),
            ]
        except httpx.HTTPError as e:
            latency = (time.perf_counter() - t0) * 1000
            logger.warning("HTTP probe failed: %s: %s", self.url, e)
            return [
                Measurement(self.component, METRIC_LATENCY, round(latency, 1)),
                Measurement(self.component, METRIC_UP, 0.0),
            ]

        latency = (time.perf_counter() - t0) * 1000
        up = 1.0 if resp.status_code == self.expected_status else 0.0
        return [
            Measurement(self.component, METRIC_LATENCY, round(latency, 1)),
            Measurement(self.component, METRIC_STATUS, float(resp.status_code)),
            Measurement(self.component, METRIC_UP, up),
        ]
