# payments/gateways/transport.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

import requests

log = logging.getLogger("payments")

DEFAULT_TIMEOUT = 25


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: str


class HttpTransport(Protocol):
    def send(self, method: str, url: str, form_fields: Optional[Mapping] = None) -> TransportResponse: ...


class RequestsTransport:
    """
    ارسال form-encoded با requests.
    روی 4xx/5xx خطا پرتاب نمی‌کند (بدنه باید بررسی شود)؛
    خطاهای شبکه (requests.RequestException) همان‌طور بالا می‌روند.
    """

    def __init__(self, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.timeout = timeout or DEFAULT_TIMEOUT
        self.session = session or requests.Session()

    def send(self, method: str, url: str, form_fields: Optional[Mapping] = None) -> TransportResponse:
        r = self.session.request(method.upper(), url, data=dict(form_fields or {}), timeout=self.timeout)
        if r.status_code >= 400:
            log.warning("GATEWAY_HTTP_ERROR | method=%s url=%s status=%s body=%s",
                        method, url, r.status_code, r.text[:300])
        return TransportResponse(status_code=r.status_code, body=r.text)
