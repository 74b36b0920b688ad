from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import httpx

from .errors import PartialItemFailure, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})


@dataclass(slots=True)
class FetchReport:
    payloads: list[bytes] = field(default_factory=list)
    failures: list[PartialItemFailure] = field(default_factory=list)

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(failure.message for failure in self.failures)


class ImageFetcher:
    """Download image payloads over HTTP for the images-from-URLs route.

    Each URL is fetched independently: a failed download is recorded and
    skipped, and only an empty result as a whole is an error.
    """

    def __init__(
        self,
        *,
        timeout_s: float = 10.0,
        max_bytes: int = 10 * 1024 * 1024,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self.max_bytes = max_bytes
        self._transport = transport

    def fetch_all(self, urls: Sequence[str]) -> FetchReport:
        if not urls:
            raise ValidationError("At least one image URL is required")
        for url in urls:
            try:
                scheme = httpx.URL(url).scheme
            except httpx.InvalidURL as exc:
                raise ValidationError(f"Invalid image URL: {url}") from exc
            if scheme not in ALLOWED_SCHEMES:
                raise ValidationError(f"Unsupported URL scheme: {scheme or 'none'} ({url})")

        report = FetchReport()
        with httpx.Client(
            timeout=self.timeout_s, follow_redirects=True, transport=self._transport
        ) as client:
            for index, url in enumerate(urls):
                try:
                    report.payloads.append(self._fetch(client, index, url))
                except PartialItemFailure as exc:
                    logger.warning("Skipping image URL: %s", exc.message)
                    report.failures.append(exc)
        if not report.payloads:
            raise ValidationError("None of the images could be downloaded")
        return report

    def _fetch(self, client: httpx.Client, index: int, url: str) -> bytes:
        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                chunks: list[bytes] = []
                size = 0
                for chunk in response.iter_bytes():
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise PartialItemFailure(index, f"{url} is larger than {self.max_bytes} bytes")
                    chunks.append(chunk)
        except httpx.HTTPError as exc:
            raise PartialItemFailure(index, f"{url} could not be downloaded: {exc}") from exc
        if size == 0:
            raise PartialItemFailure(index, f"{url} returned an empty body")
        return b"".join(chunks)


__all__ = ["ALLOWED_SCHEMES", "FetchReport", "ImageFetcher"]
