import httpx
import pytest

from pdf_converter.errors import ValidationError
from pdf_converter.fetch import ImageFetcher


def _transport(routes: dict[str, httpx.Response]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return routes.get(request.url.path, httpx.Response(404))

    return httpx.MockTransport(handler)


def test_failed_downloads_are_skipped(make_image) -> None:
    image = make_image()
    fetcher = ImageFetcher(
        transport=_transport(
            {
                "/a.png": httpx.Response(200, content=image),
                "/empty.png": httpx.Response(200, content=b""),
            }
        )
    )

    report = fetcher.fetch_all(
        ["https://cdn.example.test/a.png", "https://cdn.example.test/missing.png", "https://cdn.example.test/empty.png"]
    )

    assert report.payloads == [image]
    assert [failure.index for failure in report.failures] == [1, 2]
    assert report.warnings[0].startswith("item 1:")


def test_oversized_download_is_skipped(make_image) -> None:
    fetcher = ImageFetcher(
        max_bytes=10,
        transport=_transport(
            {
                "/big.png": httpx.Response(200, content=b"x" * 64),
                "/small.png": httpx.Response(200, content=b"tiny"),
            }
        ),
    )

    report = fetcher.fetch_all(["https://cdn.example.test/big.png", "https://cdn.example.test/small.png"])

    assert report.payloads == [b"tiny"]
    assert "larger than 10 bytes" in report.failures[0].message


def test_nothing_downloaded_is_validation_error() -> None:
    fetcher = ImageFetcher(transport=_transport({}))
    with pytest.raises(ValidationError):
        fetcher.fetch_all(["https://cdn.example.test/missing.png"])


@pytest.mark.parametrize("urls", [[], ["file:///etc/passwd"], ["ftp://example.test/a.png"]])
def test_rejects_empty_and_non_http_urls(urls) -> None:
    with pytest.raises(ValidationError):
        ImageFetcher(transport=_transport({})).fetch_all(urls)
