"""Text-layer extraction from remote clinical PDFs.

Downloads a PDF over ``httpx`` and reads its embedded text layer with
PyMuPDF (fitz), page by page in document order.  Pages without text are
skipped; the remaining page texts are joined with a blank line.

Only PDFs that already carry a text layer are supported.  A scanned image
with no text layer raises :class:`~src.utils.errors.ExtractionError`,
which callers should treat as "needs manual entry" rather than a fault.
"""

from __future__ import annotations

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import httpx
import structlog

from src.utils.errors import DocumentFetchError, DocumentParseError, ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_MAX_BYTES = 25 * 1024 * 1024
# Readers accept the header anywhere in the first KiB.
_PDF_MAGIC = b"%PDF-"
_PDF_HEADER_WINDOW = 1024


class PDFTextExtractor:
    """Downloads PDFs and extracts their text layer."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        max_pdf_bytes: int = _DEFAULT_MAX_BYTES,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )
        self._max_pdf_bytes = max_pdf_bytes

    async def extract(self, pdf_url: str) -> str:
        """Download *pdf_url* and return its text.

        Raises
        ------
        DocumentFetchError
            The download failed or exceeded the size limit.
        DocumentParseError
            The bytes could not be opened as a PDF.
        ExtractionError
            The PDF has no extractable text on any page.
        """
        pdf_bytes = await self._download(pdf_url)
        return self.extract_from_bytes(pdf_bytes, source=pdf_url)

    def extract_from_bytes(self, pdf_bytes: bytes, source: str = "<bytes>") -> str:
        """Extract the text layer from in-memory PDF bytes.

        Bytes without a PDF header (an HTML error page from an expired
        signed URL, for instance) raise :class:`DocumentParseError`.
        PyMuPDF would otherwise repair them into an empty page, which is
        indistinguishable from a scanned document.
        """
        if _PDF_MAGIC not in pdf_bytes[:_PDF_HEADER_WINDOW]:
            logger.warning("pdf_header_missing", source=source, size_bytes=len(pdf_bytes))
            raise DocumentParseError(
                message=f"Content from {source} is not a PDF",
                provider_name=self.get_provider_name(),
            )

        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as exc:
            raise DocumentParseError(
                message=f"Could not open PDF from {source}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not doc.is_pdf:
            doc.close()
            raise DocumentParseError(
                message=f"Content from {source} is not a PDF",
                provider_name=self.get_provider_name(),
            )

        page_texts: list[str] = []
        try:
            page_count = doc.page_count
            for page in doc:
                text = page.get_text("text").strip()
                if text:
                    page_texts.append(text)
        except Exception as exc:
            raise DocumentParseError(
                message=f"Could not read PDF pages from {source}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            doc.close()

        if not page_texts:
            logger.warning("pdf_no_text_layer", source=source, page_count=page_count)
            raise ExtractionError(
                message=(
                    f"PDF at {source} has no extractable text; "
                    "it may be a scanned image and needs manual entry"
                ),
                provider_name=self.get_provider_name(),
            )

        full_text = "\n\n".join(page_texts)
        logger.info(
            "pdf_text_extracted",
            source=source,
            page_count=page_count,
            pages_with_text=len(page_texts),
            char_count=len(full_text),
        )
        return full_text

    def get_provider_name(self) -> str:
        return "pymupdf"

    async def close(self) -> None:
        """Close the HTTP client if this extractor created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _download(self, pdf_url: str) -> bytes:
        try:
            response = await self._client.get(pdf_url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise DocumentFetchError(
                message=f"Timeout downloading PDF from {pdf_url}: {exc}",
                provider_name="http",
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise DocumentFetchError(
                message=f"HTTP {exc.response.status_code} downloading PDF from {pdf_url}",
                provider_name="http",
            ) from exc
        except httpx.HTTPError as exc:
            raise DocumentFetchError(
                message=f"HTTP error downloading PDF from {pdf_url}: {exc}",
                provider_name="http",
            ) from exc

        content = response.content
        if len(content) > self._max_pdf_bytes:
            raise DocumentFetchError(
                message=(
                    f"PDF at {pdf_url} is {len(content)} bytes, "
                    f"over the {self._max_pdf_bytes}-byte limit"
                ),
                provider_name="http",
            )
        logger.debug("pdf_downloaded", url=pdf_url, size_bytes=len(content))
        return content
