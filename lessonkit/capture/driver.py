from __future__ import annotations

import base64
import tempfile
from pathlib import Path
from typing import Callable, Optional

import fitz
from pydantic import BaseModel, Field
from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.common.print_page_options import PrintOptions
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from ..config import Settings, load_settings
from ..exceptions import CaptureError
from .agent import AGENT_PRESENT_JS, READY_MARKER_ID, build_agent_script

# Page sizes in centimeters (WebDriver print units).
PAGE_SIZES_CM: dict[str, tuple[float, float]] = {
    "A3": (29.7, 42.0),
    "A4": (21.0, 29.7),
    "A5": (14.8, 21.0),
    "LETTER": (21.59, 27.94),
    "LEGAL": (21.59, 35.56),
}

_FORCE_LIGHT_JS = (
    "document.documentElement.classList.remove('dark');"
    "document.documentElement.classList.add('light');"
)


class CaptureRequest(BaseModel):
    target: str
    page_size: str = "A4"
    print_background: bool = True


class CaptureResult(BaseModel):
    pdf: bytes
    marker_found: bool
    page_count: int
    warnings: list[str] = Field(default_factory=list)


DriverFactory = Callable[[Settings], "webdriver.Remote"]


def default_driver_factory(settings: Settings):
    options = webdriver.ChromeOptions()
    if settings.headless:
        options.add_argument("--headless=new")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--force-color-profile=srgb")
    if settings.browser_binary:
        options.binary_location = settings.browser_binary
    # Return after DOMContentLoaded; the readiness marker covers the rest.
    options.page_load_strategy = "eager"
    driver = webdriver.Chrome(options=options)
    driver.set_window_size(settings.window_width, settings.window_height)
    return driver


def wait_for_marker(driver, timeout_s: float, poll_s: float = 0.25, marker_id: str = READY_MARKER_ID) -> bool:
    """Poll for the readiness marker. False on timeout, never raises for it."""
    try:
        WebDriverWait(driver, timeout_s, poll_frequency=poll_s).until(
            EC.presence_of_element_located((By.ID, marker_id))
        )
        return True
    except TimeoutException:
        return False


def build_print_options(request: CaptureRequest) -> PrintOptions:
    size = PAGE_SIZES_CM.get(request.page_size.upper())
    if size is None:
        raise ValueError(f"Unknown page size: {request.page_size}")
    opts = PrintOptions()
    opts.page_width, opts.page_height = size
    opts.margin_top = 0
    opts.margin_bottom = 0
    opts.margin_left = 0
    opts.margin_right = 0
    opts.background = request.print_background
    return opts


def pdf_page_count(pdf: bytes) -> int:
    with fitz.open(stream=pdf, filetype="pdf") as doc:
        return doc.page_count


class CaptureSession:
    """
    One browser page, one document, one snapshot.

    The session is closed after `capture()` whether it succeeded or not; a
    second call raises CaptureError.
    """

    def __init__(
        self,
        request: CaptureRequest,
        settings: Optional[Settings] = None,
        driver_factory: Optional[DriverFactory] = None,
    ) -> None:
        self.request = request
        self.settings = settings or load_settings()
        self._driver_factory = driver_factory or default_driver_factory
        self._driver = None
        self._used = False

    def __enter__(self) -> "CaptureSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._used and self._driver is None

    def close(self) -> None:
        driver, self._driver = self._driver, None
        if driver is None:
            return
        try:
            driver.quit()
        except WebDriverException as e:
            print(f"[WARN] Failed to close browser for {self.request.target}: {e}")

    def capture(self) -> CaptureResult:
        target = self.request.target
        if self._used:
            raise CaptureError(target, "capture session already used")
        self._used = True
        try:
            return self._capture(target)
        finally:
            self.close()

    def _capture(self, target: str) -> CaptureResult:
        s = self.settings
        warnings: list[str] = []
        opts = build_print_options(self.request)
        try:
            self._driver = self._driver_factory(s)
            driver = self._driver
            driver.set_page_load_timeout(s.page_load_timeout_s)
            driver.get(target)
        except WebDriverException as e:
            raise CaptureError(target, f"navigation failed: {e}") from e

        try:
            driver.execute_script(_FORCE_LIGHT_JS)
            if not driver.execute_script(AGENT_PRESENT_JS):
                # Page does not carry the agent itself (external URL): inject it.
                driver.execute_script(build_agent_script(s.settle_ms, s.final_ms))

            marker_found = wait_for_marker(driver, s.ready_timeout_s, s.ready_poll_s)
            if not marker_found:
                msg = f"Timeout after {s.ready_timeout_s:g}s waiting for #{READY_MARKER_ID} on {target}, capturing anyway"
                print(f"[WARN] {msg}")
                warnings.append(msg)

            pdf_b64 = driver.print_page(opts)
        except WebDriverException as e:
            raise CaptureError(target, f"browser error: {e}") from e

        pdf = base64.b64decode(pdf_b64 or "")
        if not pdf:
            raise CaptureError(target, "browser returned an empty PDF")
        try:
            page_count = pdf_page_count(pdf)
        except Exception as e:
            raise CaptureError(target, f"unreadable PDF: {e}") from e
        if page_count < 1:
            raise CaptureError(target, "unreadable PDF: no pages")

        print(f"[INFO] Captured {target}: {page_count} page(s), {len(pdf)} bytes")
        return CaptureResult(pdf=pdf, marker_found=marker_found, page_count=page_count, warnings=warnings)


def capture_pdf(
    request,
    *,
    settings: Optional[Settings] = None,
    driver_factory: Optional[DriverFactory] = None,
) -> CaptureResult:
    if isinstance(request, str):
        request = CaptureRequest(target=request)
    with CaptureSession(request, settings=settings, driver_factory=driver_factory) as session:
        return session.capture()


def capture_html(
    page_html: str,
    *,
    page_size: str = "A4",
    print_background: bool = True,
    settings: Optional[Settings] = None,
    driver_factory: Optional[DriverFactory] = None,
) -> CaptureResult:
    """Capture an already rendered page (see render_page) through a temporary file."""
    with tempfile.TemporaryDirectory(prefix="lessonkit_") as tmp:
        page = Path(tmp) / "document.html"
        page.write_text(page_html, encoding="utf-8")
        request = CaptureRequest(target=page.as_uri(), page_size=page_size, print_background=print_background)
        return capture_pdf(request, settings=settings, driver_factory=driver_factory)
