from .agent import READY_MARKER_ID, build_agent_script
from .driver import CaptureRequest, CaptureResult, CaptureSession, capture_html, capture_pdf, wait_for_marker

__all__ = [
    "READY_MARKER_ID",
    "build_agent_script",
    "CaptureRequest",
    "CaptureResult",
    "CaptureSession",
    "capture_html",
    "capture_pdf",
    "wait_for_marker",
]
