from lessonkit.capture.agent import AGENT_GUARD, AGENT_PRESENT_JS, READY_MARKER_ID, build_agent_script


def test_agent_script_steps():
    js = build_agent_script(500, 200)
    assert '"print-ready"' in js
    assert AGENT_GUARD in js
    assert 'querySelectorAll("details")' in js
    assert 'new Event("toggle")' in js
    assert "typesetPromise" in js
    assert "document.images" in js
    assert "sleep(500)" in js
    assert "sleep(200)" in js
    # Marker is only inserted when absent.
    assert "if (!document.getElementById(MARKER_ID))" in js


def test_agent_script_delays_are_clamped():
    js = build_agent_script(-5, -1)
    assert "sleep(0)" in js
    assert "sleep(-" not in js


def test_agent_script_custom_marker():
    assert '"done"' in build_agent_script(marker_id="done")


def test_driver_probes():
    assert AGENT_GUARD in AGENT_PRESENT_JS
    assert READY_MARKER_ID == "print-ready"
