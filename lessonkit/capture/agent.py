"""
In-page half of the print readiness handshake.

The agent runs once per page load inside the browser:
  1. open every <details> element and fire "toggle" on it
  2. wait `settle_ms` for first-pass layout
  3. await MathJax.typesetPromise() when a client-side engine is present
  4. await load-or-error of every image
  5. wait `final_ms`, then append <div id="print-ready"> unless it exists

The capture driver only ever looks for the marker element.
"""
from __future__ import annotations

import json

READY_MARKER_ID = "print-ready"
AGENT_GUARD = "__lessonkitPrintAgent"

_AGENT_TEMPLATE = r"""
(function () {
  if (window[%(guard)s]) { return; }
  window[%(guard)s] = true;

  var MARKER_ID = %(marker)s;
  var sleep = function (ms) { return new Promise(function (r) { setTimeout(r, ms); }); };

  function openDetails() {
    document.querySelectorAll("details").forEach(function (d) {
      d.open = true;
      d.dispatchEvent(new Event("toggle"));
    });
  }

  function waitForMath() {
    var mj = window.MathJax;
    if (mj && typeof mj.typesetPromise === "function") {
      return mj.typesetPromise().catch(function (e) {
        console.error("MathJax typesetting failed:", e);
      });
    }
    return Promise.resolve();
  }

  function waitForImages() {
    return Promise.all(Array.prototype.map.call(document.images, function (img) {
      if (img.complete) { return Promise.resolve(); }
      return new Promise(function (resolve) {
        img.addEventListener("load", resolve, { once: true });
        img.addEventListener("error", resolve, { once: true });
      });
    }));
  }

  function signalReady() {
    if (!document.getElementById(MARKER_ID)) {
      var el = document.createElement("div");
      el.id = MARKER_ID;
      el.style.display = "none";
      document.body.appendChild(el);
      console.log("Print ready signal dispatched");
    }
  }

  function prepare() {
    openDetails();
    return sleep(%(settle)d)
      .then(waitForMath)
      .then(waitForImages)
      .then(function () { return sleep(%(final)d); })
      .then(signalReady);
  }

  if (document.readyState === "complete") {
    prepare();
  } else {
    window.addEventListener("load", prepare, { once: true });
  }
})();
"""


def build_agent_script(settle_ms: int = 1000, final_ms: int = 1000, marker_id: str = READY_MARKER_ID) -> str:
    return _AGENT_TEMPLATE % {
        "guard": json.dumps(AGENT_GUARD),
        "marker": json.dumps(marker_id),
        "settle": max(0, int(settle_ms)),
        "final": max(0, int(final_ms)),
    }


# Driver-side probe (executed through WebDriver.execute_script).
AGENT_PRESENT_JS = f"return !!window[{json.dumps(AGENT_GUARD)}];"
