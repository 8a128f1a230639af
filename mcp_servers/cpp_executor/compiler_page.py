"""
DOM model of the OnlineGDB C++ compiler page.

Selectors and the JS predicates the adapter polls. The page exposes no
completion callback, so everything here is a read of transient DOM state.
"""

from __future__ import annotations

import json

EDITOR_ID = "editor_1"
EDITOR_SELECTOR = f"#{EDITOR_ID}"
TEXT_INPUT_MODE_ID = "input_method_text"
AD_BANNER_ID = "ad_unit_bottom_wrapper"
STDIN_ID = "stdinput"
STDIN_SELECTOR = f"#{STDIN_ID}"
RUN_BUTTON_SELECTOR = "#control-btn-run"
STDOUT_TAB_SELECTOR = "li.tab-stdout"
STDOUT_PANEL_SELECTOR = "#tab-stdout pre.msg"
STDERR_PANEL_SELECTOR = "#tab-stderr pre.msg"


def _js(value: str) -> str:
    return json.dumps(value)


# Click the "Text" stdin mode radio; the page default varies between visits.
SELECT_TEXT_INPUT_MODE_JS = f"""
(() => {{
    const radio = document.getElementById({_js(TEXT_INPUT_MODE_ID)});
    if (!radio) return false;
    radio.click();
    return true;
}})()
"""

# The bottom ad banner can overlap the stdin box; both must settle before injection.
# An absent banner counts as hidden.
INPUT_AREA_READY_JS = f"""
(() => {{
    const ad = document.getElementById({_js(AD_BANNER_ID)});
    const stdinput = document.getElementById({_js(STDIN_ID)});
    const adHidden = !ad || ad.style.display === 'none' || ad.offsetParent === null;
    const inputVisible = !!stdinput && stdinput.offsetParent !== null;
    return adHidden && inputVisible;
}})()
"""

# Either the stdout tab is active with text, or stderr has text.
COMPLETION_JS = f"""
(() => {{
    const stdoutTab = document.querySelector({_js(STDOUT_TAB_SELECTOR)});
    const preStdout = document.querySelector({_js(STDOUT_PANEL_SELECTOR)});
    const preStderr = document.querySelector({_js(STDERR_PANEL_SELECTOR)});
    const stdoutReady = !!stdoutTab && stdoutTab.classList.contains('active')
        && !!preStdout && !!preStdout.textContent && preStdout.textContent.trim().length > 0;
    const stderrReady = !!preStderr && !!preStderr.textContent && preStderr.textContent.trim().length > 0;
    return stdoutReady || stderrReady;
}})()
"""


__all__ = [
    "COMPLETION_JS",
    "EDITOR_ID",
    "EDITOR_SELECTOR",
    "INPUT_AREA_READY_JS",
    "RUN_BUTTON_SELECTOR",
    "SELECT_TEXT_INPUT_MODE_JS",
    "STDERR_PANEL_SELECTOR",
    "STDIN_SELECTOR",
    "STDOUT_PANEL_SELECTOR",
    "STDOUT_TAB_SELECTOR",
]
