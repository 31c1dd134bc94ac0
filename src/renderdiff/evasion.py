"""
Browser launch profiles.

Plain profile for quick/full analysis; stealth mode adds a static table of
overrides that mask automation markers. This is configuration data, not logic.
"""

from dataclasses import dataclass, field
from typing import Any

from .models import AnalysisMode

PLAIN_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
)

STEALTH_LAUNCH_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--disable-features=VizDisplayCompositor,TranslateUI",
    "--disable-ipc-flooding-protection",
    "--disable-renderer-backgrounding",
    "--disable-backgrounding-occluded-windows",
    "--disable-client-side-phishing-detection",
    "--disable-sync",
    "--disable-default-apps",
    "--hide-scrollbars",
    "--mute-audio",
    "--no-default-browser-check",
    "--no-pings",
    "--force-device-scale-factor=1",
)

# Force HTTP/1.1 when the primary navigation fails protocol negotiation
DEGRADED_TRANSPORT_ARGS = ("--disable-http2",)
DEGRADED_FIREFOX_PREFS = {"network.http.http2.enabled": False}

BASE_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}

STEALTH_HEADERS = {
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
    "sec-ch-ua": '"Chromium";v="120", "Not_A Brand";v="24", "Google Chrome";v="120"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"Windows"',
}

DEGRADED_HEADERS = {"Connection": "close"}

EVASION_INIT_SCRIPT = """
(() => {
  Object.defineProperty(navigator, 'webdriver', { get: () => undefined, configurable: true });

  Object.defineProperty(navigator, 'plugins', {
    get: () => [
      { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer', description: 'Portable Document Format', length: 1 },
      { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai', description: '', length: 1 },
      { name: 'Native Client', filename: 'internal-nacl-plugin', description: '', length: 2 },
    ],
  });
  Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });

  if (window.navigator.permissions && window.navigator.permissions.query) {
    const originalQuery = window.navigator.permissions.query.bind(window.navigator.permissions);
    window.navigator.permissions.query = (parameters) => (
      parameters.name === 'notifications'
        ? Promise.resolve({ state: 'denied' })
        : originalQuery(parameters)
    );
  }

  if (window.WebGLRenderingContext) {
    const getParameter = WebGLRenderingContext.prototype.getParameter;
    WebGLRenderingContext.prototype.getParameter = function (parameter) {
      if (parameter === 37445) return 'Intel Inc.';
      if (parameter === 37446) return 'Intel Iris OpenGL Engine';
      return getParameter.call(this, parameter);
    };
  }

  window.chrome = window.chrome || {};
  window.chrome.runtime = window.chrome.runtime || {};

  for (const key of Object.keys(window)) {
    if (key.startsWith('cdc_')) delete window[key];
  }
})();
"""


@dataclass(frozen=True)
class LaunchProfile:
    """
    Everything needed to open an isolated browser context.

    Launch args only apply to Chromium and user prefs only to Firefox. WebKit
    exposes no protocol switch, so its degraded profile differs only in the
    request headers and the fresh context.
    """

    name: str
    launch_args: tuple[str, ...]
    context_options: dict[str, Any] = field(default_factory=dict)
    init_script: str | None = None
    firefox_user_prefs: dict[str, Any] = field(default_factory=dict)

    @property
    def stealth(self) -> bool:
        return self.init_script is not None

    def degraded(self) -> "LaunchProfile":
        """Same profile forced onto the older transport."""
        options = dict(self.context_options)
        options["extra_http_headers"] = {
            **options.get("extra_http_headers", {}),
            **DEGRADED_HEADERS,
        }
        return LaunchProfile(
            name=f"{self.name}-degraded",
            launch_args=self.launch_args + DEGRADED_TRANSPORT_ARGS,
            context_options=options,
            init_script=self.init_script,
            firefox_user_prefs={**self.firefox_user_prefs, **DEGRADED_FIREFOX_PREFS},
        )


def build_profile(mode: AnalysisMode, user_agent: str) -> LaunchProfile:
    """
    Select the launch profile for an analysis mode.

    Args:
        mode: Analysis mode
        user_agent: User-Agent for the browser context

    Returns:
        Plain profile, or the plain profile plus evasion overrides for stealth
    """
    context_options: dict[str, Any] = {
        "user_agent": user_agent,
        "viewport": {"width": 1366, "height": 768},
        "locale": "en-US",
        "timezone_id": "America/New_York",
        "extra_http_headers": dict(BASE_HEADERS),
    }

    if mode != AnalysisMode.STEALTH:
        return LaunchProfile(name="plain", launch_args=PLAIN_LAUNCH_ARGS, context_options=context_options)

    context_options["extra_http_headers"].update(STEALTH_HEADERS)
    context_options["permissions"] = []
    return LaunchProfile(
        name="stealth",
        launch_args=PLAIN_LAUNCH_ARGS + STEALTH_LAUNCH_ARGS,
        context_options=context_options,
        init_script=EVASION_INIT_SCRIPT,
    )
