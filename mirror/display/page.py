"""Markup for the mirror page served to the kiosk browser."""

from __future__ import annotations

import html
import json
from collections.abc import Mapping

from .board import FIELD_WEATHER_ICON, FIELDS, HTML_FIELDS

_SCRIPT = """
(function () {
  const htmlFields = new Set(%(html_fields)s);
  let version = %(version)d;
  function apply(fields) {
    for (const [name, value] of Object.entries(fields)) {
      const node = document.getElementById(name);
      if (!node) continue;
      if (name === "%(icon_field)s") {
        if (value) { node.src = value; node.hidden = false; } else { node.hidden = true; }
      } else if (htmlFields.has(name)) {
        node.innerHTML = value;
      } else {
        node.textContent = value;
      }
    }
  }
  async function poll() {
    try {
      const response = await fetch("/state", { cache: "no-store" });
      if (response.ok) {
        const data = await response.json();
        if (data.version !== version) {
          version = data.version;
          apply(data.fields);
        }
      }
    } catch (error) {
      console.error("mirror state poll failed", error);
    }
  }
  setInterval(poll, %(poll_ms)d);
})();
"""


def _field_markup(name: str, value: str) -> str:
    if name in HTML_FIELDS:
        return value
    return html.escape(value)


def render_board_html(snapshot: Mapping[str, object], *, poll_ms: int = 1000) -> str:
    fields = snapshot.get("fields") or {}
    if not isinstance(fields, Mapping):
        fields = {}
    values = {name: str(fields.get(name) or "") for name in FIELDS}
    version = int(snapshot.get("version") or 0)
    icon = values[FIELD_WEATHER_ICON]
    icon_attrs = f'src="{html.escape(icon, quote=True)}"' if icon else "hidden"
    script = _SCRIPT % {
        "html_fields": json.dumps(sorted(HTML_FIELDS)),
        "version": version,
        "icon_field": FIELD_WEATHER_ICON,
        "poll_ms": max(250, poll_ms),
    }
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Mirror</title>
<style>
body {{ background: #000; color: #fff; font-family: sans-serif; margin: 2rem; }}
#time {{ font-size: 5rem; }}
#date {{ font-size: 1.5rem; opacity: 0.8; }}
#events {{ list-style: none; padding: 0; }}
</style>
</head>
<body>
<div id="time">{_field_markup("time", values["time"])}</div>
<div id="date">{_field_markup("date", values["date"])}</div>
<div class="weather"><img id="weather_icon" alt="" {icon_attrs}><div id="weather">{values["weather"]}</div></div>
<ul id="events">{values["events"]}</ul>
<div id="response">{_field_markup("response", values["response"])}</div>
<div id="user_input" hidden>{_field_markup("user_input", values["user_input"])}</div>
<script>{script}</script>
</body>
</html>
"""
