"""JSON formatter — passes decoded events through to stdout."""
from __future__ import annotations

import json

from codexwrap.events import Event
from codexwrap.formatters.human import HumanRenderer


class JsonRenderer(HumanRenderer):
    """Write each event as one compact JSON line; diagnostics stay on stderr."""

    name = "json"

    def on_event(self, event: Event) -> None:
        out = self.console.file
        out.write(json.dumps(event.payload, ensure_ascii=False, separators=(",", ":")))
        out.write("\n")
        out.flush()
