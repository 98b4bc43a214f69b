"""
Logging listener for workflow events.

Attach to a workflow to get one log line per structural event:

    listener = LoggingListener()
    workflow.add_listener(listener)
"""

from typing import Any, Optional
import json
import logging


class LoggingListener:
    """
    Logs every event it receives.

    Events whose name ends in ``-error`` are logged at ERROR, everything else
    at INFO. Payloads are rendered as JSON; values that JSON cannot encode
    fall back to ``str``.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def __call__(self, event_name: str, payload: Any) -> None:
        if event_name.lower().endswith("-error"):
            if self.logger.isEnabledFor(logging.ERROR):
                self.logger.error(
                    "WORKFLOW EVENT: type=[%s], data: %s", event_name, self._serialize(payload)
                )
        elif self.logger.isEnabledFor(logging.INFO):
            self.logger.info(
                "WORKFLOW EVENT: type=[%s], data: %s", event_name, self._serialize(payload)
            )

    @staticmethod
    def _serialize(payload: Any) -> str:
        if payload is None:
            return "null"
        if isinstance(payload, (str, int, float, bool)):
            return str(payload)
        try:
            return json.dumps(dict(payload) if hasattr(payload, "keys") else payload, default=str)
        except (TypeError, ValueError) as e:
            return f"[unserializable {type(payload).__name__}: {e}; repr={payload!r}]"
