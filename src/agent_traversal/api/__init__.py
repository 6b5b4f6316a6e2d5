"""REST and server-sent-event API for recorded and live sessions."""

from .server import create_app, event_stream

__all__ = ["create_app", "event_stream"]
