# app/services/events.py
import logging

log = logging.getLogger("app.events")


def track_event(name: str, **props) -> None:
    """Analytics hook: one structured log line per event."""
    parts = " ".join(f"{k}={v}" for k, v in sorted(props.items()))
    log.info("event=%s %s", name, parts)
