# app/services/video.py
from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

YOUTUBE_HOSTS = {"youtube.com", "m.youtube.com", "www.youtube.com", "music.youtube.com",
                 "youtube-nocookie.com", "www.youtube-nocookie.com"}
YOUTUBE_ID_RE = re.compile(r"^[A-Za-z0-9_-]{6,}$")
# path shapes that carry the id as the next segment
_PATH_PREFIXES = ("embed", "shorts", "live", "v")
VIMEO_ID_RE = re.compile(r"^\d+$")


def _parse(url: str):
    url = url.strip()
    if "://" not in url:
        url = "https://" + url
    return urlparse(url)


def youtube_id(url: str | None) -> str | None:
    """Extract the video id from any common YouTube link shape."""
    if not url:
        return None
    parsed = _parse(url)
    host = (parsed.hostname or "").lower()
    candidate = None
    if host in ("youtu.be", "www.youtu.be"):
        candidate = parsed.path.lstrip("/").split("/")[0]
    elif host in YOUTUBE_HOSTS:
        if parsed.path == "/watch":
            candidate = (parse_qs(parsed.query).get("v") or [None])[0]
        else:
            parts = [p for p in parsed.path.split("/") if p]
            if len(parts) >= 2 and parts[0] in _PATH_PREFIXES:
                candidate = parts[1]
    if candidate and YOUTUBE_ID_RE.match(candidate):
        return candidate
    return None


def vimeo_id(url: str | None) -> str | None:
    if not url:
        return None
    parsed = _parse(url)
    host = (parsed.hostname or "").lower()
    if host not in ("vimeo.com", "www.vimeo.com", "player.vimeo.com"):
        return None
    parts = [p for p in parsed.path.split("/") if p]
    # player.vimeo.com/video/<id>, vimeo.com/<id>, vimeo.com/channels/x/<id>
    for part in reversed(parts):
        if VIMEO_ID_RE.match(part):
            return part
    return None


def embed_url(url: str | None) -> str | None:
    """Privacy-friendly embeddable URL, the raw URL when unknown, None when empty."""
    if not url or not url.strip():
        return None
    yt = youtube_id(url)
    if yt:
        return f"https://www.youtube-nocookie.com/embed/{yt}"
    vm = vimeo_id(url)
    if vm:
        return f"https://player.vimeo.com/video/{vm}?dnt=1"
    return url
