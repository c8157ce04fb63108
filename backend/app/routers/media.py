from fastapi import APIRouter, Query

from app.services.video import embed_url, vimeo_id, youtube_id

router = APIRouter(prefix="/media", tags=["media"])


@router.get("/embed")
def embed(url: str = Query("", max_length=2000)):
    if youtube_id(url):
        provider = "youtube"
    elif vimeo_id(url):
        provider = "vimeo"
    else:
        provider = None
    target = embed_url(url)
    return {"url": url, "embed_url": target, "provider": provider, "available": target is not None}
