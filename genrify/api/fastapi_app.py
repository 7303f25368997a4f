from fastapi import FastAPI

from genrify import __version__
from genrify.api.auth.routes import router as auth_router
from genrify.api.playlists.routes import router as playlists_router
from genrify.api.spotify.routes import router as spotify_router
from genrify.core import configure_logging

configure_logging()

app = FastAPI(
    title="Genrify API",
    version=__version__,
    description="Spotify playlist search, merge and bulk-delete backend.",
)


@app.get("/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}


app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(spotify_router, prefix="/spotify", tags=["spotify"])
app.include_router(playlists_router, prefix="/playlists", tags=["playlists"])
