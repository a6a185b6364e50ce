import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
import socketio

from syncroom.config import settings
from syncroom.errors import CatalogError
from syncroom.gateway import Gateway
from syncroom.protocol import dump
from syncroom.services.broadcaster import Broadcaster
from syncroom.services.catalog import CatalogClient
from syncroom.services.registry import RoomRegistry

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# CORS Configuration
origins = settings.allowed_origins_list or ["*"]

sio = socketio.AsyncServer(async_mode='asgi', cors_allowed_origins=origins if origins != ["*"] else "*")

broadcaster = Broadcaster(sio.emit)
registry = RoomRegistry(broadcaster)
gateway = Gateway(registry)
gateway.attach(sio)

catalog = CatalogClient(settings.catalog_url, timeout=settings.catalog_timeout)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting room server...")
    registry.start_sweeper(settings.room_sweep_interval)
    yield
    logger.info("Shutting down room server...")
    await registry.stop_sweeper()
    await broadcaster.close()
    await catalog.aclose()


app = FastAPI(title="syncroom", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

socket_app = socketio.ASGIApp(sio, app)


@app.get("/health")
async def health():
    return {"status": "ok", "rooms": len(registry)}


@app.get("/api/search")
async def search(query: str = Query(..., min_length=1), limit: int = Query(50, ge=1, le=500)):
    try:
        songs = await catalog.search(query, limit=limit)
    except CatalogError:
        raise HTTPException(status_code=502, detail="Song catalog unavailable")
    return {"results": [dump(s) for s in songs]}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "syncroom.main:socket_app",
        host=settings.api_host,
        port=settings.api_port,
    )
