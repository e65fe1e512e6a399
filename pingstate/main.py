import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .continuous_manager import ContinuousPingManager
from .ping_service import PingService
from .result_stream import ResultStream
from .routers import ping, network

# Setup Logging
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger("PingState")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("PingState Starting...")
    service = PingService(settings)
    stream = ResultStream(history=settings.event_buffer)
    manager = ContinuousPingManager(service, on_result=stream.publish)
    app.state.ping_service = service
    app.state.continuous_manager = manager
    app.state.result_stream = stream

    yield

    # Shutdown
    logger.info("PingState Stopping...")
    manager.cleanup()
    service.cleanup()


app = FastAPI(title="PingState API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ping.router)
app.include_router(network.router)


@app.get("/")
def read_root(request: Request):
    manager = request.app.state.continuous_manager
    return {
        "status": "online",
        "service": "PingState",
        "continuous_sessions": len(manager.active_sessions()),
        "stream_followers": request.app.state.result_stream.follower_count,
    }
