"""
HTTP endpoint - FastAPI application serving authenticated host stats
"""
import socket
import sys
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from stats_agent import __version__
from stats_agent.aggregator import StatsAggregator
from stats_agent.auth import TokenAuth, Unauthorized
from stats_agent.config import AgentConfig
from stats_agent.log import get_logger

logger = get_logger(__name__)


# Models
class StatsResponse(BaseModel):
    cpu: str
    memory: Dict[str, str]
    services: Dict[str, str]
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    message: str


def create_app(config: AgentConfig, aggregator: Optional[StatsAggregator] = None) -> FastAPI:
    """Build the agent application around an immutable configuration"""
    if aggregator is None:
        aggregator = StatsAggregator.from_config(config)
    require_token = TokenAuth(config.token, config.token_header)

    app = FastAPI(title="Database Host Agent", version=__version__)

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized):
        return JSONResponse(status_code=401, content=exc.to_dict())

    # Plain def: FastAPI runs it in its threadpool, so the blocking fan-out is fine
    @app.get(
        '/stats',
        response_model=StatsResponse,
        responses={401: {'model': ErrorResponse}},
        dependencies=[Depends(require_token)]
    )
    def stats():
        """Current CPU, memory and database service status"""
        return aggregator.aggregate().to_dict()

    @app.get('/health')
    async def health():
        """Liveness check; performs no collection"""
        return {'status': 'healthy'}

    return app


def bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ':' in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def serve(config: AgentConfig) -> None:
    """
    Bind the listener and serve until stopped.

    A bind failure is fatal: the process exits with status 1 and the
    service manager is expected to restart it.
    """
    logger.info(
        "Starting stats agent",
        extra={'context': {'host': config.host, 'port': config.port, 'environment': config.environment}}
    )
    try:
        sock = bind_socket(config.host, config.port)
    except OSError as e:
        logger.critical(
            "Could not bind listener",
            extra={'context': {'host': config.host, 'port': config.port, 'error': str(e)}}
        )
        sys.exit(1)

    app = create_app(config)
    server = uvicorn.Server(uvicorn.Config(
        app,
        log_config=None,
        log_level=config.log_level.lower()
    ))
    logger.info("Serving", extra={'context': {'url': f'http://{config.host}:{config.port}'}})
    server.run(sockets=[sock])
