"""Run the relay: python -m wayfare.relay"""

import uvicorn

from ..config import settings


def main():
    uvicorn.run(
        "wayfare.relay.app:app",
        host=settings.websocket_host,
        port=settings.websocket_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
