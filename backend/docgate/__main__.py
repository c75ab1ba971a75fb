"""
DocGate — Server Entrypoint
============================

Usage:
    python -m docgate

Runs `docgate.main:app` under uvicorn on BACKEND_HOST:BACKEND_PORT. SIGTERM
and SIGINT trigger uvicorn's graceful shutdown, which runs the lifespan's
shutdown half and closes the MongoDB connection.
"""

import uvicorn

from docgate.config import settings


def main() -> None:
    port = settings.backend_port
    print("\n" + "=" * 60)
    print(f"DocGate API server running on port {port}")
    print(f"Dashboard UI: http://localhost:{port}/")
    print(f"API guide: http://localhost:{port}/?json")
    print("=" * 60 + "\n")

    uvicorn.run(
        "docgate.main:app",
        host=settings.backend_host,
        port=port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
