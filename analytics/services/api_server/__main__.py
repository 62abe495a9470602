"""Entry point for running the API server as a module.

This allows running the server with: python -m analytics.services.api_server
"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "analytics.services.api_server.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
    )


if __name__ == "__main__":
    main()
