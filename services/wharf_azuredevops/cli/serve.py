"""
Run the provider API server.

Run via: python -m wharf_azuredevops.cli.serve

Listens on WHARF_BIND_ADDRESS (host:port, default 0.0.0.0:8080).
"""

import uvicorn

from wharf_azuredevops.config import settings


def main() -> None:
    host, port = settings.bind_host_port()
    uvicorn.run(
        "wharf_azuredevops.api.app:app",
        host=host,
        port=port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
