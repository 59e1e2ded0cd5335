from __future__ import annotations

import uvicorn

from disaster_api.config import load_api_settings


def main() -> None:
    settings = load_api_settings()
    uvicorn.run("disaster_api.app:app", host=settings.API_HOST, port=settings.API_PORT, reload=False)


if __name__ == "__main__":
    main()
