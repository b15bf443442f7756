import logging

import uvicorn

from backend.settings import get_settings


def run_backend():
    """Run the FastAPI backend server"""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("backend.main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    print("Starting workflow backend...")
    run_backend()
