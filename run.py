"""Start the API with uvicorn, binding to the platform-provided PORT."""
import os

import uvicorn


def _int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = _int(os.getenv("PORT", "8000"), 8000)
    workers = _int(os.getenv("WORKERS", "1"), 1)
    # an import string is required for workers > 1
    uvicorn.run("designflow.main:app", host=host, port=port, workers=workers, log_level="info")


if __name__ == "__main__":
    main()
