"""Run the development server.

Usage:
  python -m qrlink
  uvicorn qrlink.main:create_app --factory --reload
"""
import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "qrlink.main:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 8000)),
    )


if __name__ == "__main__":
    main()
