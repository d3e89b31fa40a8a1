import os

import uvicorn

from examhall.app import app


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.environ.get("EXAMHALL_HOST", "127.0.0.1"),
        port=int(os.environ.get("EXAMHALL_PORT", "8000")),
    )
