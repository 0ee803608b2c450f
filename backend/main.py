import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import PORT
from pinup.logger import get_logger
from pinup.routes import router

logger = get_logger(__name__)

app = FastAPI(title="PinUp Review API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    logger.info(f"Starting PinUp review API on port {PORT}")
    uvicorn.run("main:app", host="0.0.0.0", port=PORT, reload=False)
