import uvicorn
from mapsy.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "mapsy.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug
    )
