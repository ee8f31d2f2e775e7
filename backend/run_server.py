"""
Development server runner
"""
import uvicorn

from mailblocks.config import settings

if __name__ == "__main__":
    print(f"[SERVER] Starting block editing API on {settings.host}:{settings.port}...")
    uvicorn.run(
        "mailblocks.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
