# run.py
import uvicorn

from studysphere.core.config import Settings

if __name__ == "__main__":
    settings = Settings()
    print(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    print(f"Database URL: {settings.DATABASE_URL}")

    uvicorn.run(
        "studysphere.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
