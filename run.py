import uvicorn
import os


def run_migrations():
    """Run Alembic migrations."""
    try:
        from alembic.config import Config
        from alembic import command

        alembic_cfg = Config("alembic.ini")
        print("[STARTUP] Running database migrations...")
        command.upgrade(alembic_cfg, "head")
        print("[STARTUP] Migrations complete!")
        return True
    except Exception as e:
        print(f"[WARN] Migration failed: {e}")
        return False


if __name__ == "__main__":
    if os.getenv("RUN_MIGRATIONS") == "true" and not run_migrations():
        print("[WARN] Falling back to direct table creation on startup...")

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))

    # Disable reload in production
    reload = os.getenv("ENV") == "development"

    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
        workers=1,
    )
