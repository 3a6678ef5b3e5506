"""Health check and global viewer settings endpoints."""

from fastapi import APIRouter, HTTPException

from backend import storage

from .models import UpdateConfig

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get global viewer settings (fonts, background, default room)."""
    return storage.get_config()


@router.patch("/settings")
async def update_settings(body: UpdateConfig):
    """Update global viewer settings (partial merge)."""
    try:
        return storage.update_config(body.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.delete("/settings")
async def reset_settings():
    """Restore default viewer settings."""
    return storage.reset_config()
