"""Health check endpoint."""

from fastapi import APIRouter

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health")
async def health():
    return {"status": "ok", "service": "llmgen", "version": VERSION}


@router.get("/")
async def root():
    return {"service": "llmgen", "version": VERSION}
