"""
Gallery Listing Data Models

- ListResponse: progressive listing returned by GET /list
- PrefetchResponse: result of warming the image cache for a gallery
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ListResponse(BaseModel):
    """
    Whatever is cached for a gallery right now, plus an honest done flag.
    Image lists are omitted when disabled by configuration.
    """
    done: bool
    running: bool = False
    count: int = Field(..., description="Entries returned in this response")
    total: int = Field(..., description="Entries stored for the gallery")
    imagesOriginal: Optional[List[str]] = None
    imagesProxy: Optional[List[str]] = None


class PrefetchResponse(BaseModel):
    done: bool
    prefetched: int
    total: int
