# storage/dto.py
from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional


class FileMetadata(BaseModel):
    """
    A standardized Data Transfer Object for file metadata to abstract away
    provider-specific file representations.
    """

    id: str
    name: str
    mime_type: str
    folder_id: Optional[str] = None


class TokenInfo(BaseModel):
    """Credential obtained by exchanging an OAuth2 authorization code."""

    access_token: str
    expiry: Optional[datetime] = None


class AuthURLResponse(BaseModel):
    url: str


class BrowseResponse(BaseModel):
    file_list: List[str]


class PublishResponse(BaseModel):
    url: str


class ValidateResponse(BaseModel):
    access_token: str
    expiry: Optional[datetime] = None
