"""
Client Model Module

Clients are plain contact records; any authenticated user may manage them.
"""
from typing import Optional
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.models.common import new_id, utcnow


class Client(SQLModel, table=True):
    """
    Client model representing a customer contact.

    Attributes:
        id: Unique identifier (UUID) automatically generated for each client
        name: Contact name (required)
        email: Contact email (required)
        phone: Primary phone number
        company_name: Company the contact belongs to
    """
    __tablename__ = "clients"

    id: str = Field(default_factory=new_id, primary_key=True)

    name: str = Field(nullable=False, index=True)
    email: str = Field(nullable=False)
    phone: Optional[str] = None
    company_name: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
