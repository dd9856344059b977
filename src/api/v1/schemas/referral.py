"""Pydantic schemas for Referral API."""

from pydantic import BaseModel


class ReferralCodeCheckResponse(BaseModel):
    """Result of checking a referral code before registering."""

    code: str
    status: str
    valid: bool
