"""
Pydantic Schemas for API Request/Response Models

This module defines the data models used for communication between the
frontend and the backend.

Request fields are optional: handlers check presence themselves and answer
a missing field with the 400 message for that endpoint.

JSON field names follow the frontend's camelCase (videoValidated, actionID).
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================
# Account Schemas
# ============================================================

class CredentialsRequest(BaseModel):
    """Body of /register and /login."""
    email: Optional[str] = Field(None, description="Account email (case-insensitive)")
    password: Optional[str] = Field(None, description="Account password")


class UserPublic(BaseModel):
    """Account fields returned to clients."""
    id: str = Field(..., description="Unique account identifier")
    email: str = Field(..., description="Lower-cased email address")
    enrolled: bool = Field(..., description="True once biometric enrollment is complete")


class AuthResponse(BaseModel):
    """Response from registration or login."""
    message: str = Field(..., description="Status message")
    user: UserPublic
    token: str = Field(..., description="Bearer token valid for 24 hours")


class ProfileResponse(BaseModel):
    """Response from /profile."""
    user: UserPublic


# ============================================================
# Biometric Schemas
# ============================================================

def coerce_csid(value: Any) -> Any:
    """
    Accept any JSON scalar as a csid.

    Numbers and booleans become strings so the ordered policy checks decide
    the outcome; falsy scalars (0, false) count as missing. Objects and
    arrays are left for schema validation to reject.
    """
    if isinstance(value, bool):
        return "true" if value else None
    if isinstance(value, (int, float)):
        return str(value) if value else None
    return value


class BiometricVerifyRequest(BaseModel):
    """Body of /verify-biometric."""
    model_config = ConfigDict(populate_by_name=True)

    csid: Optional[str] = Field(None, description="Client session identifier from the widget")
    action_id: Optional[str] = Field(None, alias="actionID", description="Widget action label, e.g. 'login'")
    video_validated: Optional[bool] = Field(
        None,
        alias="videoValidated",
        description="Client confirms the camera stream passed the liveness heuristic",
    )

    @field_validator("csid", mode="before")
    @classmethod
    def normalize_csid(cls, value: Any) -> Any:
        return coerce_csid(value)


class BiometricVerifyResponse(BaseModel):
    """Response from /verify-biometric."""
    verified: bool = Field(..., description="Whether verification was accepted")
    message: Optional[str] = Field(None, description="Status message")


class EnrollCompleteRequest(BaseModel):
    """Body of /enroll/complete."""
    csid: Optional[str] = Field(None, description="Client session identifier from the widget")

    @field_validator("csid", mode="before")
    @classmethod
    def normalize_csid(cls, value: Any) -> Any:
        return coerce_csid(value)


class EnrollCompleteResponse(BaseModel):
    """Response from /enroll/complete."""
    enrolled: bool = Field(..., description="Whether the account is now enrolled")
    message: Optional[str] = Field(None, description="Status message")


# ============================================================
# Health Check Schemas
# ============================================================

class HealthResponse(BaseModel):
    """System health check response."""
    status: str = Field(..., description="'ok' when the API is serving requests")
    message: str = Field("Biometric Access Backend API", description="Service name")
