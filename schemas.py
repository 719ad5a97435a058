"""
Database and request/response schemas

Account maps to the MongoDB collection "account" (lowercase of the class
name). The request and response models below define the JSON bodies of the
HTTP routes; their field names are the wire names clients send.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator


def normalize_email(email: str) -> str:
    return str(email).strip().lower()


class Account(BaseModel):
    """
    Accounts collection schema
    Collection name: "account" (lowercase of class name)
    """
    id: str = Field(..., description="Opaque account id, stored as _id")
    fullname: str = Field("", description="Display name")
    email: str = Field(..., description="Normalized email address (unique)")
    password_hash: str = Field(..., description="BCrypt password hash")
    school: str = Field("", description="School name, free text")
    reset_token: Optional[str] = Field(None, description="One-time password reset token")
    reset_token_expiry: Optional[datetime] = Field(None, description="Expiry timestamp for the reset token")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _reset_fields_paired(self):
        if (self.reset_token is None) != (self.reset_token_expiry is None):
            raise ValueError("reset_token and reset_token_expiry must be set together")
        return self

    def set_reset_token(self, token: str, expiry: datetime) -> None:
        self.reset_token = token
        self.reset_token_expiry = expiry

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"}, exclude_none=True)
        doc["_id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Account":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return cls(**data)


# -------------------- Request bodies --------------------
class SignupRequest(BaseModel):
    fullname: str = ""
    email: EmailStr
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")
    school: str = ""


class SigninRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    # Plain str: an address no account has answers 404, malformed or not.
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., alias="newPassword")


# -------------------- Response bodies --------------------
class MessageResponse(BaseModel):
    message: str


class UserProfile(BaseModel):
    fullname: str
    email: str
    school: str

    @classmethod
    def from_account(cls, account: Account) -> "UserProfile":
        return cls(fullname=account.fullname, email=account.email, school=account.school)


class SigninResponse(BaseModel):
    message: str
    token: str
    user: UserProfile


class MeResponse(UserProfile):
    id: str
