"""
User models for authentication, profiles and officer management.

The authenticated caller of a request is a Principal: a tagged union of
CitizenPrincipal | OfficerPrincipal | AdminPrincipal discriminated on `role`.
"""

from pydantic import BaseModel, EmailStr, Field, TypeAdapter
from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union
from enum import Enum


class UserRole(str, Enum):
    CITIZEN = "citizen"
    OFFICER = "officer"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Address(BaseModel):
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    pincode: Optional[str] = Field(None, pattern=r"^[0-9]{5,10}$")


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------

class _PrincipalBase(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    account_status: AccountStatus = AccountStatus.ACTIVE

    class Config:
        extra = "ignore"


class CitizenPrincipal(_PrincipalBase):
    role: Literal["citizen"] = "citizen"


class OfficerPrincipal(_PrincipalBase):
    role: Literal["officer"] = "officer"
    assigned_departments: List[str] = Field(default_factory=list)

    def is_assigned_to(self, department_id: Optional[str]) -> bool:
        return bool(department_id) and department_id in self.assigned_departments


class AdminPrincipal(_PrincipalBase):
    role: Literal["admin"] = "admin"


Principal = Annotated[
    Union[CitizenPrincipal, OfficerPrincipal, AdminPrincipal],
    Field(discriminator="role"),
]

_principal_adapter = TypeAdapter(Principal)


def principal_from_user(user: Dict) -> Union[CitizenPrincipal, OfficerPrincipal, AdminPrincipal]:
    """
    Build the principal variant for a stored user document.

    Raises pydantic.ValidationError for an unknown role.
    """
    return _principal_adapter.validate_python(user)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """Citizen self-registration."""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    full_name: str = Field(..., min_length=2, max_length=100)
    phone_number: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "asha@example.com",
                "password": "s3cret-pass",
                "full_name": "Asha Patil",
                "phone_number": "9876543210",
            }
        }


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(BaseModel):
    """Fields a citizen or officer may change on their own profile."""
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone_number: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")
    profile_image: Optional[str] = Field(None, max_length=500)
    address: Optional[Address] = None


class OfficerCreateRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    full_name: str = Field(..., min_length=2, max_length=100)
    phone_number: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")
    assigned_departments: List[str] = Field(default_factory=list)


class OfficerUpdateRequest(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone_number: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")
    profile_image: Optional[str] = Field(None, max_length=500)
    address: Optional[Address] = None


class AccountStatusRequest(BaseModel):
    account_status: AccountStatus
    reason: Optional[str] = Field(None, max_length=500)


class DepartmentAssignmentRequest(BaseModel):
    department_id: str = Field(..., min_length=1)


class SelectDepartmentRequest(BaseModel):
    department_id: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    """Public view of a user document (never includes password_hash)."""
    id: str = Field(..., description="Firestore document ID")
    email: str
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    profile_image: Optional[str] = None
    address: Optional[Address] = None
    role: UserRole
    account_status: AccountStatus = AccountStatus.ACTIVE
    assigned_departments: List[str] = Field(default_factory=list)
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        extra = "ignore"


def sanitize_user(user: Dict) -> Dict:
    """Strip private fields from a user document for API responses."""
    return UserResponse.model_validate(user).model_dump(mode="json")
