from typing import Optional, Literal

from pydantic import Field

from schemas.common import CamelModel


class StudentCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    email: str = Field(..., pattern=r"^[\w.+-]+@[\w-]+(\.[\w-]+)+$")
    phone: str = Field(..., pattern=r"^[0-9]{10,15}$")
    institution: Optional[str] = None
    course: Optional[str] = None
    aadhar_number: Optional[str] = Field(None, pattern=r"^[0-9]{12}$")
    notes: Optional[str] = Field(None, max_length=500)


class StudentUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, pattern=r"^[\w.+-]+@[\w-]+(\.[\w-]+)+$")
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")
    institution: Optional[str] = None
    course: Optional[str] = None
    aadhar_number: Optional[str] = Field(None, pattern=r"^[0-9]{12}$")
    status: Optional[Literal["active", "inactive"]] = None
    notes: Optional[str] = Field(None, max_length=500)
