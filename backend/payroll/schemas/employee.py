from pydantic import BaseModel
from typing import Any, Optional


class EmployeeBase(BaseModel):
    first_name: str
    last_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    branch: Optional[str] = None
    employment_status: str = "Active"
    salary_info: Optional[dict[str, Any]] = None


class EmployeeCreate(EmployeeBase):
    pass


class EmployeeRead(EmployeeBase):
    id: int

    model_config = {
        "from_attributes": True,
    }
