from pydantic import BaseModel, EmailStr, Field
from .common import gen_id


class Customer(BaseModel):
    id: str = Field(default_factory=gen_id)
    name: str
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None
