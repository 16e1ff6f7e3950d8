from pydantic import BaseModel


class SphereOut(BaseModel):
    id: int
    name: str
    slug: str
