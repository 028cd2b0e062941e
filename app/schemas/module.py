from pydantic import BaseModel


class ModuleInfo(BaseModel):
    id: str
    name: str
    route: str
    accessible: bool
