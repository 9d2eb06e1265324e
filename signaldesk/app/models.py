from typing import Optional

from pydantic import BaseModel


class Health(BaseModel):
    ok: bool
    time: str
    pid: int
    backend_configured: bool
    config_path: Optional[str] = None
