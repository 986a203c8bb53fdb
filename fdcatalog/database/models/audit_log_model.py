from beanie import Document
from pydantic import Field
from datetime import datetime
from typing import Optional


class AuditLog(Document):
    action: str = Field(..., description="Action performed (e.g. 'fd_issuer.create', 'fd_slab.update')")
    actor: Optional[str] = Field(None, description="Subject of the token that performed the action")
    acted: Optional[str] = Field(None, description="Catalog path acted upon (issuer_key[/scheme_id[/slab_id]])")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the action occurred")
    status: str = Field(..., description="Result status: 'successful' or 'failed'")
    detail: Optional[str] = Field(None, description="Failure reason when status is 'failed'")

    class Settings:
        name = "audit_logs"

    class Config:
        json_encoders = {datetime: lambda v: v.isoformat()}
